from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List, Optional, Sequence

import altair as alt
import pandas as pd

from dashboard_core.charts import to_vega_spec
from dashboard_core.filters import ViewParams, apply_view, page_meta
from dashboard_core.models import CombinedOrder, ProductSaleSummary, RankedItem
from dashboard_core.ranking import TOP_N, rank_top_n

ORDER_SORT_KEYS = ["date", "fy", "sales_person", "segment", "country", "order_no", "amount", "product_count"]
PRODUCT_SORT_KEYS = [
    "product_code",
    "product_name",
    "total_quantity",
    "order_count",
    "avg_quantity_per_order",
    "percentage_of_total",
]

LINE_ITEM_COLUMNS = ["order_no", "product_code", "product_name", "quantity"]


def line_items_frame(orders: Sequence[CombinedOrder]) -> pd.DataFrame:
    rows = [
        {"order_no": o.order_no, "product_code": p.product_code, "product_name": p.product_name, "quantity": p.quantity}
        for o in orders
        for p in o.products
    ]
    return pd.DataFrame(rows, columns=LINE_ITEM_COLUMNS)


def compute_product_sales(orders: Sequence[CombinedOrder]) -> List[ProductSaleSummary]:
    """Per-product totals across all orders, in first-seen product order."""
    df = line_items_frame(orders)
    if df.empty:
        return []
    grouped = (
        df.groupby("product_code", sort=False)
        .agg(
            product_name=("product_name", "first"),
            total_quantity=("quantity", "sum"),
            order_count=("order_no", "nunique"),
        )
        .reset_index()
    )
    grand_total = int(grouped["total_quantity"].sum())
    out: List[ProductSaleSummary] = []
    for r in grouped.to_dict(orient="records"):
        quantity = int(r["total_quantity"])
        order_count = int(r["order_count"])
        out.append(
            ProductSaleSummary(
                product_code=str(r["product_code"]),
                product_name=str(r["product_name"]),
                total_quantity=quantity,
                order_count=order_count,
                avg_quantity_per_order=quantity / order_count if order_count > 0 else 0.0,
                percentage_of_total=(quantity / grand_total) * 100 if grand_total else 0.0,
            )
        )
    return out


def top_products(orders: Sequence[CombinedOrder], n: int = TOP_N) -> List[RankedItem]:
    df = line_items_frame(orders)
    if df.empty:
        return []
    df["display_name"] = df["product_name"].astype(str) + " (" + df["product_code"].astype(str) + ")"
    return rank_top_n(df, key="product_code", measure="quantity", n=n, label="display_name")


def compute_order_kpis(orders: Sequence[CombinedOrder]) -> Dict[str, Any]:
    return {
        "total_amount": float(sum(o.amount for o in orders)),
        "order_count": len(orders),
        "total_quantity": int(sum(o.total_quantity for o in orders)),
    }


def top_products_chart(ranked: Sequence[RankedItem]) -> Optional[Dict[str, Any]]:
    if not ranked:
        return None
    data = pd.DataFrame([{"display_name": r.label, "quantity": r.value} for r in ranked])
    order = data["display_name"].tolist()
    bars = (
        alt.Chart(data)
        .mark_bar(color="#a855f7", size=20)
        .encode(
            x=alt.X("quantity:Q", title="Total Quantity"),
            y=alt.Y("display_name:N", sort=order, title=None),
            tooltip=["display_name", alt.Tooltip("quantity:Q", format=",")],
        )
    )
    labels = bars.mark_text(align="left", dx=4, color="#94a3b8").encode(text=alt.Text("quantity:Q", format=","))
    return to_vega_spec((bars + labels).properties(height=400, title="Top 10 Products by Quantity"))


def compute_order_analysis(orders: Sequence[CombinedOrder], params: ViewParams) -> Dict[str, Any]:
    ranked = top_products(orders, params.top_n)
    page = apply_view(orders, params)
    return {
        "view": asdict(params),
        "kpis": compute_order_kpis(orders),
        "orders": [asdict(o) for o in page.items],
        "page": page_meta(page),
        "top_products": [asdict(r) for r in ranked],
        "charts": {"top_products": top_products_chart(ranked)},
    }


def compute_product_sales_view(orders: Sequence[CombinedOrder], params: ViewParams) -> Dict[str, Any]:
    summary = compute_product_sales(orders)
    page = apply_view(summary, params)
    return {
        "view": asdict(params),
        "products": [asdict(p) for p in page.items],
        "page": page_meta(page),
        "grand_total_quantity": int(sum(p.total_quantity for p in summary)),
    }
