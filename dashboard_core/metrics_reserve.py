from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, Sequence

from dashboard_core.filters import ViewParams, apply_view, page_meta
from dashboard_core.models import ReserveOrder

RESERVE_SORT_KEYS = [
    "date",
    "order_fy",
    "party_name",
    "amount",
    "reserve",
    "total",
    "order_no",
    "segment",
    "req_reserve_12",
]


def compute_reserve_kpis(orders: Sequence[ReserveOrder]) -> Dict[str, Any]:
    return {
        "order_count": len(orders),
        "total_amount": float(sum(o.amount for o in orders)),
        "total_reserve": float(sum(o.reserve for o in orders)),
        "grand_total": float(sum(o.total for o in orders)),
        "total_req_reserve_12": float(sum(o.req_reserve_12 for o in orders)),
    }


def compute_reserve(orders: Sequence[ReserveOrder], params: ViewParams) -> Dict[str, Any]:
    page = apply_view(orders, params)
    return {
        "view": asdict(params),
        "kpis": compute_reserve_kpis(orders),
        "orders": [asdict(o) for o in page.items],
        "page": page_meta(page),
    }
