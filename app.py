import logging
from contextlib import contextmanager
from dataclasses import asdict
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd
import streamlit as st

from dashboard_core.data import load_dashboard_data
from dashboard_core.filters import ROWS_PER_PAGE, apply_view, normalize_view_params
from dashboard_core.metrics_gp import GP_SORT_KEYS, compute_country_segment, compute_gp_overview
from dashboard_core.metrics_orders import (
    ORDER_SORT_KEYS,
    PRODUCT_SORT_KEYS,
    compute_order_analysis,
    compute_product_sales,
)
from dashboard_core.metrics_reserve import RESERVE_SORT_KEYS, compute_reserve
from dashboard_core.refresh import REFRESH_INTERVAL_SECONDS, DashboardState, RefreshOrchestrator, RefreshRunner, Status

PAGES = ["Reserve", "Gross Profit", "Order Analysis"]

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_base_css_injected"):
        return
    st.markdown(
        """
        <style>
        .app-top-bar {padding: 6px 0 4px;border-bottom: 1px solid #1f2937;margin-bottom: 10px;}
        .app-top-bar .breadcrumb {color: #94a3b8;font-size: 0.9rem;margin-bottom: 2px;}
        .app-top-bar .page-title {font-size: 1.4rem;font-weight: 700;}
        .card {border: 1px solid #1f2937;border-radius: 12px;padding: 16px;
               box-shadow: 0 1px 2px rgba(0,0,0,0.04); margin-bottom: 12px;}
        .card-header {display: flex;justify-content: space-between;align-items: center;margin-bottom: 8px;}
        .card-title {font-weight: 600;font-size: 1.0rem;}
        .card-actions {font-size: 0.9rem;color: #2dd4bf;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


@contextmanager
def card(title: str, actions: Optional[str] = None):
    container = st.container()
    container.markdown(
        f"""
        <div class="card">
          <div class="card-header">
            <div class="card-title">{title}</div>
            <div class="card-actions">{actions or ""}</div>
          </div>
        """,
        unsafe_allow_html=True,
    )
    body = container.container()
    with body:
        yield body
    container.markdown("</div>", unsafe_allow_html=True)


def format_currency(value: float) -> str:
    return f"${value:,.2f}"


def format_last_updated(state: DashboardState) -> str:
    if state.last_updated is None:
        return "Last updated: never"
    return f"Last updated: {state.last_updated:%Y-%m-%d %H:%M:%S}"


def render_page_header(title: str, breadcrumb: str, state: DashboardState, export_df: Optional[pd.DataFrame] = None, export_name: str = "export.csv"):
    inject_base_styles()
    top = st.container()
    c1, c2 = top.columns([7, 3])
    with c1:
        st.markdown(
            f"<div class='app-top-bar'><div class='breadcrumb'>{breadcrumb}</div><div class='page-title'>{title}</div></div>",
            unsafe_allow_html=True,
        )
        st.caption(format_last_updated(state))
    with c2:
        btn_cols = st.columns(2)
        if btn_cols[0].button("Refresh", disabled=state.refreshing, key=f"refresh_{title}"):
            with st.spinner("Refreshing..."):
                run_refresh(get_runner())
            st.rerun()
        if export_df is not None and not export_df.empty:
            btn_cols[1].download_button(
                "Export CSV",
                data=export_df.to_csv(index=False).encode("utf-8"),
                file_name=export_name,
                mime="text/csv",
            )
    if state.status == Status.STALE_ERROR:
        st.warning(f"Showing data from the last successful refresh. Latest refresh failed: {state.error}")


# ---------- Data / refresh ----------
@st.cache_resource
def get_runner() -> RefreshRunner:
    # one loop for every session; sessions run on their own script threads
    return RefreshRunner(RefreshOrchestrator(load_dashboard_data, interval=REFRESH_INTERVAL_SECONDS))


def run_refresh(runner: RefreshRunner) -> DashboardState:
    return runner.refresh()


def is_due(state: DashboardState, interval: float, now: Optional[datetime] = None) -> bool:
    if state.status == Status.LOADING:
        return True
    if state.last_updated is None:
        return False
    now = now or datetime.now()
    return (now - state.last_updated).total_seconds() >= interval


@st.fragment(run_every=REFRESH_INTERVAL_SECONDS)
def auto_refresh():
    runner = get_runner()
    if is_due(runner.state, runner.interval):
        run_refresh(runner)
        st.rerun(scope="app")


def records_frame(records: Sequence[Any], columns: Optional[List[str]] = None) -> pd.DataFrame:
    rows = [r if isinstance(r, dict) else asdict(r) for r in records]
    return pd.DataFrame(rows, columns=columns)


def view_controls(prefix: str, sort_keys: List[str], default_key: str, total_items: int) -> Dict[str, Any]:
    cols = st.columns([3, 2, 2])
    sort_key = cols[0].selectbox("Sort by", sort_keys, index=sort_keys.index(default_key), key=f"{prefix}_sort")
    direction = cols[1].radio("Direction", ["descending", "ascending"], horizontal=True, key=f"{prefix}_dir")
    total_pages = max(1, (total_items + ROWS_PER_PAGE - 1) // ROWS_PER_PAGE)
    page = cols[2].number_input("Page", min_value=1, max_value=total_pages, value=1, step=1, key=f"{prefix}_page")
    return {"sort_key": sort_key, "direction": direction, "page": int(page), "page_size": ROWS_PER_PAGE}


def render_page_caption(page: Dict[str, int]):
    if page["total_items"]:
        st.caption(f"Showing {page['start']}-{page['end']} of {page['total_items']} (page {page['page']} of {page['total_pages']})")


def render_chart(spec: Optional[Dict[str, Any]], empty_text: str = "No data to plot."):
    if spec is None:
        st.info(empty_text)
        return
    st.vega_lite_chart(spec, use_container_width=True)


# ----- Page renderers -----

def render_reserve_page(state: DashboardState):
    orders = state.snapshot.reserve_orders
    render_page_header("Reserve", "Home / Reserve", state, export_df=records_frame(orders), export_name="reserve.csv")
    with card("Reserve Orders"):
        raw = view_controls("reserve", RESERVE_SORT_KEYS, "date", len(orders))
        params = normalize_view_params(raw, allowed_keys=RESERVE_SORT_KEYS, default_key="date")
        payload = compute_reserve(orders, params)
        kpis = payload["kpis"]
        cols = st.columns(4)
        cols[0].metric("Orders", f"{kpis['order_count']:,}")
        cols[1].metric("Amount", format_currency(kpis["total_amount"]))
        cols[2].metric("Reserve", format_currency(kpis["total_reserve"]))
        cols[3].metric("Req. Reserve 12%", format_currency(kpis["total_req_reserve_12"]))
        st.dataframe(records_frame(payload["orders"]), use_container_width=True, hide_index=True)
        render_page_caption(payload["page"])


def render_gp_page(state: DashboardState):
    records = state.snapshot.gp_records
    render_page_header("Gross Profit", "Home / Gross Profit", state, export_df=records_frame(records), export_name="gross_profit.csv")
    raw = {"sort_key": "gp", "direction": "descending"}
    overview = compute_gp_overview(records, normalize_view_params(raw, allowed_keys=GP_SORT_KEYS, default_key="gp"))
    kpis = overview["kpis"]
    cols = st.columns(4)
    cols[0].metric("Total GP", format_currency(kpis["total_gp"]))
    cols[1].metric("Export Value", format_currency(kpis["total_export_value"]))
    cols[2].metric("Import Value", format_currency(kpis["total_import_value"]))
    cols[3].metric("Countries", f"{kpis['country_count']:,}")

    chart_cols = st.columns(2)
    with chart_cols[0]:
        with card("Top 10 Segments by Gross Profit"):
            render_chart(overview["charts"]["top_segments"])
    pivot = compute_country_segment(records)
    with chart_cols[1]:
        with card("Gross Profit by Country and Segment"):
            render_chart(pivot["charts"]["country_segment"])
            if pivot["country_detail"]:
                country = st.selectbox("Segment detail for country", list(pivot["country_detail"]), key="gp_detail_country")
                st.dataframe(pd.DataFrame(pivot["country_detail"][country]), hide_index=True, use_container_width=True)

    with card("Gross Profit Records"):
        raw = view_controls("gp", GP_SORT_KEYS, "gp", len(records))
        params = normalize_view_params(raw, allowed_keys=GP_SORT_KEYS, default_key="gp")
        payload = compute_gp_overview(records, params)
        st.dataframe(records_frame(payload["records"]), use_container_width=True, hide_index=True)
        render_page_caption(payload["page"])


def render_orders_page(state: DashboardState):
    orders = state.snapshot.combined_orders
    render_page_header("Order Analysis", "Home / Order Analysis", state)
    if state.empty_message:
        st.info(state.empty_message)
        return

    with card("Orders"):
        raw = view_controls("orders", ORDER_SORT_KEYS, "date", len(orders))
        params = normalize_view_params(raw, allowed_keys=ORDER_SORT_KEYS, default_key="date")
        payload = compute_order_analysis(orders, params)
        kpis = payload["kpis"]
        cols = st.columns(3)
        cols[0].metric("Total Sales", format_currency(kpis["total_amount"]))
        cols[1].metric("Total Orders", f"{kpis['order_count']:,}")
        cols[2].metric("Total Items", f"{kpis['total_quantity']:,}")
        table = records_frame(payload["orders"]).drop(columns=["products"], errors="ignore")
        st.dataframe(table, use_container_width=True, hide_index=True)
        render_page_caption(payload["page"])
        for order in payload["orders"]:
            if order["products"]:
                with st.expander(f"Order {order['order_no']} ({order['product_count']} products)"):
                    st.dataframe(pd.DataFrame(order["products"]), hide_index=True, use_container_width=True)

    with card("Top 10 Products by Quantity"):
        render_chart(payload["charts"]["top_products"])

    with card("Product Sales Summary"):
        summary = compute_product_sales(orders)
        raw = view_controls("products", PRODUCT_SORT_KEYS, "total_quantity", len(summary))
        params = normalize_view_params(raw, allowed_keys=PRODUCT_SORT_KEYS, default_key="total_quantity")
        page = apply_view(summary, params)
        st.dataframe(records_frame(page.items), use_container_width=True, hide_index=True)
        if page.total_items:
            st.caption(f"Showing {page.start}-{page.end} of {page.total_items}")


# ---------- UI setup ----------
st.set_page_config(page_title="Sales Sheets Dashboard", layout="wide")
inject_base_styles()

runner = get_runner()
if runner.state.status == Status.LOADING:
    with st.spinner("Loading dashboard data..."):
        run_refresh(runner)

state = runner.state
if state.status == Status.ERROR:
    st.error(f"Error loading data: {state.error}")
    if st.button("Try again"):
        with st.spinner("Loading dashboard data..."):
            run_refresh(runner)
        st.rerun()
    st.stop()

with st.sidebar:
    st.markdown("### Navigate")
    nav_choice = st.radio("Navigate", PAGES, index=0, label_visibility="collapsed")
    st.markdown("---")
    st.caption(format_last_updated(state))
    st.caption(f"Auto-refresh every {int(runner.interval)}s")
    auto_refresh()

if nav_choice == "Reserve":
    render_reserve_page(state)
elif nav_choice == "Gross Profit":
    render_gp_page(state)
else:
    render_orders_page(state)
