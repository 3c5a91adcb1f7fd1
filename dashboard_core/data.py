from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import httpx

from dashboard_core.fetch import fetch_gp_records, fetch_order_headers, fetch_order_products, fetch_reserve_orders
from dashboard_core.models import CombinedOrder, DashboardSnapshot, OrderHeader, OrderLineItem

logger = logging.getLogger(__name__)


# ---------------- Join ----------------
def join_orders(headers: Sequence[OrderHeader], line_items: Iterable[OrderLineItem]) -> List[CombinedOrder]:
    """Attach to every order header the line items sharing its order number.

    Line items keep their relative source order; items whose order number has
    no header are dropped.
    """
    if not headers:
        return []
    by_order: Dict[str, List[OrderLineItem]] = {}
    for item in line_items:
        by_order.setdefault(item.order_no, []).append(item)
    return [CombinedOrder.from_header(h, tuple(by_order.get(h.order_no, ()))) for h in headers]


def _raise_first_error(results: Sequence[Any]) -> None:
    for result in results:
        if isinstance(result, BaseException):
            raise result


# ---------------- Public API ----------------
async def fetch_order_analysis(client: httpx.AsyncClient, *, now: Optional[datetime] = None) -> List[CombinedOrder]:
    # both fetches settle before the join; one failure fails the whole feed
    results = await asyncio.gather(
        fetch_order_headers(client, now=now),
        fetch_order_products(client, now=now),
        return_exceptions=True,
    )
    _raise_first_error(results)
    headers, products = results
    return join_orders(headers, products)


async def _fetch_everything(client: httpx.AsyncClient, now: Optional[datetime]) -> Tuple[Any, ...]:
    results = await asyncio.gather(
        fetch_reserve_orders(client, now=now),
        fetch_gp_records(client, now=now),
        fetch_order_headers(client, now=now),
        fetch_order_products(client, now=now),
        return_exceptions=True,
    )
    _raise_first_error(results)
    return tuple(results)


async def load_dashboard_data(
    client: Optional[httpx.AsyncClient] = None, *, now: Optional[datetime] = None
) -> DashboardSnapshot:
    """Fetch all four sheets concurrently and build one consistent snapshot."""
    if client is None:
        async with httpx.AsyncClient(follow_redirects=True) as own_client:
            results = await _fetch_everything(own_client, now)
    else:
        results = await _fetch_everything(client, now)
    reserve_orders, gp_records, headers, products = results

    snapshot = DashboardSnapshot(
        reserve_orders=tuple(reserve_orders),
        gp_records=tuple(gp_records),
        combined_orders=tuple(join_orders(headers, products)),
        fetched_at=datetime.now(),
    )
    logger.info("dashboard data loaded: %s", snapshot.row_counts())
    return snapshot
