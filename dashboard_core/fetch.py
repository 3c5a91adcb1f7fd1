from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx

from dashboard_core.errors import FormatError, TransportError
from dashboard_core.models import GPRecord, OrderHeader, OrderLineItem, ReserveOrder
from dashboard_core.normalize import build_records, cell_values
from dashboard_core.schema import GP_FIELDS, ORDER_FIELDS, ORDER_PRODUCT_FIELDS, RESERVE_FIELDS

logger = logging.getLogger(__name__)

RESERVE_SHEET_ID = "1Q-FWc9tnZhhLtn0kpp_9HmvPR9g_8VQOD12WBWPzboM"
ORDER_SHEET_ID = "1UhYJoAhHaeqo_0HRzmoBY3FD1VD-Kbw_9iDACk9jEZ0"

GVIZ_URL = "https://docs.google.com/spreadsheets/d/{sheet_id}/gviz/tq"
ENVELOPE_MARKER = "google.visualization.Query.setResponse"
REQUEST_TIMEOUT = 20.0


@dataclass(frozen=True)
class SheetSource:
    key: str
    sheet_id: str
    sheet_name: str
    cell_range: str

    @property
    def url(self) -> str:
        return GVIZ_URL.format(sheet_id=self.sheet_id)

    def params(self) -> Dict[str, str]:
        # "t" busts any intermediate cache so each refresh sees fresh data
        return {
            "tqx": "out:json",
            "sheet": self.sheet_name,
            "range": self.cell_range,
            "t": str(int(time.time() * 1000)),
        }


RESERVE_SOURCE = SheetSource("reserve", RESERVE_SHEET_ID, "Latam_Reserve", "A:I")
GP_SOURCE = SheetSource("gp", RESERVE_SHEET_ID, "Country Wise Highest Selling GP", "A:G")
ORDER_SOURCE = SheetSource("order", ORDER_SHEET_ID, "Order", "A:G")
ORDER_PRODUCT_SOURCE = SheetSource("order_products", ORDER_SHEET_ID, "Orderbyproduct", "A:D")


def decode_gviz_envelope(text: str, *, source: Optional[str] = None) -> List[List[Any]]:
    """Extract the raw cell values of every row from a gviz JSONP response.

    A payload without ``table.rows`` is an empty sheet, not an error.
    """
    if ENVELOPE_MARKER not in text:
        raise FormatError(
            "Invalid response format from Google Sheet. Check if the sheet name is correct and it's public.",
            source=source,
        )
    start = text.find("(")
    end = text.rfind(")")
    if start == -1 or end <= start:
        raise FormatError("Google Sheet response is missing its callback wrapper.", source=source)
    try:
        payload = json.loads(text[start + 1 : end])
    except json.JSONDecodeError as e:
        raise FormatError(f"Google Sheet payload is not valid JSON: {e}", source=source) from e
    if not isinstance(payload, dict):
        raise FormatError("Google Sheet payload is not an object.", source=source)

    if payload.get("status") == "error":
        logger.warning("gviz reported an error for %s: %s", source, payload.get("errors"))
    table = payload.get("table") or {}
    rows = table.get("rows") if isinstance(table, dict) else None
    if not rows:
        return []
    if not isinstance(rows, list):
        raise FormatError("Google Sheet table.rows is not a list.", source=source)
    return [cell_values(row if isinstance(row, dict) else None) for row in rows]


async def fetch_rows(client: httpx.AsyncClient, source: SheetSource) -> List[List[Any]]:
    try:
        response = await client.get(source.url, params=source.params(), timeout=REQUEST_TIMEOUT)
    except httpx.HTTPError as e:
        raise TransportError(f"Request to sheet '{source.sheet_name}' failed: {e}", source=source.key) from e
    if not response.is_success:
        raise TransportError(f"HTTP error! status: {response.status_code}", source=source.key)
    rows = decode_gviz_envelope(response.text, source=source.key)
    logger.debug("fetched %d raw rows from %s", len(rows), source.sheet_name)
    return rows


async def fetch_reserve_orders(client: httpx.AsyncClient, *, now: Optional[datetime] = None) -> List[ReserveOrder]:
    rows = await fetch_rows(client, RESERVE_SOURCE)
    return build_records(rows, RESERVE_FIELDS, ReserveOrder, required="party_name", now=now)


async def fetch_gp_records(client: httpx.AsyncClient, *, now: Optional[datetime] = None) -> List[GPRecord]:
    rows = await fetch_rows(client, GP_SOURCE)
    return build_records(rows, GP_FIELDS, GPRecord, required="country", reject=("country",), now=now)


async def fetch_order_headers(client: httpx.AsyncClient, *, now: Optional[datetime] = None) -> List[OrderHeader]:
    rows = await fetch_rows(client, ORDER_SOURCE)
    return build_records(rows, ORDER_FIELDS, OrderHeader, required="order_no", now=now)


async def fetch_order_products(client: httpx.AsyncClient, *, now: Optional[datetime] = None) -> List[OrderLineItem]:
    rows = await fetch_rows(client, ORDER_PRODUCT_SOURCE)
    return build_records(rows, ORDER_PRODUCT_FIELDS, OrderLineItem, required="order_no", now=now)
