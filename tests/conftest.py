import json
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

import pytest

from dashboard_core.models import CombinedOrder, GPRecord, OrderLineItem

FIXED_NOW = datetime(2024, 6, 1, 12, 0, 0)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


def _row(values: List[Any]) -> Optional[Dict[str, Any]]:
    return {"c": [None if v is None else {"v": v} for v in values]}


def _envelope(rows: Optional[List[List[Any]]] = None, *, status: str = "ok") -> str:
    table: Dict[str, Any] = {"cols": []}
    if rows is not None:
        table["rows"] = [_row(r) for r in rows]
    payload = {"version": "0.6", "reqId": "0", "status": status, "table": table}
    return "/*O_o*/\ngoogle.visualization.Query.setResponse(" + json.dumps(payload) + ");"


@pytest.fixture
def gviz_envelope() -> Callable[..., str]:
    """Build a gviz JSONP body from plain lists of cell values."""
    return _envelope


@pytest.fixture
def make_order() -> Callable[..., CombinedOrder]:
    def _make(order_no: str, items: List[tuple], *, amount: float = 0.0, date: datetime = FIXED_NOW) -> CombinedOrder:
        products = tuple(OrderLineItem(order_no, code, qty, name) for code, name, qty in items)
        return CombinedOrder(
            date=date,
            fy="FY24",
            sales_person="Ana",
            segment="Seg",
            country="Brazil",
            order_no=order_no,
            amount=amount,
            products=products,
        )

    return _make


@pytest.fixture
def make_gp() -> Callable[..., GPRecord]:
    def _make(country: str, segment: str, gp: float) -> GPRecord:
        return GPRecord(
            country=country,
            segment=segment,
            bonhorffer_code="N/A",
            export_value=0.0,
            import_value=0.0,
            gp=gp,
        )

    return _make
