from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, TypeVar

from dashboard_core.schema import SENTINEL, FieldKind, FieldMap

T = TypeVar("T")

GOOGLE_DATE_RE = re.compile(r"^Date\((-?\d+),\s*(-?\d+),\s*(-?\d+)\)$")
LEADING_NUMBER_RE = re.compile(r"\s*[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def parse_google_date(token: object, *, now: Optional[datetime] = None) -> datetime:
    """Parse a gviz date token like ``Date(2024,0,15)`` (month is zero-indexed).

    Anything else falls back to ``now`` (the current time when not given).
    """
    fallback = now or datetime.now()
    if not isinstance(token, str):
        return fallback
    match = GOOGLE_DATE_RE.match(token.strip())
    if not match:
        return fallback
    year, month, day = (int(g) for g in match.groups())
    try:
        return datetime(year, month + 1, day)
    except ValueError:
        return fallback


def parse_currency(value: object) -> float:
    """Numbers pass through; strings drop ``$`` and ``,`` and keep their leading number.

    ``"100 USD"`` reads as 100. A string with no leading number reads as 0.
    """
    if _is_number(value):
        return float(value)  # type: ignore[arg-type]
    if not isinstance(value, str):
        return 0.0
    match = LEADING_NUMBER_RE.match(re.sub(r"[$,]", "", value))
    if not match:
        return 0.0
    return float(match.group(0))


def as_text(value: object) -> str:
    if value is None:
        return SENTINEL
    if isinstance(value, float) and value.is_integer():
        # order numbers typed as numbers come back as 1001.0
        return str(int(value))
    return str(value)


def as_number(value: object) -> float:
    if _is_number(value):
        return float(value)  # type: ignore[arg-type]
    return 0.0


def as_integer(value: object) -> int:
    if _is_number(value):
        return int(value)  # type: ignore[arg-type]
    return 0


def is_blank(value: object) -> bool:
    if value is None:
        return True
    s = str(value)
    return s == SENTINEL or not s.strip()


def cell_values(row: Optional[Dict[str, Any]]) -> List[Any]:
    """Flatten one gviz row ``{"c": [{"v": ...}, null, ...]}`` into a list of raw values."""
    if not row:
        return []
    cells = row.get("c") or []
    return [cell.get("v") if isinstance(cell, dict) else None for cell in cells]


def normalize_row(cells: Sequence[Any], fields: FieldMap, *, now: Optional[datetime] = None) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for spec in fields:
        raw = cells[spec.index] if spec.index < len(cells) else None
        if spec.kind is FieldKind.STRING:
            out[spec.name] = as_text(raw)
        elif spec.kind is FieldKind.NUMBER:
            out[spec.name] = as_number(raw)
        elif spec.kind is FieldKind.INTEGER:
            out[spec.name] = as_integer(raw)
        elif spec.kind is FieldKind.CURRENCY:
            out[spec.name] = parse_currency(raw)
        elif spec.kind is FieldKind.DATE:
            out[spec.name] = parse_google_date(raw, now=now)
    return out


def build_records(
    rows: Iterable[Sequence[Any]],
    fields: FieldMap,
    factory: Callable[..., T],
    *,
    required: str,
    reject: Iterable[str] = (),
    now: Optional[datetime] = None,
) -> List[T]:
    """Normalize rows and drop those whose required field is blank.

    ``reject`` holds values that also drop a row when the required field
    matches them case-insensitively (header rows that leaked into the data
    range). Source order is preserved.
    """
    rejected = {r.lower() for r in reject}
    records: List[T] = []
    for cells in rows:
        values = normalize_row(cells, fields, now=now)
        key = values.get(required)
        if is_blank(key):
            continue
        if rejected and str(key).strip().lower() in rejected:
            continue
        records.append(factory(**values))
    return records
