from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

ROWS_PER_PAGE = 10


@dataclass(frozen=True)
class ViewParams:
    sort_key: str
    descending: bool = True
    page: int = 1
    page_size: int = ROWS_PER_PAGE
    top_n: int = 10


@dataclass(frozen=True)
class Page:
    items: Tuple[Any, ...] = field(default_factory=tuple)
    page: int = 1
    page_size: int = ROWS_PER_PAGE
    total_items: int = 0
    total_pages: int = 0
    start: int = 0
    end: int = 0


def _as_int(value: object, default: int) -> int:
    try:
        return int(value)  # type: ignore[arg-type]
    except Exception:
        return default


def _is_descending(value: object, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    s = str(value).strip().lower()
    if s in {"desc", "descending"}:
        return True
    if s in {"asc", "ascending"}:
        return False
    return default


def normalize_view_params(
    raw: Optional[dict],
    *,
    allowed_keys: Iterable[str],
    default_key: str,
    default_descending: bool = True,
) -> ViewParams:
    raw = raw or {}
    allowed = set(allowed_keys)

    sort_key = str(raw.get("sort_key") or default_key)
    if sort_key not in allowed:
        sort_key = default_key
    descending = _is_descending(raw.get("direction"), default_descending)

    page = max(1, _as_int(raw.get("page", 1), 1))
    page_size = max(1, min(200, _as_int(raw.get("page_size", ROWS_PER_PAGE), ROWS_PER_PAGE)))
    top_n = max(1, min(200, _as_int(raw.get("top_n", 10), 10)))
    return ViewParams(sort_key=sort_key, descending=descending, page=page, page_size=page_size, top_n=top_n)


def _sort_value(record: Any, key: str) -> Any:
    if isinstance(record, dict):
        return record.get(key)
    return getattr(record, key)


def sort_records(records: Iterable[Any], key: str, *, descending: bool = False) -> List[Any]:
    """Stable sort by one field; equal values keep their incoming order in both directions."""
    return sorted(records, key=lambda r: _sort_value(r, key), reverse=descending)


def paginate(records: Sequence[Any], page: int = 1, page_size: int = ROWS_PER_PAGE) -> Page:
    page_size = max(1, page_size)
    total = len(records)
    total_pages = (total + page_size - 1) // page_size
    page = max(1, min(page, total_pages or 1))
    lo = (page - 1) * page_size
    hi = min(lo + page_size, total)
    return Page(
        items=tuple(records[lo:hi]),
        page=page,
        page_size=page_size,
        total_items=total,
        total_pages=total_pages,
        start=lo + 1 if total else 0,
        end=hi,
    )


def apply_view(records: Sequence[Any], params: ViewParams) -> Page:
    return paginate(sort_records(records, params.sort_key, descending=params.descending), params.page, params.page_size)


def page_meta(page: Page) -> Dict[str, int]:
    return {
        "page": page.page,
        "page_size": page.page_size,
        "total_items": page.total_items,
        "total_pages": page.total_pages,
        "start": page.start,
        "end": page.end,
    }
