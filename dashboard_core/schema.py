"""Column maps for the four sheets.

Each map lists (column index, field name, kind). The normalizer walks a map
instead of indexing cells inline, so a column shift in a sheet only touches
this file.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Tuple

SENTINEL = "N/A"


class FieldKind(str, Enum):
    STRING = "string"
    NUMBER = "number"
    INTEGER = "integer"
    DATE = "date"
    CURRENCY = "currency"


@dataclass(frozen=True)
class FieldSpec:
    index: int
    name: str
    kind: FieldKind


FieldMap = Tuple[FieldSpec, ...]

# Latam_Reserve, A:I
RESERVE_FIELDS: FieldMap = (
    FieldSpec(0, "date", FieldKind.DATE),
    FieldSpec(1, "order_fy", FieldKind.STRING),
    FieldSpec(2, "party_name", FieldKind.STRING),
    FieldSpec(3, "amount", FieldKind.NUMBER),
    FieldSpec(4, "reserve", FieldKind.NUMBER),
    FieldSpec(5, "total", FieldKind.NUMBER),
    FieldSpec(6, "order_no", FieldKind.STRING),
    FieldSpec(7, "segment", FieldKind.STRING),
    FieldSpec(8, "req_reserve_12", FieldKind.NUMBER),
)

# Country Wise Highest Selling GP, A:G (column D is not used)
GP_FIELDS: FieldMap = (
    FieldSpec(0, "country", FieldKind.STRING),
    FieldSpec(1, "segment", FieldKind.STRING),
    FieldSpec(2, "bonhorffer_code", FieldKind.STRING),
    FieldSpec(4, "export_value", FieldKind.NUMBER),
    FieldSpec(5, "import_value", FieldKind.NUMBER),
    FieldSpec(6, "gp", FieldKind.NUMBER),
)

# Order, A:G
ORDER_FIELDS: FieldMap = (
    FieldSpec(0, "date", FieldKind.DATE),
    FieldSpec(1, "fy", FieldKind.STRING),
    FieldSpec(2, "sales_person", FieldKind.STRING),
    FieldSpec(3, "segment", FieldKind.STRING),
    FieldSpec(4, "country", FieldKind.STRING),
    FieldSpec(5, "order_no", FieldKind.STRING),
    FieldSpec(6, "amount", FieldKind.CURRENCY),
)

# Orderbyproduct, A:D (quantity sits before the name)
ORDER_PRODUCT_FIELDS: FieldMap = (
    FieldSpec(0, "order_no", FieldKind.STRING),
    FieldSpec(1, "product_code", FieldKind.STRING),
    FieldSpec(2, "quantity", FieldKind.INTEGER),
    FieldSpec(3, "product_name", FieldKind.STRING),
)
