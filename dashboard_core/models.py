from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Tuple


@dataclass(frozen=True)
class ReserveOrder:
    date: datetime
    order_fy: str
    party_name: str
    amount: float
    reserve: float
    total: float
    order_no: str
    segment: str
    req_reserve_12: float


@dataclass(frozen=True)
class GPRecord:
    country: str
    segment: str
    bonhorffer_code: str
    export_value: float
    import_value: float
    gp: float


@dataclass(frozen=True)
class OrderHeader:
    date: datetime
    fy: str
    sales_person: str
    segment: str
    country: str
    order_no: str
    amount: float


@dataclass(frozen=True)
class OrderLineItem:
    order_no: str
    product_code: str
    quantity: int
    product_name: str


@dataclass(frozen=True)
class CombinedOrder:
    date: datetime
    fy: str
    sales_person: str
    segment: str
    country: str
    order_no: str
    amount: float
    products: Tuple[OrderLineItem, ...] = ()
    product_count: int = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "product_count", len(self.products))

    @classmethod
    def from_header(cls, header: OrderHeader, products: Tuple[OrderLineItem, ...]) -> "CombinedOrder":
        return cls(
            date=header.date,
            fy=header.fy,
            sales_person=header.sales_person,
            segment=header.segment,
            country=header.country,
            order_no=header.order_no,
            amount=header.amount,
            products=tuple(products),
        )

    @property
    def total_quantity(self) -> int:
        return sum(p.quantity for p in self.products)


@dataclass(frozen=True)
class ProductSaleSummary:
    product_code: str
    product_name: str
    total_quantity: int
    order_count: int
    avg_quantity_per_order: float
    percentage_of_total: float


@dataclass(frozen=True)
class RankedItem:
    key: str
    label: str
    value: float


@dataclass(frozen=True)
class PivotRow:
    country: str
    values: Dict[str, float]
    total: float


@dataclass(frozen=True)
class CountrySegmentPivot:
    stacks: Tuple[str, ...]
    colors: Dict[str, str]
    rows: Tuple[PivotRow, ...]
    # all segments per country, desc by gp, first 10 (tooltip detail)
    country_detail: Dict[str, Tuple[Tuple[str, float], ...]]


@dataclass(frozen=True)
class DashboardSnapshot:
    reserve_orders: Tuple[ReserveOrder, ...]
    gp_records: Tuple[GPRecord, ...]
    combined_orders: Tuple[CombinedOrder, ...]
    fetched_at: datetime

    def row_counts(self) -> Dict[str, int]:
        return {
            "reserve_orders": len(self.reserve_orders),
            "gp_records": len(self.gp_records),
            "combined_orders": len(self.combined_orders),
            "order_line_items": sum(o.product_count for o in self.combined_orders),
        }
