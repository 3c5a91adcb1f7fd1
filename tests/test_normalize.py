from datetime import datetime

from dashboard_core.models import GPRecord, OrderLineItem, ReserveOrder
from dashboard_core.normalize import (
    as_text,
    build_records,
    cell_values,
    is_blank,
    normalize_row,
    parse_currency,
    parse_google_date,
)
from dashboard_core.schema import GP_FIELDS, ORDER_FIELDS, ORDER_PRODUCT_FIELDS, RESERVE_FIELDS


def test_google_date_month_is_zero_indexed(fixed_now):
    assert parse_google_date("Date(2024,0,15)", now=fixed_now) == datetime(2024, 1, 15)
    assert parse_google_date("Date(2023, 11, 31)", now=fixed_now) == datetime(2023, 12, 31)


def test_google_date_falls_back_to_now(fixed_now):
    assert parse_google_date("15/01/2024", now=fixed_now) == fixed_now
    assert parse_google_date(None, now=fixed_now) == fixed_now
    assert parse_google_date(45000, now=fixed_now) == fixed_now
    assert parse_google_date("Date(2024,1,31)", now=fixed_now) == fixed_now


def test_parse_currency():
    assert parse_currency("$1,234.50") == 1234.5
    assert parse_currency(99) == 99.0
    assert parse_currency("abc") == 0.0
    assert parse_currency(None) == 0.0
    assert parse_currency("") == 0.0
    assert parse_currency("100 USD") == 100.0
    assert parse_currency("$1,250.75 approx") == 1250.75
    assert parse_currency("USD 100") == 0.0


def test_as_text_and_blank():
    assert as_text(None) == "N/A"
    assert as_text(1001.0) == "1001"
    assert as_text("X-1") == "X-1"
    assert is_blank(None)
    assert is_blank("N/A")
    assert is_blank("   ")
    assert not is_blank("Brazil")


def test_cell_values_handles_null_cells():
    assert cell_values({"c": [{"v": "a"}, None, {"v": 3}]}) == ["a", None, 3]
    assert cell_values({"c": [{"f": "only formatted"}]}) == [None]
    assert cell_values(None) == []


def test_normalize_row_defaults_missing_cells(fixed_now):
    values = normalize_row(["Date(2024,2,1)", "FY24"], RESERVE_FIELDS, now=fixed_now)
    assert values["date"] == datetime(2024, 3, 1)
    assert values["order_fy"] == "FY24"
    assert values["party_name"] == "N/A"
    assert values["amount"] == 0.0
    assert values["req_reserve_12"] == 0.0


def test_normalize_order_amount_is_currency(fixed_now):
    values = normalize_row(
        ["Date(2024,0,1)", "FY24", "Ana", "Seg", "Chile", 5001, "$2,500.00"], ORDER_FIELDS, now=fixed_now
    )
    assert values["order_no"] == "5001"
    assert values["amount"] == 2500.0


def test_quantity_is_integer():
    values = normalize_row(["1001", "P1", 4.0, "Widget"], ORDER_PRODUCT_FIELDS)
    assert values["quantity"] == 4
    assert isinstance(values["quantity"], int)
    assert normalize_row(["1001", "P1", "four", "Widget"], ORDER_PRODUCT_FIELDS)["quantity"] == 0


def test_build_records_drops_blank_required_and_keeps_order(fixed_now):
    rows = [
        ["Date(2024,0,1)", "FY24", "Acme", 10, 1, 11, "1", "S", 1.2],
        ["Date(2024,0,2)", "FY24", None, 10, 1, 11, "2", "S", 1.2],
        ["Date(2024,0,3)", "FY24", "  ", 10, 1, 11, "3", "S", 1.2],
        ["Date(2024,0,4)", "FY24", "Beta", 20, 2, 22, "4", "S", 2.4],
    ]
    records = build_records(rows, RESERVE_FIELDS, ReserveOrder, required="party_name", now=fixed_now)
    assert [r.party_name for r in records] == ["Acme", "Beta"]
    assert all(isinstance(r, ReserveOrder) for r in records)


def test_build_records_rejects_header_rows():
    rows = [
        ["Country", "Segment", "Code", None, "Export", "Import", "GP"],
        ["Peru", "Valves", "B1", None, 100, 50, 50],
    ]
    records = build_records(rows, GP_FIELDS, GPRecord, required="country", reject=("country",))
    assert [r.country for r in records] == ["Peru"]
    assert records[0].gp == 50.0


def test_line_item_field_order():
    records = build_records([["1001", "P1", 3, "Widget"]], ORDER_PRODUCT_FIELDS, OrderLineItem, required="order_no")
    assert records == [OrderLineItem(order_no="1001", product_code="P1", quantity=3, product_name="Widget")]
