import pytest

from dashboard_core.charts import PALETTE
from dashboard_core.filters import ViewParams
from dashboard_core.metrics_gp import OTHERS, compute_country_segment, compute_gp_overview, country_segment_pivot, top_segments


@pytest.fixture
def records(make_gp):
    return [
        make_gp("Brazil", "S1", 100),
        make_gp("Brazil", "S2", 90),
        make_gp("Peru", "S3", 80),
        make_gp("Peru", "S4", 70),
        make_gp("Chile", "S5", 60),
        make_gp("Chile", "S6", 20),
        make_gp("Chile", "S7", 10),
        make_gp("Peru", "N/A", 999),
    ]


def test_top_segments_skip_blank(records):
    ranked = top_segments(records, 3)
    assert [r.key for r in ranked] == ["S1", "S2", "S3"]


def test_pivot_stacks_and_others(records):
    pivot = country_segment_pivot(records)
    assert pivot.stacks == ("S1", "S2", "S3", "S4", "S5", OTHERS)
    assert pivot.colors[OTHERS] == PALETTE[-1]
    assert pivot.colors["S1"] == PALETTE[0]
    chile = next(r for r in pivot.rows if r.country == "Chile")
    assert chile.values[OTHERS] == 30.0
    assert chile.values["S5"] == 60.0
    assert chile.values["S1"] == 0.0


def test_pivot_preserves_totals(records):
    pivot = country_segment_pivot(records)
    for row in pivot.rows:
        assert sum(row.values.values()) == pytest.approx(row.total)
    assert sum(r.total for r in pivot.rows) == pytest.approx(430.0)


def test_pivot_rows_sorted_by_total(records):
    pivot = country_segment_pivot(records)
    assert [r.country for r in pivot.rows] == ["Brazil", "Peru", "Chile"]


def test_pivot_detail(records):
    detail = country_segment_pivot(records).country_detail
    assert detail["Chile"] == (("S5", 60.0), ("S6", 20.0), ("S7", 10.0))


def test_pivot_empty(make_gp):
    pivot = country_segment_pivot([make_gp("Peru", "N/A", 5)])
    assert pivot.rows == ()
    assert compute_country_segment([])["charts"]["country_segment"] is None


def test_country_segment_payload(records):
    payload = compute_country_segment(records)
    assert payload["stacks"][-1] == OTHERS
    assert payload["rows"][0]["country"] == "Brazil"
    assert payload["rows"][0]["total"] == 190.0
    assert payload["charts"]["country_segment"] is not None


def test_gp_overview(records):
    payload = compute_gp_overview(records, ViewParams(sort_key="gp", page_size=3))
    assert [r["gp"] for r in payload["records"]] == [999.0, 100.0, 90.0]
    assert payload["kpis"]["country_count"] == 3
    assert payload["page"]["total_items"] == 8


def test_country_with_only_long_tail_segment(records, make_gp):
    pivot = country_segment_pivot(records + [make_gp("Mexico", "S6", 15), make_gp("Mexico", "S6", 5)])
    mexico = next(r for r in pivot.rows if r.country == "Mexico")
    assert all(mexico.values[s] == 0.0 for s in ("S1", "S2", "S3", "S4", "S5"))
    assert mexico.values[OTHERS] == 20.0


def test_segment_named_others_joins_catch_all(make_gp):
    pivot = country_segment_pivot([make_gp("Peru", "Others", 50), make_gp("Peru", "S1", 10), make_gp("Chile", "S2", 5)])
    assert pivot.stacks == ("S1", "S2", OTHERS)
    peru = pivot.rows[0]
    assert peru.country == "Peru"
    assert peru.values == {"S1": 10.0, "S2": 0.0, OTHERS: 50.0}
    assert peru.total == 60.0


def test_integer_gp_values(make_gp):
    pivot = country_segment_pivot([make_gp("Peru", "S1", 3), make_gp("Chile", "S2", 4)])
    assert [r.total for r in pivot.rows] == [4.0, 3.0]
    assert pivot.rows[0].values["S1"] == 0.0
