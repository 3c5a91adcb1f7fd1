from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List, Optional, Sequence

import altair as alt
import pandas as pd

from dashboard_core.charts import PALETTE, palette_color, to_vega_spec
from dashboard_core.filters import ViewParams, apply_view, page_meta
from dashboard_core.models import CountrySegmentPivot, GPRecord, PivotRow, RankedItem
from dashboard_core.ranking import TOP_N, drop_blank_keys, rank_top_n

GP_SORT_KEYS = ["country", "segment", "bonhorffer_code", "export_value", "import_value", "gp"]
GP_COLUMNS = GP_SORT_KEYS

PIVOT_TOP_SEGMENTS = 5
OTHERS = "Others"
DETAIL_LIMIT = 10


def gp_frame(records: Sequence[GPRecord]) -> pd.DataFrame:
    return pd.DataFrame([asdict(r) for r in records], columns=GP_COLUMNS)


def top_segments(records: Sequence[GPRecord], n: int = TOP_N) -> List[RankedItem]:
    return rank_top_n(gp_frame(records), key="segment", measure="gp", n=n)


def country_segment_pivot(records: Sequence[GPRecord], top_k: int = PIVOT_TOP_SEGMENTS) -> CountrySegmentPivot:
    """GP per country with one column per globally top segment plus "Others".

    Rows come out in descending row-total order; countries with equal totals
    keep the order they first appear in the sheet.
    """
    df = drop_blank_keys(gp_frame(records), "segment")
    if df.empty:
        return CountrySegmentPivot(stacks=(), colors={}, rows=(), country_detail={})
    df = df.assign(gp=df["gp"].astype(float))

    segment_totals = df.groupby("segment", sort=False)["gp"].sum().sort_values(ascending=False, kind="stable")
    # a sheet segment literally named "Others" lands in the catch-all column
    top = [str(s) for s in segment_totals.index if s != OTHERS][:top_k]
    stacks = top + [OTHERS]
    colors = {stack: palette_color(i) for i, stack in enumerate(top)}
    colors[OTHERS] = PALETTE[-1]

    df = df.assign(stack=df["segment"].where(df["segment"].isin(top), OTHERS))
    countries = df["country"].drop_duplicates().tolist()
    pivot = (
        df.groupby(["country", "stack"], sort=False)["gp"]
        .sum()
        .unstack(fill_value=0.0)
        .reindex(index=countries, columns=stacks, fill_value=0.0)
    )
    pivot["row_total"] = pivot[stacks].sum(axis=1)
    pivot = pivot.sort_values("row_total", ascending=False, kind="stable")

    rows = tuple(
        PivotRow(
            country=str(country),
            values={s: float(row[s]) for s in stacks},
            total=float(row["row_total"]),
        )
        for country, row in pivot.iterrows()
    )

    by_segment = df.groupby(["country", "segment"], sort=False)["gp"].sum().reset_index()
    detail: Dict[str, tuple] = {}
    for country, group in by_segment.groupby("country", sort=False):
        top_rows = group.sort_values("gp", ascending=False, kind="stable").head(DETAIL_LIMIT)
        detail[str(country)] = tuple((str(s), float(v)) for s, v in zip(top_rows["segment"], top_rows["gp"]))

    return CountrySegmentPivot(stacks=tuple(stacks), colors=colors, rows=rows, country_detail=detail)


def compute_gp_kpis(records: Sequence[GPRecord]) -> Dict[str, Any]:
    return {
        "total_gp": float(sum(r.gp for r in records)),
        "total_export_value": float(sum(r.export_value for r in records)),
        "total_import_value": float(sum(r.import_value for r in records)),
        "country_count": len({r.country for r in records}),
    }


def top_segments_chart(ranked: Sequence[RankedItem]) -> Optional[Dict[str, Any]]:
    if not ranked:
        return None
    data = pd.DataFrame([{"segment": r.label, "gp": r.value} for r in ranked])
    bars = (
        alt.Chart(data)
        .mark_bar(color="#2dd4bf")
        .encode(
            x=alt.X("segment:N", sort=data["segment"].tolist(), title="Segment", axis=alt.Axis(labelAngle=-45)),
            y=alt.Y("gp:Q", title="Gross Profit", axis=alt.Axis(format="$~s")),
            tooltip=["segment", alt.Tooltip("gp:Q", format="$,.2f")],
        )
        .properties(height=400, title="Top 10 Segments by Gross Profit")
    )
    return to_vega_spec(bars)


def country_segment_chart(pivot: CountrySegmentPivot) -> Optional[Dict[str, Any]]:
    if not pivot.rows:
        return None
    long = pd.DataFrame(
        [
            {"country": row.country, "stack": stack, "stack_order": i, "gp": row.values[stack]}
            for row in pivot.rows
            for i, stack in enumerate(pivot.stacks)
        ]
    )
    stacks = list(pivot.stacks)
    chart = (
        alt.Chart(long)
        .mark_bar()
        .encode(
            x=alt.X("country:N", sort=[r.country for r in pivot.rows], title=None, axis=alt.Axis(labelAngle=-45)),
            y=alt.Y("gp:Q", stack="zero", title="Gross Profit", axis=alt.Axis(format="$~s")),
            color=alt.Color(
                "stack:N",
                scale=alt.Scale(domain=stacks, range=[pivot.colors[s] for s in stacks]),
                sort=stacks,
                legend=alt.Legend(title=None, orient="top"),
            ),
            order=alt.Order("stack_order:Q"),
            tooltip=["country", "stack", alt.Tooltip("gp:Q", format="$,.2f")],
        )
        .properties(height=420, title="Gross Profit by Country and Segment")
    )
    return to_vega_spec(chart)


def compute_gp_overview(records: Sequence[GPRecord], params: ViewParams) -> Dict[str, Any]:
    page = apply_view(records, params)
    ranked = top_segments(records, params.top_n)
    return {
        "view": asdict(params),
        "kpis": compute_gp_kpis(records),
        "records": [asdict(r) for r in page.items],
        "page": page_meta(page),
        "top_segments": [asdict(r) for r in ranked],
        "charts": {"top_segments": top_segments_chart(ranked)},
    }


def compute_country_segment(records: Sequence[GPRecord]) -> Dict[str, Any]:
    pivot = country_segment_pivot(records)
    return {
        "stacks": list(pivot.stacks),
        "colors": pivot.colors,
        "rows": [{"country": r.country, **r.values, "total": r.total} for r in pivot.rows],
        "country_detail": {
            country: [{"segment": s, "gp": gp} for s, gp in items] for country, items in pivot.country_detail.items()
        },
        "charts": {"country_segment": country_segment_chart(pivot)},
    }
