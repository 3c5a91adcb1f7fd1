from __future__ import annotations

from typing import Any, Dict

import altair as alt

alt.data_transformers.disable_max_rows()

# stack colors for the country x segment chart: five named segments, then "Others"
PALETTE = ["#2dd4bf", "#3b82f6", "#f59e0b", "#a855f7", "#ec4899", "#64748b"]


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def palette_color(index: int) -> str:
    return PALETTE[index % len(PALETTE)]
