from __future__ import annotations

from typing import List, Optional

import pandas as pd

from dashboard_core.models import RankedItem
from dashboard_core.normalize import is_blank

TOP_N = 10


def drop_blank_keys(df: pd.DataFrame, key: str) -> pd.DataFrame:
    if df.empty or key not in df.columns:
        return df
    return df[~df[key].apply(is_blank)]


def rank_top_n(
    df: pd.DataFrame,
    *,
    key: str,
    measure: str,
    n: int = TOP_N,
    label: Optional[str] = None,
) -> List[RankedItem]:
    """Sum ``measure`` per ``key`` and keep the ``n`` largest.

    Keys are grouped in first-encounter order and the sort is stable, so ties
    keep that order. Blank or "N/A" keys never rank.
    """
    if df.empty or key not in df.columns or measure not in df.columns:
        return []
    base = drop_blank_keys(df, key)
    if base.empty:
        return []
    label_col = label if label and label in base.columns else key
    base = base.assign(_label=base[label_col].astype(str))
    grouped = (
        base.groupby(key, sort=False)
        .agg(value=(measure, "sum"), label=("_label", "first"))
        .reset_index()
        .sort_values("value", ascending=False, kind="stable")
        .head(max(0, int(n)))
    )
    return [
        RankedItem(key=str(r[key]), label=str(r["label"]), value=float(r["value"]))
        for r in grouped.to_dict(orient="records")
    ]
