from __future__ import annotations

"""Smoothing utilities (EWMA over study days)."""

import pandas as pd


def ewma_by_day(daily: pd.DataFrame, value_col: str, span: int) -> pd.DataFrame:
    """Return a copy of a daily stats frame with f"{value_col}_smooth" added.

    Rows are sorted by date first; gaps between study days are not filled.
    """
    g = daily.sort_values("date").copy()
    g[f"{value_col}_smooth"] = g[value_col].astype("float64").ewm(span=span).mean()
    return g.reset_index(drop=True)
