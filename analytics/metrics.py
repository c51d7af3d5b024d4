from __future__ import annotations

"""Daily, today and per-category statistics over an attempts frame."""

from datetime import datetime, timedelta
from typing import Dict

import pandas as pd

from gabstudy.catalog.categories import CATEGORY_IDS

DAILY_COLUMNS = ["date", "questions_answered", "study_time_ms", "correct_count", "accuracy"]


def _local_dates(df: pd.DataFrame, now: datetime) -> pd.Series:
    tz = now.tzinfo
    ts = df["answered_at"].dt.tz_convert(tz) if tz is not None else df["answered_at"]
    return ts.dt.date


def daily_stats(df: pd.DataFrame, days: int, now: datetime) -> pd.DataFrame:
    """Per-day totals for attempts answered within the last `days` days.

    Days are taken in `now`'s timezone. Only days with activity appear.
    """
    if df.empty:
        return pd.DataFrame(columns=DAILY_COLUMNS)
    since = pd.Timestamp(now - timedelta(days=days))
    recent = df[df["answered_at"] >= since].copy()
    if recent.empty:
        return pd.DataFrame(columns=DAILY_COLUMNS)
    recent["date"] = _local_dates(recent, now)
    g = recent.groupby("date", sort=True)
    out = pd.DataFrame(
        {
            "questions_answered": g.size(),
            "study_time_ms": g["time_ms"].sum(),
            "correct_count": g["is_correct"].sum(),
        }
    ).reset_index()
    out["accuracy"] = (out["correct_count"] / out["questions_answered"]).astype("float64")
    return out[DAILY_COLUMNS]


def today_stats(df: pd.DataFrame, now: datetime) -> Dict[str, int]:
    if df.empty:
        return {"questions_answered": 0, "study_time_ms": 0, "correct_count": 0}
    today = df[_local_dates(df, now) == now.date()]
    return {
        "questions_answered": int(len(today)),
        "study_time_ms": int(today["time_ms"].sum()),
        "correct_count": int(today["is_correct"].sum()),
    }


def category_stats(latest: pd.DataFrame) -> pd.DataFrame:
    """Accuracy and mean time per category, from one row per attempted question.

    Categories are listed in catalog order; untouched ones are omitted.
    """
    cols = ["category", "attempted", "correct", "accuracy", "average_time_ms", "slow"]
    if latest.empty:
        return pd.DataFrame(columns=cols)
    g = latest.groupby("category", sort=False)
    out = pd.DataFrame(
        {
            "attempted": g.size(),
            "correct": g["is_correct"].sum().astype("int64"),
            "average_time_ms": g["time_ms"].mean().round().astype("int64"),
            "slow": g["slow"].sum().astype("int64"),
        }
    )
    out["accuracy"] = out["correct"] / out["attempted"]
    order = [c for c in CATEGORY_IDS if c in out.index]
    return out.loc[order].reset_index().rename(columns={"index": "category"})[cols]


def weak_categories(stats: pd.DataFrame, threshold: float, min_attempted: int = 3) -> pd.DataFrame:
    """Categories with enough samples whose accuracy is under `threshold`, worst first."""
    if stats.empty:
        return stats
    flagged = stats[(stats["attempted"] >= min_attempted) & (stats["accuracy"] < threshold)]
    return flagged.sort_values("accuracy", kind="stable").reset_index(drop=True)
