from __future__ import annotations

"""Turn attempt history into an analysis frame."""

from dataclasses import asdict
from typing import Iterable, Mapping, Optional

import numpy as np
import pandas as pd

from gabstudy.catalog.categories import target_time_ms
from gabstudy.models import Attempt, Question
from gabstudy.policy.session_composer import WRONG_PENALTY

COLUMNS = ["id", "question_id", "answered_at", "is_correct", "selected_index", "time_ms"]


def attempts_frame(
    attempts: Iterable[Attempt] | pd.DataFrame,
    catalog: Iterable[Question],
    target_times: Optional[Mapping[str, int]] = None,
) -> pd.DataFrame:
    """One row per attempt joined with its question.

    Adds category, difficulty, target_ms, slow (correct but over target),
    overage_s and weakness (same score the weakness test uses).
    Attempts for questions missing from the catalog are dropped.
    """
    if isinstance(attempts, pd.DataFrame):
        df = attempts[COLUMNS].copy()
    else:
        df = pd.DataFrame([asdict(a) for a in attempts], columns=COLUMNS)
    df["answered_at"] = pd.to_datetime(df["answered_at"], utc=True)
    df["is_correct"] = df["is_correct"].astype(bool)
    df["time_ms"] = df["time_ms"].astype("int64")

    qdf = pd.DataFrame(
        [{"question_id": q.id, "category": q.category, "difficulty": q.difficulty} for q in catalog],
        columns=["question_id", "category", "difficulty"],
    )
    qdf["target_ms"] = [target_time_ms(c, target_times) for c in qdf["category"]]
    out = df.merge(qdf, on="question_id", how="inner", sort=False)

    over_s = (out["time_ms"] - out["target_ms"]) / 1000.0
    out["overage_s"] = np.maximum(over_s, 0.0)
    out["slow"] = out["is_correct"] & (out["time_ms"] > out["target_ms"])
    out["weakness"] = np.where(out["is_correct"], 0.0, float(WRONG_PENALTY)) + out["overage_s"]
    return out.sort_values("answered_at", ascending=False, kind="stable").reset_index(drop=True)


def latest_frame(df: pd.DataFrame) -> pd.DataFrame:
    """Keep the most recent row per question (first row wins on ties)."""
    ordered = df.sort_values("answered_at", ascending=False, kind="stable")
    return ordered.drop_duplicates(subset=["question_id"], keep="first").reset_index(drop=True)
