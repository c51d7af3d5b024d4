"""Small builders shared by the test modules."""

from __future__ import annotations

import os
import time
import unittest
from datetime import datetime, timedelta, timezone
from itertools import count

from gabstudy.models import Attempt, Question, ReviewScheduleEntry

T0 = datetime(2026, 3, 2, 9, 30, tzinfo=timezone.utc)
CHOICES = ("A", "B", "C", "D", "E")

_ids = count(1)


def question(qid: str, category: str = "table", difficulty: int = 1, correct_index: int = 0) -> Question:
    return Question(id=qid, category=category, difficulty=difficulty, prompt=f"prompt {qid}", choices=CHOICES, correct_index=correct_index)


def attempt(qid: str, correct: bool, ms: int, at: datetime = T0, aid: str | None = None) -> Attempt:
    return Attempt(
        id=aid or f"a{next(_ids)}",
        question_id=qid,
        answered_at=at,
        is_correct=correct,
        selected_index=0 if correct else 1,
        time_ms=ms,
    )


def entry(qid: str, days_from_t0: float, stage: int = 0) -> ReviewScheduleEntry:
    return ReviewScheduleEntry(question_id=qid, next_review_at=T0 + timedelta(days=days_from_t0), stage=stage)


def latest(*attempts: Attempt) -> dict:
    return {a.question_id: a for a in attempts}


def use_local_zone(case, name: str) -> None:
    """Switch the process-local time zone for one test (POSIX only)."""
    if not hasattr(time, "tzset"):
        raise unittest.SkipTest("time.tzset is not available")
    old = os.environ.get("TZ")

    def restore() -> None:
        if old is None:
            os.environ.pop("TZ", None)
        else:
            os.environ["TZ"] = old
        time.tzset()

    os.environ["TZ"] = name
    time.tzset()
    case.addCleanup(restore)
