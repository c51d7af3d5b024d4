from __future__ import annotations

"""Leitner-style review scheduler.

A correct answer promotes the question one stage, a wrong answer demotes it
one stage (never below 0). The stage indexes the interval table; stages past
the end reuse the last interval.

    stage:  0  1  2   3   4   5+
    days:   1  3  7  14  30  30
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence

from ..models import ReviewScheduleEntry

REVIEW_INTERVALS_DAYS: Sequence[int] = (1, 3, 7, 14, 30)


def _now() -> datetime:
    return datetime.now().astimezone()


def add_days(base: datetime, days: int) -> datetime:
    """Add whole days keeping the wall-clock time of day.

    `datetime.now().astimezone()` carries a fixed offset, so plain addition
    drifts by an hour across a DST change. A fixed offset that matches the
    local clock is shifted on the naive local clock and re-localised; other
    zones get plain 24h days.
    """
    tz = base.tzinfo
    if isinstance(tz, timezone) and tz is not timezone.utc and base.utcoffset() == base.astimezone().utcoffset():
        local = base.astimezone().replace(tzinfo=None) + timedelta(days=days)
        return local.astimezone()
    return base + timedelta(days=days)


def interval_for_stage(stage: int, intervals: Sequence[int] = REVIEW_INTERVALS_DAYS) -> int:
    """Review interval in days for a stage, clamped to the table."""
    idx = min(max(int(stage), 0), len(intervals) - 1)
    return int(intervals[idx])


def next_stage(current_stage: int, is_correct: bool) -> int:
    if is_correct:
        return current_stage + 1
    return max(current_stage - 1, 0)


def compute_next_review(
    question_id: str,
    is_correct: bool,
    current_entry: Optional[ReviewScheduleEntry],
    now: Optional[datetime] = None,
    *,
    intervals: Sequence[int] = REVIEW_INTERVALS_DAYS,
) -> ReviewScheduleEntry:
    """Return the schedule entry that replaces `current_entry` after an answer.

    A missing entry counts as stage 0. `now` defaults to the local wall-clock
    time; whole days are added to it so the time of day is kept.
    """
    current_stage = current_entry.stage if current_entry is not None else 0
    stage = next_stage(current_stage, is_correct)
    base = now if now is not None else _now()
    return ReviewScheduleEntry(
        question_id=question_id,
        next_review_at=add_days(base, interval_for_stage(stage, intervals)),
        stage=stage,
    )


def is_review_due(entry: ReviewScheduleEntry, now: Optional[datetime] = None) -> bool:
    return entry.next_review_at <= (now if now is not None else _now())


def interval_label(stage: int, intervals: Sequence[int] = REVIEW_INTERVALS_DAYS) -> str:
    """Human-friendly label for the interval a stage maps to."""
    days = interval_for_stage(stage, intervals)
    if days == 1:
        return "tomorrow"
    if days < 7:
        return f"in {days} days"
    if days == 7:
        return "in 1 week"
    if days == 14:
        return "in 2 weeks"
    return f"in {days} days"
