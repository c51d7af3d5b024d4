from __future__ import annotations

"""Session composition: which questions to study next.

All functions are pure. They take the catalog, the latest attempt for each
question and the due review entries, and return ordered lists of Question
records. Sorting is always stable, so equal keys keep catalog order.

`target_times` is an optional category -> seconds override (user settings);
anything missing falls back to `target_time_for`.
"""

import math
from datetime import datetime
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from ..catalog.categories import category_label, target_time_for, target_time_ms
from ..models import Attempt, Question, Recommendation, ReviewScheduleEntry

LatestAttempts = Mapping[str, Attempt]
TargetTimes = Optional[Mapping[str, int]]

WRONG_PENALTY = 10
REVIEW_SECONDS_PER_QUESTION = 50
SPEED_SECONDS_PER_QUESTION = 45
MIN_CATEGORY_SAMPLE = 3
WEAK_ACCURACY_THRESHOLD = 0.7


def latest_attempts_by_question(attempts: Iterable[Attempt]) -> Dict[str, Attempt]:
    """Reduce an attempt history to the most recent attempt per question.

    The newest `answered_at` wins. On equal timestamps the attempt seen first
    is kept, which matches stores that return rows most-recent-first.
    """
    latest: Dict[str, Attempt] = {}
    for a in attempts:
        cur = latest.get(a.question_id)
        if cur is None or a.answered_at > cur.answered_at:
            latest[a.question_id] = a
    return latest


def is_slow_correct(question: Question, attempt: Optional[Attempt], target_times: TargetTimes = None) -> bool:
    if attempt is None or not attempt.is_correct:
        return False
    return attempt.time_ms > target_time_ms(question.category, target_times)


def slow_correct_pool(
    all_questions: Sequence[Question],
    latest_attempts: LatestAttempts,
    target_times: TargetTimes = None,
) -> List[Question]:
    """Correct but over target time, slowest first."""
    slow = [q for q in all_questions if is_slow_correct(q, latest_attempts.get(q.id), target_times)]
    return sorted(slow, key=lambda q: latest_attempts[q.id].time_ms, reverse=True)


def _due_pool(all_questions: Sequence[Question], due_reviews: Sequence[ReviewScheduleEntry]) -> List[Question]:
    due_by_id: Dict[str, ReviewScheduleEntry] = {}
    for r in due_reviews:
        due_by_id.setdefault(r.question_id, r)
    due = [q for q in all_questions if q.id in due_by_id]
    return sorted(due, key=lambda q: due_by_id[q.id].next_review_at)


def _wrong_recent_pool(all_questions: Sequence[Question], latest_attempts: LatestAttempts) -> List[Question]:
    wrong = [q for q in all_questions if q.id in latest_attempts and not latest_attempts[q.id].is_correct]
    return sorted(wrong, key=lambda q: latest_attempts[q.id].answered_at, reverse=True)


def _unseen_pool(all_questions: Sequence[Question], latest_attempts: LatestAttempts) -> List[Question]:
    unseen = [q for q in all_questions if q.id not in latest_attempts]
    return sorted(unseen, key=lambda q: q.difficulty)


def pick_quick_session(
    target_seconds: float,
    all_questions: Sequence[Question],
    latest_attempts: LatestAttempts,
    due_reviews: Sequence[ReviewScheduleEntry],
    target_times: TargetTimes = None,
) -> List[Question]:
    """Fill a time budget from four pools in strict priority order.

    1. due for review, earliest first
    2. correct but slow, slowest first
    3. wrong last time, most recent first
    4. never attempted, easiest first

    Each pick costs its category target time. Stops as soon as the estimate
    reaches `target_seconds`; a question is picked at most once.
    """
    pools = [
        _due_pool(all_questions, due_reviews),
        slow_correct_pool(all_questions, latest_attempts, target_times),
        _wrong_recent_pool(all_questions, latest_attempts),
        _unseen_pool(all_questions, latest_attempts),
    ]
    picked: List[Question] = []
    picked_ids: set[str] = set()
    estimated = 0
    for pool in pools:
        for q in pool:
            if q.id in picked_ids:
                continue
            picked.append(q)
            picked_ids.add(q.id)
            estimated += target_time_for(q.category, target_times)
            if estimated >= target_seconds:
                return picked
    return picked


def pick_review_session(
    all_questions: Sequence[Question],
    latest_attempts: LatestAttempts,
    due_reviews: Sequence[ReviewScheduleEntry],
    max_count: int = 10,
) -> List[Question]:
    """Due items first, then missed items, oldest attempt first."""
    due_ids = {r.question_id for r in due_reviews}

    def wanted(q: Question) -> bool:
        a = latest_attempts.get(q.id)
        return q.id in due_ids or (a is not None and not a.is_correct)

    def order(q: Question):
        a = latest_attempts.get(q.id)
        # no attempt sorts ahead of any timestamp
        return (0 if q.id in due_ids else 1, a is not None, a.answered_at if a is not None else 0)

    candidates = sorted((q for q in all_questions if wanted(q)), key=order)
    return candidates[: max(max_count, 0)]


def pick_speed_session(
    all_questions: Sequence[Question],
    latest_attempts: LatestAttempts,
    max_count: int = 10,
    target_times: TargetTimes = None,
) -> List[Question]:
    return slow_correct_pool(all_questions, latest_attempts, target_times)[: max(max_count, 0)]


def weakness_score(question: Question, attempt: Attempt, target_times: TargetTimes = None) -> float:
    score = float(WRONG_PENALTY) if not attempt.is_correct else 0.0
    over_ms = attempt.time_ms - target_time_ms(question.category, target_times)
    return score + max(0.0, over_ms / 1000)


def pick_weakness_test(
    all_questions: Sequence[Question],
    latest_attempts: LatestAttempts,
    count: int = 20,
    target_times: TargetTimes = None,
) -> List[Question]:
    """Attempted questions, weakest first. Wrong answers outrank slow ones."""
    scored = [(q, weakness_score(q, latest_attempts[q.id], target_times)) for q in all_questions if q.id in latest_attempts]
    scored.sort(key=lambda item: item[1], reverse=True)
    return [q for q, _ in scored[: max(count, 0)]]


def category_accuracy(
    all_questions: Sequence[Question],
    latest_attempts: LatestAttempts,
) -> Dict[str, Dict[str, int]]:
    """Per-category {"correct", "total"} over latest attempts of known questions."""
    by_id = {q.id: q for q in all_questions}
    acc: Dict[str, Dict[str, int]] = {}
    for attempt in latest_attempts.values():
        q = by_id.get(attempt.question_id)
        if q is None:
            continue
        bucket = acc.setdefault(q.category, {"correct": 0, "total": 0})
        bucket["total"] += 1
        bucket["correct"] += 1 if attempt.is_correct else 0
    return acc


def generate_recommendations(
    all_questions: Sequence[Question],
    latest_attempts: LatestAttempts,
    due_reviews: Sequence[ReviewScheduleEntry],
    now: Optional[datetime] = None,
    target_times: TargetTimes = None,
) -> List[Recommendation]:
    """Home-screen cards: review, speed, weakest category. Each at most once."""
    if now is None:
        now = datetime.now().astimezone()
    elif now.tzinfo is None:
        now = now.astimezone()
    recs: List[Recommendation] = []

    # re-check against the clock; the due list may be stale
    due_count = sum(1 for r in due_reviews if r.next_review_at <= now)
    if due_count > 0:
        n = min(due_count, 5)
        recs.append(
            Recommendation(
                title=f"Review drill: {n} questions",
                reason=f"{due_count} questions are due for review",
                type="review",
                estimated_minutes=math.ceil(due_count * REVIEW_SECONDS_PER_QUESTION / 60),
                count=n,
            )
        )

    slow_count = sum(1 for q in all_questions if is_slow_correct(q, latest_attempts.get(q.id), target_times))
    if slow_count > 0:
        n = min(slow_count, 3)
        recs.append(
            Recommendation(
                title=f"Speed reinforcement: {n} questions",
                reason="Answered correctly but over the target time",
                type="speed",
                estimated_minutes=math.ceil(n * SPEED_SECONDS_PER_QUESTION / 60),
                count=n,
            )
        )

    worst: Optional[tuple[str, float]] = None
    for category, stats in category_accuracy(all_questions, latest_attempts).items():
        if stats["total"] < MIN_CATEGORY_SAMPLE:
            continue
        accuracy = stats["correct"] / stats["total"]
        if worst is None or accuracy < worst[1]:
            worst = (category, accuracy)
    if worst is not None and worst[1] < WEAK_ACCURACY_THRESHOLD:
        label = category_label(worst[0], short=True)
        recs.append(
            Recommendation(
                title=f"{label} weak spot: 3 questions",
                reason=f"{label} accuracy is {round(worst[1] * 100)}%",
                type="category_weak",
                estimated_minutes=3,
                count=3,
                category=worst[0],
            )
        )
    return recs
