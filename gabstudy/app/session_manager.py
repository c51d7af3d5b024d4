from __future__ import annotations

"""Session Manager: wires storage providers to the scheduling core.

The scheduler and the composer are pure; this class does the I/O around
them. It takes its storage providers explicitly, so there is no process-wide
storage handle. Notes and saved sessions are optional providers.
"""

import random
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence
from uuid import uuid4

from storage.providers import (
    AttemptStore,
    CatalogProvider,
    NoteStore,
    ScheduleStore,
    SessionStateStore,
    SettingsProvider,
    TestResultStore,
)

from ..catalog.categories import CATEGORY_MAP, target_time_ms
from ..catalog.loader import questions_by_category
from ..config.config import category_target_times
from ..errors import GabStudyError, InsufficientHistoryError, NotEnoughQuestionsError, UnknownQuestionError
from ..models import (
    Attempt,
    CategoryScore,
    Question,
    QuestionNote,
    ReviewScheduleEntry,
    SessionAnswer,
    SessionState,
    TestResult,
)
from ..policy.session_composer import (
    generate_recommendations,
    pick_quick_session,
    pick_review_session,
    pick_speed_session,
    pick_weakness_test,
)
from ..scheduler.review_scheduler import REVIEW_INTERVALS_DAYS, compute_next_review
from ..util.randomness import random_sample
from .explain import trace as xtrace
from .presets import QUICK_DURATIONS_S, SESSION_DEFAULTS

MIN_WEAKNESS_HISTORY = 5
SESSION_KINDS = ("quick", "review", "speed", "weakness", "random", "category", "bookmarked")


def _now() -> datetime:
    return datetime.now().astimezone()


def _aware(now: Optional[datetime]) -> datetime:
    """`now`, or the current time; naive values are read as local time."""
    if now is None:
        return _now()
    return now.astimezone() if now.tzinfo is None else now


@dataclass(frozen=True)
class Snapshot:
    """Inputs for one composition, read from the stores at `now`."""

    questions: List[Question]
    latest: Dict[str, Attempt]
    due: List[ReviewScheduleEntry]
    target_times: Dict[str, int]
    now: datetime


@dataclass(frozen=True)
class SessionPlan:
    kind: str
    question_ids: List[str]
    started_at: datetime
    fallback: bool = False
    category: Optional[str] = None


@dataclass(frozen=True)
class AnswerOutcome:
    attempt: Attempt
    entry: ReviewScheduleEntry
    slow: bool


class SessionManager:
    def __init__(
        self,
        catalog: CatalogProvider,
        attempts: AttemptStore,
        schedule: ScheduleStore,
        settings: SettingsProvider,
        results: Optional[TestResultStore] = None,
        *,
        notes: Optional[NoteStore] = None,
        sessions: Optional[SessionStateStore] = None,
        cfg: Optional[Dict[str, Any]] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.catalog = catalog
        self.attempts = attempts
        self.schedule = schedule
        self.settings = settings
        self.results = results
        self.notes = notes
        self.sessions = sessions
        self.cfg = cfg or {}
        self.rng = rng or random.Random()

    # --- configuration lookups ---

    def _session_cfg(self) -> Dict[str, Any]:
        return self.cfg.get("session", {})

    def _default_count(self, kind: str) -> int:
        key = {"review": "review_count", "speed": "speed_count", "weakness": "weakness_count", "random": "fallback_count"}.get(kind)
        if key and key in self._session_cfg():
            return int(self._session_cfg()[key])
        return int(SESSION_DEFAULTS.get(kind, SESSION_DEFAULTS["random"])["count"])

    def intervals(self) -> Sequence[int]:
        return self.cfg.get("schedule", {}).get("intervals_days") or REVIEW_INTERVALS_DAYS

    def target_times(self) -> Dict[str, int]:
        """Config category targets, overridden by the user's settings."""
        merged = category_target_times(self.cfg)
        merged.update(self.settings.target_times())
        return merged

    def _question(self, question_id: str) -> Question:
        for q in self.catalog.questions():
            if q.id == question_id:
                return q
        raise UnknownQuestionError(question_id)

    # --- composition ---

    def snapshot(self, now: Optional[datetime] = None) -> Snapshot:
        now = _aware(now)
        return Snapshot(
            questions=self.catalog.questions(),
            latest=self.attempts.latest_attempts(),
            due=self.schedule.due(now),
            target_times=self.target_times(),
            now=now,
        )

    def compose(
        self,
        kind: str,
        *,
        duration_s: Optional[int] = None,
        count: Optional[int] = None,
        category: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> SessionPlan:
        """Build an ordered question list for a session.

        Empty results fall back to a random sample of the catalog, except for
        bookmarked sessions.
        Raises InsufficientHistoryError for a weakness test with too little history.
        """
        if kind not in SESSION_KINDS:
            raise ValueError(f"Unknown session kind: {kind}")
        snap = self.snapshot(now)
        n = count if count is not None else self._default_count(kind)

        if kind == "quick":
            durations = self._session_cfg().get("quick_durations") or QUICK_DURATIONS_S
            target = duration_s if duration_s is not None else durations[0]
            picked = pick_quick_session(target, snap.questions, snap.latest, snap.due, snap.target_times)
        elif kind == "review":
            picked = pick_review_session(snap.questions, snap.latest, snap.due, n)
        elif kind == "speed":
            picked = pick_speed_session(snap.questions, snap.latest, n, snap.target_times)
        elif kind == "weakness":
            if len(snap.latest) < MIN_WEAKNESS_HISTORY:
                raise InsufficientHistoryError(len(snap.latest), MIN_WEAKNESS_HISTORY)
            picked = pick_weakness_test(snap.questions, snap.latest, n, snap.target_times)
        elif kind == "bookmarked":
            marked = set(self._notes().bookmarked_ids())
            picked = [q for q in snap.questions if q.id in marked][: max(n, 0)]
        elif kind == "category":
            if category is None:
                raise ValueError("category session needs a category")
            pool = questions_by_category(snap.questions, category)
            picked = pick_weakness_test(pool, snap.latest, n, snap.target_times)
            rest = [q for q in pool if q not in picked]
            picked += random_sample(rest, n - len(picked), self.rng)
        else:
            picked = random_sample(snap.questions, n, self.rng)

        fallback = False
        # an empty bookmark list stays empty
        if not picked and kind != "bookmarked":
            fallback = True
            pool = snap.questions if category is None else questions_by_category(snap.questions, category)
            picked = random_sample(pool, self._default_count("random") if count is None else count, self.rng)
            xtrace("fallback_used", {"kind": kind, "picked": len(picked)})

        plan = SessionPlan(
            kind=kind,
            question_ids=[q.id for q in picked],
            started_at=snap.now,
            fallback=fallback,
            category=category,
        )
        xtrace("session_composed", {"kind": kind, "due": len(snap.due), "ids": plan.question_ids})
        return plan

    def compose_test(
        self,
        count: int,
        *,
        categories: Optional[Sequence[str]] = None,
        allow_short: bool = False,
        now: Optional[datetime] = None,
    ) -> SessionPlan:
        """Random test questions, optionally limited to some categories.

        Raises NotEnoughQuestionsError when the pool is smaller than `count`,
        unless `allow_short` lets a preset run with what the catalog has.
        """
        if count <= 0:
            raise ValueError("count must be > 0")
        pool = self.catalog.questions()
        if categories:
            unknown = [c for c in categories if c not in CATEGORY_MAP]
            if unknown:
                raise ValueError(f"Unknown category: {', '.join(unknown)}")
            pool = [q for q in pool if q.category in categories]
        if len(pool) < count and not allow_short:
            raise NotEnoughQuestionsError(len(pool), count, categories or ())
        picked = random_sample(pool, count, self.rng)
        plan = SessionPlan(kind="test", question_ids=[q.id for q in picked], started_at=_aware(now))
        xtrace("test_composed", {"categories": list(categories or ()), "ids": plan.question_ids})
        return plan

    def recommendations(self, now: Optional[datetime] = None):
        snap = self.snapshot(now)
        # all entries, not just due ones: the composer re-checks against `now`
        entries = self.schedule.all_entries()
        return generate_recommendations(snap.questions, snap.latest, entries, snap.now, snap.target_times)

    # --- answers ---

    def record_answer(
        self,
        question_id: str,
        selected_index: int,
        time_ms: int,
        now: Optional[datetime] = None,
        attempt_id: Optional[str] = None,
    ) -> AnswerOutcome:
        """Grade and store an answer, then replace the question's schedule entry.

        The attempt is saved before the schedule so an interrupted call leaves
        at most a stale schedule entry.
        """
        q = self._question(question_id)
        if q.choices and not 0 <= selected_index < len(q.choices):
            raise ValueError(f"selected_index {selected_index} out of range for {question_id}")
        if time_ms < 0:
            raise ValueError("time_ms must be >= 0")
        now = _aware(now)
        is_correct = selected_index == q.correct_index
        attempt = Attempt(
            id=attempt_id or f"{question_id}-{uuid4().hex[:12]}",
            question_id=question_id,
            answered_at=now,
            is_correct=is_correct,
            selected_index=selected_index,
            time_ms=int(time_ms),
        )
        self.attempts.save_attempt(attempt)
        entry = compute_next_review(question_id, is_correct, self.schedule.get(question_id), now, intervals=self.intervals())
        self.schedule.upsert(entry)
        slow = is_correct and time_ms > target_time_ms(q.category, self.target_times())
        xtrace(
            "answer_recorded",
            {"question": question_id, "correct": is_correct, "ms": time_ms, "stage": entry.stage, "next": entry.next_review_at},
        )
        return AnswerOutcome(attempt=attempt, entry=entry, slow=slow)

    def finish_test(
        self,
        answers: Sequence[SessionAnswer],
        *,
        label: str = "",
        now: Optional[datetime] = None,
    ) -> TestResult:
        """Record every answered item and summarise the test per category."""
        now = _aware(now)
        graded: List[SessionAnswer] = []
        for ans in answers:
            if not ans.answered:
                graded.append(SessionAnswer(question_id=ans.question_id, time_ms=ans.time_ms, flagged=ans.flagged))
                continue
            outcome = self.record_answer(ans.question_id, int(ans.selected_index), ans.time_ms, now=now)
            graded.append(
                SessionAnswer(
                    question_id=ans.question_id,
                    selected_index=ans.selected_index,
                    is_correct=outcome.attempt.is_correct,
                    time_ms=ans.time_ms,
                    flagged=ans.flagged,
                )
            )

        per_cat: Dict[str, Dict[str, int]] = {}
        for ans in graded:
            cat = self._question(ans.question_id).category
            bucket = per_cat.setdefault(cat, {"total": 0, "correct": 0, "time_ms": 0})
            bucket["total"] += 1
            bucket["correct"] += 1 if ans.is_correct else 0
            bucket["time_ms"] += ans.time_ms
        breakdown = tuple(
            CategoryScore(
                category=cat,
                total=b["total"],
                correct=b["correct"],
                average_time_ms=round(b["time_ms"] / b["total"]) if b["total"] else 0,
            )
            for cat, b in per_cat.items()
        )

        answered = [a for a in graded if a.answered]
        total_ms = sum(a.time_ms for a in answered)
        result_id = f"test-{uuid4().hex[:12]}"
        result = TestResult(
            id=result_id,
            session_id=result_id,
            completed_at=now,
            total_questions=len(graded),
            correct_count=sum(1 for a in graded if a.is_correct),
            average_time_ms=round(total_ms / len(answered)) if answered else 0,
            category_breakdown=breakdown,
            answers=tuple(graded),
            label=label,
        )
        if self.results is not None:
            self.results.save_result(result)
        xtrace("test_finished", {"id": result.id, "correct": result.correct_count, "total": result.total_questions})
        return result

    # --- notes ---

    def _notes(self) -> NoteStore:
        if self.notes is None:
            raise GabStudyError("No note store configured")
        return self.notes

    def note(self, question_id: str) -> QuestionNote:
        """The stored note, or an empty one for a question nobody annotated."""
        self._question(question_id)
        return self._notes().get(question_id) or QuestionNote(question_id=question_id)

    def update_note(
        self,
        question_id: str,
        *,
        bookmarked: Optional[bool] = None,
        add_tags: Sequence[str] = (),
        remove_tags: Sequence[str] = (),
        memo: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> QuestionNote:
        """Change part of a note; None and empty arguments leave fields alone.

        Unknown mistake tags are rejected by the store's row validation.
        """
        current = self.note(question_id)
        tags = [t for t in current.tags if t not in remove_tags] + [t for t in add_tags if t not in current.tags]
        updated = QuestionNote(
            question_id=question_id,
            bookmarked=current.bookmarked if bookmarked is None else bookmarked,
            tags=tuple(tags),
            memo=current.memo if memo is None else memo,
            updated_at=_aware(now),
        )
        stored = self._notes().save(updated)
        xtrace("note_saved", {"question": question_id, "bookmarked": stored.bookmarked, "tags": list(stored.tags)})
        return stored

    # --- saved sessions ---

    def new_session_state(
        self,
        kind: str,
        question_ids: Sequence[str],
        *,
        time_limit_s: Optional[int] = None,
        label: str = "",
        now: Optional[datetime] = None,
    ) -> SessionState:
        return SessionState(
            id=f"session-{uuid4().hex[:12]}",
            kind=kind,
            question_ids=tuple(question_ids),
            started_at=_aware(now),
            time_limit_s=time_limit_s,
            label=label,
        )

    def save_progress(self, state: SessionState) -> None:
        if self.sessions is not None:
            self.sessions.save(state)

    def clear_session(self, state: SessionState) -> None:
        if self.sessions is not None:
            self.sessions.clear(state.id)

    def resume(self) -> Optional[SessionState]:
        """The last interrupted session, timer adjusted to the user's setting.

        With resume_timer_behavior "reset" the elapsed time starts again from zero.
        """
        if self.sessions is None:
            return None
        state = self.sessions.active()
        if state is None:
            return None
        behavior = self.settings.get().resume_timer_behavior
        if behavior == "reset":
            state = replace(state, elapsed_ms=0)
        xtrace("session_resumed", {"id": state.id, "index": state.current_index, "elapsed_ms": state.elapsed_ms, "timer": behavior})
        return state
