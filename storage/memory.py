from __future__ import annotations

"""In-memory stores. Same contracts as the Parquet stores, nothing persisted."""

from dataclasses import replace
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from gabstudy.models import Attempt, Question, QuestionNote, ReviewScheduleEntry, SessionState, TestResult
from gabstudy.policy.session_composer import latest_attempts_by_question

from .schema import AppSettings, QuestionNoteRow, to_utc


class MemoryCatalog:
    def __init__(self, questions: Iterable[Question]) -> None:
        self._questions = list(questions)

    def questions(self) -> List[Question]:
        return list(self._questions)


class MemoryAttemptStore:
    def __init__(self, attempts: Iterable[Attempt] = ()) -> None:
        self._attempts: Dict[str, Attempt] = {}
        for a in attempts:
            self.save_attempt(a)

    def save_attempt(self, attempt: Attempt) -> None:
        # insert-or-replace by attempt id
        self._attempts[attempt.id] = attempt

    def all_attempts(self) -> List[Attempt]:
        return sorted(self._attempts.values(), key=lambda a: a.answered_at, reverse=True)

    def attempts_for_question(self, question_id: str) -> List[Attempt]:
        return [a for a in self.all_attempts() if a.question_id == question_id]

    def latest_attempts(self) -> Dict[str, Attempt]:
        return latest_attempts_by_question(self.all_attempts())

    def attempts_since(self, since: datetime) -> List[Attempt]:
        return [a for a in self.all_attempts() if a.answered_at >= to_utc(since)]

    def clear(self) -> None:
        self._attempts.clear()


class MemoryScheduleStore:
    def __init__(self, entries: Iterable[ReviewScheduleEntry] = ()) -> None:
        self._entries: Dict[str, ReviewScheduleEntry] = {}
        for e in entries:
            self.upsert(e)

    def upsert(self, entry: ReviewScheduleEntry) -> None:
        self._entries[entry.question_id] = entry

    def get(self, question_id: str) -> Optional[ReviewScheduleEntry]:
        return self._entries.get(question_id)

    def all_entries(self) -> List[ReviewScheduleEntry]:
        return sorted(self._entries.values(), key=lambda e: e.next_review_at)

    def due(self, now: datetime) -> List[ReviewScheduleEntry]:
        return [e for e in self.all_entries() if e.next_review_at <= to_utc(now)]

    def clear(self) -> None:
        self._entries.clear()


class MemorySettings:
    def __init__(self, settings: Optional[AppSettings] = None) -> None:
        self._settings = settings or AppSettings()

    def get(self) -> AppSettings:
        return self._settings.model_copy(deep=True)

    def save(self, settings: AppSettings) -> None:
        self._settings = AppSettings.model_validate(settings.model_dump())

    def target_times(self) -> Dict[str, int]:
        return dict(self._settings.category_target_times)


class MemoryTestResultStore:
    __test__ = False

    def __init__(self) -> None:
        self._results: List[TestResult] = []

    def save_result(self, result: TestResult) -> None:
        self._results = [r for r in self._results if r.id != result.id]
        self._results.append(result)

    def results(self) -> List[TestResult]:
        return sorted(self._results, key=lambda r: r.completed_at, reverse=True)

    def clear(self) -> None:
        self._results.clear()


class MemoryNoteStore:
    def __init__(self) -> None:
        self._notes: Dict[str, QuestionNote] = {}

    def get(self, question_id: str) -> Optional[QuestionNote]:
        return self._notes.get(question_id)

    def save(self, note: QuestionNote) -> QuestionNote:
        row = QuestionNoteRow.from_note(note)
        stored = replace(note, tags=tuple(row.tags), updated_at=row.updated_at)
        self._notes[note.question_id] = stored
        return stored

    def bookmarked_ids(self) -> List[str]:
        return [qid for qid, n in self._notes.items() if n.bookmarked]


class MemorySessionStateStore:
    def __init__(self) -> None:
        self._states: Dict[str, SessionState] = {}

    def save(self, state: SessionState) -> None:
        # re-insert so the latest save is last
        self._states.pop(state.id, None)
        self._states[state.id] = state

    def active(self) -> Optional[SessionState]:
        if not self._states:
            return None
        return list(self._states.values())[-1]

    def clear(self, state_id: str) -> None:
        self._states.pop(state_id, None)
