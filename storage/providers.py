from __future__ import annotations

"""Provider interfaces the session manager depends on."""

from datetime import datetime
from typing import Dict, List, Optional, Protocol, runtime_checkable

from gabstudy.models import Attempt, Question, QuestionNote, ReviewScheduleEntry, SessionState, TestResult

from .schema import AppSettings


@runtime_checkable
class CatalogProvider(Protocol):
    def questions(self) -> List[Question]: ...


@runtime_checkable
class AttemptStore(Protocol):
    def save_attempt(self, attempt: Attempt) -> None: ...

    def attempts_for_question(self, question_id: str) -> List[Attempt]:
        """All attempts for one question, most recent first."""
        ...

    def latest_attempts(self) -> Dict[str, Attempt]: ...

    def attempts_since(self, since: datetime) -> List[Attempt]: ...

    def all_attempts(self) -> List[Attempt]: ...


@runtime_checkable
class ScheduleStore(Protocol):
    def upsert(self, entry: ReviewScheduleEntry) -> None: ...

    def get(self, question_id: str) -> Optional[ReviewScheduleEntry]: ...

    def due(self, now: datetime) -> List[ReviewScheduleEntry]:
        """Entries with next_review_at <= now, earliest first."""
        ...

    def all_entries(self) -> List[ReviewScheduleEntry]: ...


@runtime_checkable
class SettingsProvider(Protocol):
    def get(self) -> AppSettings: ...

    def save(self, settings: AppSettings) -> None: ...

    def target_times(self) -> Dict[str, int]: ...


@runtime_checkable
class TestResultStore(Protocol):
    __test__ = False

    def save_result(self, result: TestResult) -> None: ...

    def results(self) -> List[TestResult]: ...


@runtime_checkable
class NoteStore(Protocol):
    def get(self, question_id: str) -> Optional[QuestionNote]: ...

    def save(self, note: QuestionNote) -> QuestionNote:
        """Insert or replace; returns the note as stored."""
        ...

    def bookmarked_ids(self) -> List[str]: ...


@runtime_checkable
class SessionStateStore(Protocol):
    def save(self, state: SessionState) -> None: ...

    def active(self) -> Optional[SessionState]:
        """The most recently saved session, if any."""
        ...

    def clear(self, state_id: str) -> None: ...
