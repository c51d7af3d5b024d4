from __future__ import annotations

"""Value records shared by the scheduler, the session composer and storage."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal, Optional, Tuple

Category = Literal["table", "bar", "pie", "composite"]
RecommendationType = Literal["review", "speed", "category_weak", "drill"]


@dataclass(frozen=True)
class CategoryInfo:
    id: str
    label: str
    label_short: str
    target_time_sec: int


@dataclass(frozen=True)
class ExplanationStep:
    label: str
    content: str


@dataclass(frozen=True)
class Question:
    """Immutable catalog entry."""

    id: str
    category: str
    difficulty: int
    prompt: str = ""
    choices: Tuple[str, ...] = ()
    correct_index: int = 0
    explanation: Tuple[ExplanationStep, ...] = ()
    common_mistakes: Tuple[str, ...] = ()
    image_uri: str = ""


@dataclass(frozen=True)
class Attempt:
    """One answer event. Never mutated."""

    id: str
    question_id: str
    answered_at: datetime
    is_correct: bool
    selected_index: int
    time_ms: int


@dataclass(frozen=True)
class ReviewScheduleEntry:
    question_id: str
    next_review_at: datetime
    stage: int = 0

    def __post_init__(self) -> None:
        if self.stage < 0:
            raise ValueError("stage must be >= 0")


@dataclass(frozen=True)
class Recommendation:
    title: str
    reason: str
    type: RecommendationType
    estimated_minutes: int
    count: int = 0
    category: Optional[str] = None


@dataclass(frozen=True)
class SessionAnswer:
    question_id: str
    selected_index: Optional[int] = None
    is_correct: Optional[bool] = None
    time_ms: int = 0
    flagged: bool = False

    @property
    def answered(self) -> bool:
        return self.selected_index is not None


@dataclass(frozen=True)
class CategoryScore:
    category: str
    total: int
    correct: int
    average_time_ms: int


@dataclass(frozen=True)
class TestResult:
    __test__ = False  # keep pytest from collecting this record

    id: str
    session_id: str
    completed_at: datetime
    total_questions: int
    correct_count: int
    average_time_ms: int
    category_breakdown: Tuple[CategoryScore, ...] = field(default_factory=tuple)
    answers: Tuple[SessionAnswer, ...] = field(default_factory=tuple)
    label: str = ""


@dataclass(frozen=True)
class QuestionNote:
    """User annotations on one question: bookmark, mistake tags and a memo."""

    question_id: str
    bookmarked: bool = False
    tags: Tuple[str, ...] = ()
    memo: str = ""
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class SessionState:
    """An interrupted session. `current_index` is the next question to ask."""

    id: str
    kind: str
    question_ids: Tuple[str, ...]
    current_index: int = 0
    started_at: Optional[datetime] = None
    elapsed_ms: int = 0
    answers: Tuple[SessionAnswer, ...] = ()
    time_limit_s: Optional[int] = None
    label: str = ""

    @property
    def is_test(self) -> bool:
        return self.time_limit_s is not None
