from __future__ import annotations

"""Schema constants and Pydantic models for the Parquet-backed study history."""

import json
from datetime import datetime, timezone
from typing import Dict, List, Literal

import pandas as pd
from pydantic import BaseModel, Field, field_validator, model_validator

from gabstudy.catalog.categories import CATEGORY_IDS, MISTAKE_TAGS
from gabstudy.models import Attempt, QuestionNote, ReviewScheduleEntry

# --- Constants ---

ATTEMPT_DTYPES = {
    "id": "string",
    "question_id": "string",
    # timezone-aware UTC timestamps
    "answered_at": pd.DatetimeTZDtype(tz="UTC"),
    "is_correct": "boolean",
    "selected_index": "UInt8",
    "time_ms": "UInt32",
}

REVIEW_DTYPES = {
    "question_id": "string",
    "next_review_at": pd.DatetimeTZDtype(tz="UTC"),
    "stage": "UInt16",
}

TEST_RESULT_DTYPES = {
    "id": "string",
    "session_id": "string",
    "completed_at": pd.DatetimeTZDtype(tz="UTC"),
    "payload": "string",
}

NOTE_DTYPES = {
    "question_id": "string",
    "bookmarked": "boolean",
    # JSON list of mistake tag ids
    "tags": "string",
    "memo": "string",
    "updated_at": pd.DatetimeTZDtype(tz="UTC"),
}

SESSION_STATE_DTYPES = {
    "id": "string",
    "kind": "string",
    "saved_at": pd.DatetimeTZDtype(tz="UTC"),
    "payload": "string",
}


def to_utc(v: datetime) -> datetime:
    if v.tzinfo is None:
        return v.replace(tzinfo=timezone.utc)
    return v.astimezone(timezone.utc)


# --- Pydantic models ---

class AttemptRow(BaseModel):
    id: str = Field(min_length=1)
    question_id: str = Field(min_length=1)
    answered_at: datetime
    is_correct: bool
    selected_index: int = Field(ge=0, le=255)
    time_ms: int = Field(ge=0, le=4294967295)

    @field_validator("answered_at")
    @classmethod
    def _ensure_utc(cls, v: datetime) -> datetime:
        return to_utc(v)

    @classmethod
    def from_attempt(cls, a: Attempt) -> "AttemptRow":
        return cls(
            id=a.id,
            question_id=a.question_id,
            answered_at=a.answered_at,
            is_correct=a.is_correct,
            selected_index=a.selected_index,
            time_ms=a.time_ms,
        )

    def to_attempt(self) -> Attempt:
        return Attempt(**self.model_dump())


class ReviewRow(BaseModel):
    question_id: str = Field(min_length=1)
    next_review_at: datetime
    stage: int = Field(ge=0, le=65535)

    @field_validator("next_review_at")
    @classmethod
    def _ensure_utc(cls, v: datetime) -> datetime:
        return to_utc(v)

    @classmethod
    def from_entry(cls, e: ReviewScheduleEntry) -> "ReviewRow":
        return cls(question_id=e.question_id, next_review_at=e.next_review_at, stage=e.stage)

    def to_entry(self) -> ReviewScheduleEntry:
        return ReviewScheduleEntry(**self.model_dump())


class AppSettings(BaseModel):
    """User settings. `category_target_times` overrides category defaults (seconds)."""

    timer_visible: bool = True
    timer_position: Literal["top-right", "top-left"] = "top-right"
    timer_show_digits: bool = True
    learning_mode: Literal["focus", "practice"] = "focus"
    offline_mode: Literal["all", "on-demand"] = "all"
    resume_timer_behavior: Literal["continue", "reset"] = "continue"
    category_target_times: Dict[str, int] = Field(default_factory=dict)

    @field_validator("category_target_times")
    @classmethod
    def _known_categories(cls, v: Dict[str, int]) -> Dict[str, int]:
        for cat, sec in v.items():
            if cat not in CATEGORY_IDS:
                raise ValueError(f"Unknown category: {cat}")
            if int(sec) <= 0:
                raise ValueError(f"Target time for {cat} must be > 0")
        return {k: int(s) for k, s in v.items()}


class TestResultRow(BaseModel):
    __test__ = False

    id: str
    session_id: str
    completed_at: datetime
    payload: str

    @field_validator("completed_at")
    @classmethod
    def _ensure_utc(cls, v: datetime) -> datetime:
        return to_utc(v)

    @model_validator(mode="after")
    def _payload_is_json(self) -> "TestResultRow":
        try:
            json.loads(self.payload)
        except ValueError as exc:
            raise ValueError("payload must be a JSON document") from exc
        return self


class QuestionNoteRow(BaseModel):
    question_id: str = Field(min_length=1)
    bookmarked: bool = False
    tags: List[str] = Field(default_factory=list)
    memo: str = ""
    updated_at: datetime

    @field_validator("tags")
    @classmethod
    def _known_tags(cls, v: List[str]) -> List[str]:
        unknown = [t for t in v if t not in MISTAKE_TAGS]
        if unknown:
            raise ValueError(f"Unknown mistake tag: {', '.join(unknown)}")
        # keep first occurrence order
        return list(dict.fromkeys(v))

    @field_validator("updated_at")
    @classmethod
    def _ensure_utc(cls, v: datetime) -> datetime:
        return to_utc(v)

    @classmethod
    def from_note(cls, n: QuestionNote) -> "QuestionNoteRow":
        return cls(
            question_id=n.question_id,
            bookmarked=n.bookmarked,
            tags=list(n.tags),
            memo=n.memo,
            updated_at=n.updated_at or datetime.now(timezone.utc),
        )

    def to_record(self) -> Dict[str, object]:
        data = self.model_dump()
        data["tags"] = json.dumps(self.tags)
        return data


class SessionStateRow(BaseModel):
    id: str = Field(min_length=1)
    kind: str = Field(min_length=1)
    saved_at: datetime
    payload: str

    @field_validator("saved_at")
    @classmethod
    def _ensure_utc(cls, v: datetime) -> datetime:
        return to_utc(v)

    @model_validator(mode="after")
    def _payload_is_json(self) -> "SessionStateRow":
        try:
            json.loads(self.payload)
        except ValueError as exc:
            raise ValueError("payload must be a JSON document") from exc
        return self
