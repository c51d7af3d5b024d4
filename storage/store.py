from __future__ import annotations

"""Parquet-backed study history using pandas + pyarrow.

Tables (one file each under the data directory):
- attempts.parquet: one row per answer, keyed by attempt id (insert or replace)
- review_queue.parquet: one row per question, keyed by question_id (upsert)
- test_results.parquet: one row per finished test, JSON payload
- notes.parquet: one row per annotated question, keyed by question_id
- session_state.parquet: interrupted sessions, JSON payload, newest last

Settings live next to them in settings.json.
"""

import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd
from pydantic import ValidationError

from gabstudy.models import Attempt, CategoryScore, QuestionNote, ReviewScheduleEntry, SessionAnswer, SessionState, TestResult
from gabstudy.policy.session_composer import latest_attempts_by_question

from .schema import (
    ATTEMPT_DTYPES,
    NOTE_DTYPES,
    REVIEW_DTYPES,
    SESSION_STATE_DTYPES,
    TEST_RESULT_DTYPES,
    AppSettings,
    AttemptRow,
    QuestionNoteRow,
    ReviewRow,
    SessionStateRow,
    TestResultRow,
    to_utc,
)

ATTEMPTS_FILE = "attempts.parquet"
REVIEW_FILE = "review_queue.parquet"
RESULTS_FILE = "test_results.parquet"
NOTES_FILE = "notes.parquet"
SESSION_STATE_FILE = "session_state.parquet"
SETTINGS_FILE = "settings.json"

_TABLES = {
    ATTEMPTS_FILE: ATTEMPT_DTYPES,
    REVIEW_FILE: REVIEW_DTYPES,
    RESULTS_FILE: TEST_RESULT_DTYPES,
    NOTES_FILE: NOTE_DTYPES,
    SESSION_STATE_FILE: SESSION_STATE_DTYPES,
}


def _empty_df(dtypes: Dict[str, Any]) -> pd.DataFrame:
    return pd.DataFrame({k: pd.Series(dtype=v) for k, v in dtypes.items()})


def _fix_dtypes(df: pd.DataFrame, dtypes: Dict[str, Any]) -> pd.DataFrame:
    for col, dt in dtypes.items():
        if col not in df.columns:
            df[col] = pd.NA
        df[col] = df[col].astype(dt)
    return df[list(dtypes.keys())]


def _read(data_path: Path, name: str) -> pd.DataFrame:
    f = Path(data_path) / name
    if not f.exists():
        return _empty_df(_TABLES[name])
    return _fix_dtypes(pd.read_parquet(f, engine="pyarrow"), _TABLES[name])


def _write(df: pd.DataFrame, data_path: Path, name: str) -> None:
    df.to_parquet(Path(data_path) / name, engine="pyarrow", compression="zstd", index=False)


def _combine(df_old: pd.DataFrame, df_new: pd.DataFrame, dtypes: Dict[str, Any], key: str) -> pd.DataFrame:
    """Concatenate and keep the newest row per key."""
    if df_old.empty:
        combined = df_new.copy()
    elif df_new.empty:
        combined = df_old.copy()
    else:
        combined = pd.concat([df_old, df_new], ignore_index=True)
    combined = _fix_dtypes(combined, dtypes)
    return combined.drop_duplicates(subset=[key], keep="last").reset_index(drop=True)


def init_store(data_dir: Path) -> None:
    """Ensure data directory and empty Parquet files with correct schema exist."""
    data_dir = Path(data_dir)
    data_dir.mkdir(parents=True, exist_ok=True)
    for name, dtypes in _TABLES.items():
        if not (data_dir / name).exists():
            _write(_empty_df(dtypes), data_dir, name)


# --- attempts ---

def validate_attempts(records: list) -> pd.DataFrame:
    """Validate Attempt records (or dicts) and return a typed DataFrame.

    Raises pydantic.ValidationError on bad rows.
    """
    if not isinstance(records, list):
        raise TypeError("records must be a list of attempts")
    rows = [
        AttemptRow.from_attempt(r) if isinstance(r, Attempt) else AttemptRow.model_validate(r)
        for r in records
    ]
    if not rows:
        return _empty_df(ATTEMPT_DTYPES)
    return _fix_dtypes(pd.DataFrame([r.model_dump() for r in rows]), ATTEMPT_DTYPES)


def append_attempts(df_new: pd.DataFrame, data_path: Path) -> None:
    """Insert or replace attempts by id."""
    df_old = _read(data_path, ATTEMPTS_FILE)
    combined = _combine(df_old, _fix_dtypes(df_new.copy(), ATTEMPT_DTYPES), ATTEMPT_DTYPES, "id")
    _write(combined, data_path, ATTEMPTS_FILE)


def load_attempts(data_path: Path, since: Optional[datetime] = None) -> pd.DataFrame:
    """All attempts, most recent first. `since` keeps answered_at >= since; naive values are UTC."""
    df = _read(data_path, ATTEMPTS_FILE)
    if since is not None and not df.empty:
        df = df[df["answered_at"] >= pd.Timestamp(to_utc(since))]
    return df.sort_values("answered_at", ascending=False, kind="stable").reset_index(drop=True)


def frame_to_attempts(df: pd.DataFrame) -> List[Attempt]:
    return [
        Attempt(
            id=str(r.id),
            question_id=str(r.question_id),
            answered_at=r.answered_at.to_pydatetime(),
            is_correct=bool(r.is_correct),
            selected_index=int(r.selected_index),
            time_ms=int(r.time_ms),
        )
        for r in df.itertuples(index=False)
    ]


# --- review queue ---

def validate_reviews(records: list) -> pd.DataFrame:
    if not isinstance(records, list):
        raise TypeError("records must be a list of review entries")
    rows = [
        ReviewRow.from_entry(r) if isinstance(r, ReviewScheduleEntry) else ReviewRow.model_validate(r)
        for r in records
    ]
    if not rows:
        return _empty_df(REVIEW_DTYPES)
    return _fix_dtypes(pd.DataFrame([r.model_dump() for r in rows]), REVIEW_DTYPES)


def upsert_review_entries(df_new: pd.DataFrame, data_path: Path) -> None:
    """Replace the schedule row of every question in df_new."""
    df_old = _read(data_path, REVIEW_FILE)
    combined = _combine(df_old, _fix_dtypes(df_new.copy(), REVIEW_DTYPES), REVIEW_DTYPES, "question_id")
    _write(combined, data_path, REVIEW_FILE)


def load_review_queue(data_path: Path, due_at: Optional[datetime] = None) -> pd.DataFrame:
    """Schedule rows, earliest first. `due_at` keeps rows with next_review_at <= due_at; naive values are UTC."""
    df = _read(data_path, REVIEW_FILE)
    if due_at is not None and not df.empty:
        df = df[df["next_review_at"] <= pd.Timestamp(to_utc(due_at))]
    return df.sort_values("next_review_at", kind="stable").reset_index(drop=True)


def frame_to_entries(df: pd.DataFrame) -> List[ReviewScheduleEntry]:
    return [
        ReviewScheduleEntry(
            question_id=str(r.question_id),
            next_review_at=r.next_review_at.to_pydatetime(),
            stage=int(r.stage),
        )
        for r in df.itertuples(index=False)
    ]


# --- test results ---

def _answers_to_json(answers) -> List[Dict[str, Any]]:
    return [
        {
            "question_id": a.question_id,
            "selected_index": a.selected_index,
            "is_correct": a.is_correct,
            "time_ms": a.time_ms,
            "flagged": a.flagged,
        }
        for a in answers
    ]


def result_to_json(result: TestResult) -> Dict[str, Any]:
    return {
        "id": result.id,
        "session_id": result.session_id,
        "completed_at": result.completed_at.isoformat(),
        "label": result.label,
        "total_questions": result.total_questions,
        "correct_count": result.correct_count,
        "average_time_ms": result.average_time_ms,
        "category_breakdown": [
            {"category": c.category, "total": c.total, "correct": c.correct, "average_time_ms": c.average_time_ms}
            for c in result.category_breakdown
        ],
        "answers": _answers_to_json(result.answers),
    }


def result_from_json(data: Dict[str, Any]) -> TestResult:
    return TestResult(
        id=str(data["id"]),
        session_id=str(data.get("session_id", data["id"])),
        completed_at=datetime.fromisoformat(data["completed_at"]),
        label=str(data.get("label", "")),
        total_questions=int(data.get("total_questions", 0)),
        correct_count=int(data.get("correct_count", 0)),
        average_time_ms=int(data.get("average_time_ms", 0)),
        category_breakdown=tuple(CategoryScore(**c) for c in data.get("category_breakdown", [])),
        answers=tuple(SessionAnswer(**a) for a in data.get("answers", [])),
    )


def save_test_result(result: TestResult, data_path: Path) -> None:
    row = TestResultRow(
        id=result.id,
        session_id=result.session_id,
        completed_at=result.completed_at,
        payload=json.dumps(result_to_json(result), separators=(",", ":")),
    )
    df_new = _fix_dtypes(pd.DataFrame([row.model_dump()]), TEST_RESULT_DTYPES)
    combined = _combine(_read(data_path, RESULTS_FILE), df_new, TEST_RESULT_DTYPES, "id")
    _write(combined, data_path, RESULTS_FILE)


def load_test_results(data_path: Path) -> List[TestResult]:
    """Finished tests, newest first."""
    df = _read(data_path, RESULTS_FILE).sort_values("completed_at", ascending=False, kind="stable")
    return [result_from_json(json.loads(p)) for p in df["payload"]]


# --- notes ---

def save_note(note: QuestionNote, data_path: Path) -> QuestionNote:
    """Insert or replace the note of one question; returns it as stored."""
    row = QuestionNoteRow.from_note(note)
    df_new = _fix_dtypes(pd.DataFrame([row.to_record()]), NOTE_DTYPES)
    combined = _combine(_read(data_path, NOTES_FILE), df_new, NOTE_DTYPES, "question_id")
    _write(combined, data_path, NOTES_FILE)
    return QuestionNote(
        question_id=row.question_id,
        bookmarked=row.bookmarked,
        tags=tuple(row.tags),
        memo=row.memo,
        updated_at=row.updated_at,
    )


def load_notes(data_path: Path) -> List[QuestionNote]:
    df = _read(data_path, NOTES_FILE)
    return [
        QuestionNote(
            question_id=str(r.question_id),
            bookmarked=bool(r.bookmarked),
            tags=tuple(json.loads(r.tags)) if isinstance(r.tags, str) else (),
            memo=str(r.memo) if isinstance(r.memo, str) else "",
            updated_at=r.updated_at.to_pydatetime(),
        )
        for r in df.itertuples(index=False)
    ]


# --- session state ---

def state_to_json(state: SessionState) -> Dict[str, Any]:
    return {
        "id": state.id,
        "kind": state.kind,
        "question_ids": list(state.question_ids),
        "current_index": state.current_index,
        "started_at": state.started_at.isoformat() if state.started_at else None,
        "elapsed_ms": state.elapsed_ms,
        "answers": _answers_to_json(state.answers),
        "time_limit_s": state.time_limit_s,
        "label": state.label,
    }


def state_from_json(data: Dict[str, Any]) -> SessionState:
    started = data.get("started_at")
    limit = data.get("time_limit_s")
    return SessionState(
        id=str(data["id"]),
        kind=str(data["kind"]),
        question_ids=tuple(str(q) for q in data.get("question_ids", [])),
        current_index=int(data.get("current_index", 0)),
        started_at=datetime.fromisoformat(started) if started else None,
        elapsed_ms=int(data.get("elapsed_ms", 0)),
        answers=tuple(SessionAnswer(**a) for a in data.get("answers", [])),
        time_limit_s=int(limit) if limit is not None else None,
        label=str(data.get("label", "")),
    )


def save_session_state(state: SessionState, data_path: Path) -> None:
    """Insert or replace by id. The replaced row moves to the end."""
    row = SessionStateRow(
        id=state.id,
        kind=state.kind,
        saved_at=datetime.now(timezone.utc),
        payload=json.dumps(state_to_json(state), separators=(",", ":")),
    )
    df_old = _read(data_path, SESSION_STATE_FILE)
    df_old = df_old[df_old["id"] != state.id]
    df_new = _fix_dtypes(pd.DataFrame([row.model_dump()]), SESSION_STATE_DTYPES)
    combined = _combine(df_old, df_new, SESSION_STATE_DTYPES, "id")
    _write(combined, data_path, SESSION_STATE_FILE)


def load_active_session(data_path: Path) -> Optional[SessionState]:
    """The most recently saved session, if any."""
    df = _read(data_path, SESSION_STATE_FILE)
    if df.empty:
        return None
    return state_from_json(json.loads(df["payload"].iloc[-1]))


def clear_session_state(state_id: str, data_path: Path) -> None:
    df = _read(data_path, SESSION_STATE_FILE)
    _write(df[df["id"] != state_id].reset_index(drop=True), data_path, SESSION_STATE_FILE)


# --- maintenance ---

def reset_learning_data(data_path: Path) -> None:
    """Drop attempts, schedule rows, notes and interrupted sessions."""
    for name in (ATTEMPTS_FILE, REVIEW_FILE, NOTES_FILE, SESSION_STATE_FILE):
        _write(_empty_df(_TABLES[name]), data_path, name)


def reset_test_history(data_path: Path) -> None:
    _write(_empty_df(TEST_RESULT_DTYPES), data_path, RESULTS_FILE)


def export_ndjson(df: pd.DataFrame, out_path: Path) -> None:
    """Export a DataFrame to line-delimited JSON (NDJSON) for quick inspection."""
    Path(out_path).parent.mkdir(parents=True, exist_ok=True)
    df.to_json(out_path, orient="records", lines=True, date_format="iso")


# --- provider adapters ---

class ParquetAttemptStore:
    def __init__(self, data_dir: Path) -> None:
        self.data_dir = Path(data_dir)
        init_store(self.data_dir)

    def save_attempt(self, attempt: Attempt) -> None:
        append_attempts(validate_attempts([attempt]), self.data_dir)

    def all_attempts(self) -> List[Attempt]:
        return frame_to_attempts(load_attempts(self.data_dir))

    def attempts_for_question(self, question_id: str) -> List[Attempt]:
        df = load_attempts(self.data_dir)
        return frame_to_attempts(df[df["question_id"] == question_id])

    def latest_attempts(self) -> Dict[str, Attempt]:
        return latest_attempts_by_question(self.all_attempts())

    def attempts_since(self, since: datetime) -> List[Attempt]:
        return frame_to_attempts(load_attempts(self.data_dir, since=since))

    def frame(self) -> pd.DataFrame:
        return load_attempts(self.data_dir)


class ParquetScheduleStore:
    def __init__(self, data_dir: Path) -> None:
        self.data_dir = Path(data_dir)
        init_store(self.data_dir)

    def upsert(self, entry: ReviewScheduleEntry) -> None:
        upsert_review_entries(validate_reviews([entry]), self.data_dir)

    def get(self, question_id: str) -> Optional[ReviewScheduleEntry]:
        df = load_review_queue(self.data_dir)
        found = frame_to_entries(df[df["question_id"] == question_id])
        return found[0] if found else None

    def due(self, now: datetime) -> List[ReviewScheduleEntry]:
        return frame_to_entries(load_review_queue(self.data_dir, due_at=now))

    def all_entries(self) -> List[ReviewScheduleEntry]:
        return frame_to_entries(load_review_queue(self.data_dir))


class ParquetTestResultStore:
    __test__ = False

    def __init__(self, data_dir: Path) -> None:
        self.data_dir = Path(data_dir)
        init_store(self.data_dir)

    def save_result(self, result: TestResult) -> None:
        save_test_result(result, self.data_dir)

    def results(self) -> List[TestResult]:
        return load_test_results(self.data_dir)


class ParquetNoteStore:
    def __init__(self, data_dir: Path) -> None:
        self.data_dir = Path(data_dir)
        init_store(self.data_dir)

    def get(self, question_id: str) -> Optional[QuestionNote]:
        for note in load_notes(self.data_dir):
            if note.question_id == question_id:
                return note
        return None

    def save(self, note: QuestionNote) -> QuestionNote:
        return save_note(note, self.data_dir)

    def bookmarked_ids(self) -> List[str]:
        return [n.question_id for n in load_notes(self.data_dir) if n.bookmarked]


class ParquetSessionStateStore:
    def __init__(self, data_dir: Path) -> None:
        self.data_dir = Path(data_dir)
        init_store(self.data_dir)

    def save(self, state: SessionState) -> None:
        save_session_state(state, self.data_dir)

    def active(self) -> Optional[SessionState]:
        return load_active_session(self.data_dir)

    def clear(self, state_id: str) -> None:
        clear_session_state(state_id, self.data_dir)


class JsonSettingsStore:
    """Settings persisted as one JSON document; unreadable files fall back to defaults."""

    def __init__(self, data_dir: Path) -> None:
        self.path = Path(data_dir) / SETTINGS_FILE
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def get(self) -> AppSettings:
        if not self.path.exists():
            return AppSettings()
        try:
            return AppSettings.model_validate_json(self.path.read_text(encoding="utf-8"))
        except ValidationError as e:
            print(f"WARNING: Ignoring invalid settings file {self.path}: {e.error_count()} error(s)", file=sys.stderr)
            return AppSettings()

    def save(self, settings: AppSettings) -> None:
        validated = AppSettings.model_validate(settings.model_dump())
        self.path.write_text(validated.model_dump_json(indent=2), encoding="utf-8")

    def target_times(self) -> Dict[str, int]:
        return dict(self.get().category_target_times)
