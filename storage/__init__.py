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
)
from .store import (
    init_store,
    validate_attempts,
    append_attempts,
    load_attempts,
    validate_reviews,
    upsert_review_entries,
    load_review_queue,
    save_test_result,
    load_test_results,
    save_note,
    load_notes,
    save_session_state,
    load_active_session,
    clear_session_state,
    reset_learning_data,
    reset_test_history,
    export_ndjson,
    ParquetAttemptStore,
    ParquetScheduleStore,
    ParquetTestResultStore,
    ParquetNoteStore,
    ParquetSessionStateStore,
    JsonSettingsStore,
)
from .memory import (
    MemoryAttemptStore,
    MemoryCatalog,
    MemoryNoteStore,
    MemoryScheduleStore,
    MemorySessionStateStore,
    MemorySettings,
    MemoryTestResultStore,
)
from .providers import (
    AttemptStore,
    CatalogProvider,
    NoteStore,
    ScheduleStore,
    SessionStateStore,
    SettingsProvider,
    TestResultStore,
)

__all__ = [
    "ATTEMPT_DTYPES",
    "NOTE_DTYPES",
    "REVIEW_DTYPES",
    "SESSION_STATE_DTYPES",
    "TEST_RESULT_DTYPES",
    "AppSettings",
    "AttemptRow",
    "QuestionNoteRow",
    "ReviewRow",
    "init_store",
    "validate_attempts",
    "append_attempts",
    "load_attempts",
    "validate_reviews",
    "upsert_review_entries",
    "load_review_queue",
    "save_test_result",
    "load_test_results",
    "save_note",
    "load_notes",
    "save_session_state",
    "load_active_session",
    "clear_session_state",
    "reset_learning_data",
    "reset_test_history",
    "export_ndjson",
    "ParquetAttemptStore",
    "ParquetScheduleStore",
    "ParquetTestResultStore",
    "ParquetNoteStore",
    "ParquetSessionStateStore",
    "JsonSettingsStore",
    "MemoryAttemptStore",
    "MemoryCatalog",
    "MemoryNoteStore",
    "MemoryScheduleStore",
    "MemorySessionStateStore",
    "MemorySettings",
    "MemoryTestResultStore",
    "AttemptStore",
    "CatalogProvider",
    "NoteStore",
    "ScheduleStore",
    "SessionStateStore",
    "SettingsProvider",
    "TestResultStore",
]
