from __future__ import annotations

"""Exceptions raised outside the pure scheduling core."""


class GabStudyError(Exception):
    """Base class for gabstudy errors."""


class CatalogError(GabStudyError):
    """The question catalog is malformed."""


class UnknownQuestionError(GabStudyError, KeyError):
    def __init__(self, question_id: str) -> None:
        super().__init__(question_id)
        self.question_id = question_id

    def __str__(self) -> str:
        return f"Unknown question id: {self.question_id}"


class InsufficientHistoryError(GabStudyError):
    def __init__(self, attempted: int, required: int) -> None:
        super().__init__(f"Weakness test needs at least {required} attempted questions, have {attempted}")
        self.attempted = attempted
        self.required = required


class NotEnoughQuestionsError(GabStudyError):
    def __init__(self, available: int, requested: int, categories=()) -> None:
        where = ", ".join(categories) if categories else "the catalog"
        super().__init__(f"Only {available} questions in {where}, {requested} requested")
        self.available = available
        self.requested = requested
