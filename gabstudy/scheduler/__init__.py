from .review_scheduler import (
    REVIEW_INTERVALS_DAYS,
    compute_next_review,
    interval_for_stage,
    interval_label,
    is_review_due,
    next_stage,
)

__all__ = [
    "REVIEW_INTERVALS_DAYS",
    "compute_next_review",
    "interval_for_stage",
    "interval_label",
    "is_review_due",
    "next_stage",
]
