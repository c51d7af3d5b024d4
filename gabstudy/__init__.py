"""GAB Study scheduling core.

Re-exports the pure pieces: the review scheduler, the session composer and
the records they work on. Storage adapters live in the top-level `storage`
package and history statistics in `analytics`.
"""

from __future__ import annotations

__version__ = "0.1.0"

from .models import Attempt, Question, Recommendation, ReviewScheduleEntry  # noqa: E402
from .policy.session_composer import (  # noqa: E402
    generate_recommendations,
    latest_attempts_by_question,
    pick_quick_session,
    pick_review_session,
    pick_speed_session,
    pick_weakness_test,
)
from .scheduler.review_scheduler import REVIEW_INTERVALS_DAYS, compute_next_review, is_review_due  # noqa: E402

__all__ = [
    "__version__",
    "Attempt",
    "Question",
    "Recommendation",
    "ReviewScheduleEntry",
    "REVIEW_INTERVALS_DAYS",
    "compute_next_review",
    "is_review_due",
    "generate_recommendations",
    "latest_attempts_by_question",
    "pick_quick_session",
    "pick_review_session",
    "pick_speed_session",
    "pick_weakness_test",
]
