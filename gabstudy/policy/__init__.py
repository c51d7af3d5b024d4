from .session_composer import (
    category_accuracy,
    generate_recommendations,
    latest_attempts_by_question,
    pick_quick_session,
    pick_review_session,
    pick_speed_session,
    pick_weakness_test,
    slow_correct_pool,
    weakness_score,
)

__all__ = [
    "category_accuracy",
    "generate_recommendations",
    "latest_attempts_by_question",
    "pick_quick_session",
    "pick_review_session",
    "pick_speed_session",
    "pick_weakness_test",
    "slow_correct_pool",
    "weakness_score",
]
