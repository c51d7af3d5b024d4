from __future__ import annotations

"""Session presets.

Quick sessions are sized by time, tests by question count and time limit.
"""

QUICK_DURATIONS_S = (60, 180, 300)

SESSION_DEFAULTS = {
    "review": {"count": 10},
    "speed": {"count": 10},
    "weakness": {"count": 10, "time_limit_min": 8, "label": "Weakness test"},
    "custom": {"count": 10, "time_limit_min": 8, "label": "Custom test"},
    "random": {"count": 5},
    "category": {"count": 3},
    "bookmarked": {"count": 10},
}

TEST_PRESETS = {
    "full": {
        "label": "Full practice",
        "questions": 20,
        "time_limit_min": 16,
    },
    "half": {
        "label": "Half test",
        "questions": 10,
        "time_limit_min": 8,
    },
    "mini": {
        "label": "Mini test",
        "questions": 5,
        "time_limit_min": 4,
    },
}


def get_test_preset(name: str) -> dict:
    p = TEST_PRESETS.get(name)
    if p is None:
        raise KeyError(f"Unknown test preset: {name}")
    return dict(p)
