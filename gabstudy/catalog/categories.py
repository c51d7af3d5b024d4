from __future__ import annotations

"""Closed category set and the single target-time lookup.

Every component that needs a category's target solve time goes through
`target_time_for`, so the fallback policy lives in one place:
settings override -> category default -> DEFAULT_TARGET_TIME_SEC.
"""

from typing import Dict, Mapping, Optional

from ..models import CategoryInfo

DEFAULT_TARGET_TIME_SEC = 50

CATEGORIES = (
    CategoryInfo(id="table", label="Table reading", label_short="Table", target_time_sec=55),
    CategoryInfo(id="bar", label="Bar chart", label_short="Bar", target_time_sec=45),
    CategoryInfo(id="pie", label="Pie chart", label_short="Pie", target_time_sec=40),
    CategoryInfo(id="composite", label="Composite chart", label_short="Composite", target_time_sec=55),
)

CATEGORY_MAP: Dict[str, CategoryInfo] = {c.id: c for c in CATEGORIES}
CATEGORY_IDS = tuple(c.id for c in CATEGORIES)

# tags a learner can attach to a question they got wrong
MISTAKE_TAGS: Dict[str, str] = {
    "unit": "Units",
    "ratio": "Ratio",
    "oversight": "Oversight",
    "estimation": "Estimation",
    "time_pressure": "Time pressure",
    "misread": "Misread",
}


def target_time_for(category: str, overrides: Optional[Mapping[str, int]] = None) -> int:
    """Target solve time in seconds for a category."""
    if overrides:
        value = overrides.get(category)
        if value is not None:
            return int(value)
    info = CATEGORY_MAP.get(category)
    if info is None:
        return DEFAULT_TARGET_TIME_SEC
    return info.target_time_sec


def target_time_ms(category: str, overrides: Optional[Mapping[str, int]] = None) -> int:
    return target_time_for(category, overrides) * 1000


def category_label(category: str, short: bool = False) -> str:
    info = CATEGORY_MAP.get(category)
    if info is None:
        return category
    return info.label_short if short else info.label
