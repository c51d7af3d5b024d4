from .categories import (
    CATEGORIES,
    CATEGORY_MAP,
    CATEGORY_IDS,
    DEFAULT_TARGET_TIME_SEC,
    MISTAKE_TAGS,
    target_time_for,
    target_time_ms,
)
from .loader import load_catalog, questions_by_category, YamlCatalog

__all__ = [
    "CATEGORIES",
    "CATEGORY_MAP",
    "CATEGORY_IDS",
    "DEFAULT_TARGET_TIME_SEC",
    "MISTAKE_TAGS",
    "target_time_for",
    "target_time_ms",
    "load_catalog",
    "questions_by_category",
    "YamlCatalog",
]
