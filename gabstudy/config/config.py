from __future__ import annotations

"""Configuration loading and validation for gabstudy.

This module loads YAML configuration, applies defaults, and validates
that enumerations and numbers are sane. Invalid values are reported with a
WARNING line and replaced by the default.
"""

from pathlib import Path
from typing import Any, Dict, Optional

import sys

import yaml

from ..catalog.categories import CATEGORY_MAP
from ..scheduler.review_scheduler import REVIEW_INTERVALS_DAYS

ALLOWED_LEARNING_MODES = {"focus", "practice"}
DEFAULT_QUICK_DURATIONS = [60, 180, 300]


def _load_yaml(path: Path) -> Dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    except FileNotFoundError:
        print(f"ERROR: Config file not found: {path}", file=sys.stderr)
        sys.exit(1)


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from YAML or defaults.

    Args:
        path: Optional path to a YAML config. If None, use package defaults.

    Returns:
        A dictionary with configuration values.
    """
    if path:
        cfg = _load_yaml(Path(path))
    else:
        cfg = _load_yaml(Path(__file__).with_name("defaults.yml"))
    return cfg


def _positive_int(section: Dict[str, Any], key: str, default: int) -> None:
    value = section.get(key, default)
    try:
        value = int(value)
    except (TypeError, ValueError):
        value = -1
    if value <= 0:
        print(f"WARNING: {key} must be a positive integer, using {default}.")
        value = default
    section[key] = value


def validate_config(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Apply defaults and validate configuration values.

    Args:
        cfg: The raw configuration dictionary.

    Returns:
        The validated and merged configuration dictionary.
    """
    # Shallow defaults for missing sections
    for section in ("categories", "schedule", "session", "storage", "settings", "analytics"):
        if not isinstance(cfg.get(section), dict):
            cfg[section] = {}

    categories = cfg["categories"]
    schedule = cfg["schedule"]
    session = cfg["session"]
    storage = cfg["storage"]
    settings = cfg["settings"]
    analytics = cfg["analytics"]

    # Categories: closed set, fill missing with built-in defaults
    for cat_id in list(categories.keys()):
        if cat_id not in CATEGORY_MAP:
            print(f"WARNING: Unknown category '{cat_id}' in config, ignoring.")
            del categories[cat_id]
    for cat_id, info in CATEGORY_MAP.items():
        entry = categories.get(cat_id)
        if not isinstance(entry, dict):
            entry = {}
        _positive_int(entry, "target_time_sec", info.target_time_sec)
        categories[cat_id] = entry

    # Interval table must be a non-empty, strictly increasing list of days
    intervals = schedule.get("intervals_days", list(REVIEW_INTERVALS_DAYS))
    ok = isinstance(intervals, list) and len(intervals) > 0
    if ok:
        try:
            intervals = [int(d) for d in intervals]
        except (TypeError, ValueError):
            ok = False
    if ok:
        ok = intervals[0] > 0 and all(b > a for a, b in zip(intervals, intervals[1:]))
    if not ok:
        print(f"WARNING: Invalid schedule.intervals_days, using {list(REVIEW_INTERVALS_DAYS)}.")
        intervals = list(REVIEW_INTERVALS_DAYS)
    schedule["intervals_days"] = intervals

    durations = session.get("quick_durations", DEFAULT_QUICK_DURATIONS)
    if not isinstance(durations, list) or not all(isinstance(d, int) and d > 0 for d in durations):
        print(f"WARNING: Invalid session.quick_durations, using {DEFAULT_QUICK_DURATIONS}.")
        durations = list(DEFAULT_QUICK_DURATIONS)
    session["quick_durations"] = durations
    _positive_int(session, "review_count", 10)
    _positive_int(session, "speed_count", 10)
    _positive_int(session, "weakness_count", 10)
    _positive_int(session, "fallback_count", 5)

    storage.setdefault("data_dir", "./storage/data")

    mode = settings.get("learning_mode", "focus")
    if mode not in ALLOWED_LEARNING_MODES:
        print(f"WARNING: Unsupported learning_mode '{mode}', using 'focus'.")
        mode = "focus"
    settings["learning_mode"] = mode
    settings["timer_visible"] = bool(settings.get("timer_visible", True))

    _positive_int(analytics, "window_days", 14)
    _positive_int(analytics, "smoothing_span", 7)
    try:
        weak = float(analytics.get("weak_accuracy", 0.7))
    except (TypeError, ValueError):
        weak = -1.0
    if not 0.0 < weak <= 1.0:
        print("WARNING: analytics.weak_accuracy must be in (0, 1], using 0.7.")
        weak = 0.7
    analytics["weak_accuracy"] = weak

    return cfg


def category_target_times(cfg: Dict[str, Any]) -> Dict[str, int]:
    """Category -> target seconds from a validated config."""
    return {cat: int(entry["target_time_sec"]) for cat, entry in cfg.get("categories", {}).items()}
