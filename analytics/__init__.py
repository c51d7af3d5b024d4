from .config import AnalyticsConfig
from .metrics import category_stats, daily_stats, today_stats, weak_categories
from .prepare import attempts_frame, latest_frame
from .smoothing import ewma_by_day
from .plots import plot_category_accuracy, plot_daily_trend, plot_time_vs_target

__all__ = [
    "AnalyticsConfig",
    "attempts_frame",
    "latest_frame",
    "category_stats",
    "daily_stats",
    "today_stats",
    "weak_categories",
    "ewma_by_day",
    "plot_category_accuracy",
    "plot_daily_trend",
    "plot_time_vs_target",
]
