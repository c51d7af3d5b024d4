import os
import tempfile
import unittest
from datetime import timedelta

from pydantic import ValidationError

from analytics import (
    AnalyticsConfig,
    attempts_frame,
    category_stats,
    daily_stats,
    ewma_by_day,
    latest_frame,
    plot_category_accuracy,
    plot_daily_trend,
    today_stats,
    weak_categories,
)

from .fixtures import T0, attempt, question

CATALOG = [
    question("t1", "table"),
    question("t2", "table"),
    question("t3", "table"),
    question("b1", "bar"),
    question("p1", "pie"),
]


def _history():
    return [
        attempt("t1", False, 20_000, at=T0 - timedelta(days=2)),
        attempt("t1", True, 60_000, at=T0),
        attempt("t2", False, 30_000, at=T0),
        attempt("t3", False, 30_000, at=T0 - timedelta(days=1)),
        attempt("b1", True, 40_000, at=T0 - timedelta(days=1)),
        attempt("gone", True, 1_000, at=T0),
    ]


class PrepareTests(unittest.TestCase):
    def test_attempts_frame_columns(self) -> None:
        df = attempts_frame(_history(), CATALOG)
        # the attempt for a question outside the catalog is dropped
        self.assertEqual(len(df), 5)
        self.assertTrue(df["answered_at"].is_monotonic_decreasing)
        row = df[(df["question_id"] == "t1") & df["is_correct"]].iloc[0]
        self.assertEqual(row["category"], "table")
        self.assertEqual(row["target_ms"], 55_000)
        self.assertTrue(row["slow"])
        self.assertAlmostEqual(row["overage_s"], 5.0)
        self.assertAlmostEqual(row["weakness"], 5.0)
        wrong = df[df["question_id"] == "t2"].iloc[0]
        self.assertAlmostEqual(wrong["weakness"], 10.0)

    def test_target_overrides(self) -> None:
        df = attempts_frame(_history(), CATALOG, {"table": 70})
        self.assertFalse(df["slow"].any())

    def test_empty_history(self) -> None:
        df = attempts_frame([], CATALOG)
        self.assertTrue(df.empty)
        self.assertTrue(category_stats(latest_frame(df)).empty)
        self.assertTrue(daily_stats(df, 14, T0).empty)

    def test_latest_frame(self) -> None:
        latest = latest_frame(attempts_frame(_history(), CATALOG))
        self.assertEqual(sorted(latest["question_id"]), ["b1", "t1", "t2", "t3"])
        self.assertTrue(latest.set_index("question_id").loc["t1", "is_correct"])


class MetricsTests(unittest.TestCase):
    def setUp(self) -> None:
        self.df = attempts_frame(_history(), CATALOG)

    def test_daily_stats(self) -> None:
        daily = daily_stats(self.df, 14, T0)
        self.assertEqual(list(daily["questions_answered"]), [1, 2, 2])
        self.assertEqual(list(daily["correct_count"]), [0, 1, 1])
        self.assertEqual(list(daily["study_time_ms"]), [20_000, 70_000, 90_000])
        self.assertAlmostEqual(daily["accuracy"].iloc[-1], 0.5)

    def test_daily_window(self) -> None:
        daily = daily_stats(self.df, 1, T0)
        self.assertEqual(list(daily["questions_answered"]), [2, 2])

    def test_today(self) -> None:
        self.assertEqual(
            today_stats(self.df, T0),
            {"questions_answered": 2, "study_time_ms": 90_000, "correct_count": 1},
        )

    def test_category_stats_and_weak(self) -> None:
        stats = category_stats(latest_frame(self.df))
        self.assertEqual(list(stats["category"]), ["table", "bar"])
        table = stats.iloc[0]
        self.assertEqual(table["attempted"], 3)
        self.assertEqual(table["correct"], 1)
        self.assertEqual(table["slow"], 1)
        self.assertAlmostEqual(table["accuracy"], 1 / 3)
        self.assertEqual(table["average_time_ms"], 40_000)

        weak = weak_categories(stats, 0.7)
        self.assertEqual(list(weak["category"]), ["table"])
        self.assertTrue(weak_categories(stats, 0.3).empty)

    def test_ewma(self) -> None:
        daily = ewma_by_day(daily_stats(self.df, 14, T0), "accuracy", 3)
        self.assertIn("accuracy_smooth", daily.columns)
        self.assertAlmostEqual(daily["accuracy_smooth"].iloc[0], 0.0)
        self.assertTrue((daily["accuracy_smooth"] <= 0.5).all())


class AnalyticsConfigTests(unittest.TestCase):
    def test_from_config(self) -> None:
        cfg = AnalyticsConfig.from_config({"analytics": {"window_days": 30}})
        self.assertEqual(cfg.window_days, 30)
        self.assertEqual(cfg.smoothing_span, 7)

    def test_rejects_bad_values(self) -> None:
        with self.assertRaises(ValidationError):
            AnalyticsConfig(weak_accuracy=1.5)
        with self.assertRaises(ValidationError):
            AnalyticsConfig(smoothing_span=1)


class PlotTests(unittest.TestCase):
    def test_plots_write_files(self) -> None:
        df = attempts_frame(_history(), CATALOG)
        with tempfile.TemporaryDirectory() as tmp:
            trend = os.path.join(tmp, "trend.png")
            cats = os.path.join(tmp, "categories.png")
            daily = ewma_by_day(daily_stats(df, 14, T0), "accuracy", 3)
            self.assertTrue(plot_daily_trend(daily, save_path=trend))
            self.assertTrue(plot_category_accuracy(category_stats(latest_frame(df)), threshold=0.7, save_path=cats))
            self.assertTrue(os.path.exists(trend))
            self.assertTrue(os.path.exists(cats))

    def test_empty_frames_draw_nothing(self) -> None:
        empty = attempts_frame([], CATALOG)
        self.assertFalse(plot_daily_trend(daily_stats(empty, 14, T0)))
        self.assertFalse(plot_category_accuracy(category_stats(empty)))


if __name__ == "__main__":
    unittest.main()
