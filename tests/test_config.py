import contextlib
import io
import unittest

from gabstudy.config.config import category_target_times, load_config, validate_config


def _validate(cfg):
    out = io.StringIO()
    with contextlib.redirect_stdout(out):
        result = validate_config(cfg)
    return result, out.getvalue()


class ConfigTests(unittest.TestCase):
    def test_defaults_are_valid(self) -> None:
        cfg, warnings = _validate(load_config())
        self.assertEqual(warnings, "")
        self.assertEqual(cfg["schedule"]["intervals_days"], [1, 3, 7, 14, 30])
        self.assertEqual(category_target_times(cfg), {"table": 55, "bar": 45, "pie": 40, "composite": 55})
        self.assertEqual(cfg["session"]["quick_durations"], [60, 180, 300])

    def test_empty_config_filled_in(self) -> None:
        cfg, _ = _validate({})
        self.assertEqual(cfg["session"]["review_count"], 10)
        self.assertEqual(cfg["session"]["weakness_count"], 10)
        self.assertEqual(cfg["storage"]["data_dir"], "./storage/data")
        self.assertEqual(cfg["analytics"]["weak_accuracy"], 0.7)
        self.assertEqual(category_target_times(cfg)["pie"], 40)

    def test_invalid_values_fall_back_with_warning(self) -> None:
        raw = {
            "categories": {"bar": {"target_time_sec": 0}, "map": {"target_time_sec": 10}},
            "schedule": {"intervals_days": [1, 7, 3]},
            "session": {"review_count": "many", "quick_durations": [60, -1]},
            "settings": {"learning_mode": "cram"},
            "analytics": {"weak_accuracy": 1.5},
        }
        cfg, warnings = _validate(raw)
        self.assertNotIn("map", cfg["categories"])
        self.assertEqual(cfg["categories"]["bar"]["target_time_sec"], 45)
        self.assertEqual(cfg["schedule"]["intervals_days"], [1, 3, 7, 14, 30])
        self.assertEqual(cfg["session"]["review_count"], 10)
        self.assertEqual(cfg["session"]["quick_durations"], [60, 180, 300])
        self.assertEqual(cfg["settings"]["learning_mode"], "focus")
        self.assertEqual(cfg["analytics"]["weak_accuracy"], 0.7)
        self.assertEqual(warnings.count("WARNING:"), 7)

    def test_custom_intervals_kept(self) -> None:
        cfg, warnings = _validate({"schedule": {"intervals_days": [2, 5, 9]}})
        self.assertEqual(cfg["schedule"]["intervals_days"], [2, 5, 9])
        self.assertEqual(warnings, "")

    def test_missing_file_exits(self) -> None:
        err = io.StringIO()
        with contextlib.redirect_stderr(err), self.assertRaises(SystemExit):
            load_config("/nonexistent/gabstudy.yml")
        self.assertIn("ERROR:", err.getvalue())


if __name__ == "__main__":
    unittest.main()
