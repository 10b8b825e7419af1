import os
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from gradmatch.core.config.scoring import (  # noqa: E402
    get_scoring_config,
    get_scoring_float,
    get_scoring_int,
    get_scoring_value,
    reset_scoring_config,
)


class ScoringConfigTests(unittest.TestCase):
    def tearDown(self):
        reset_scoring_config()

    def test_loader_and_value_lookup(self):
        config = get_scoring_config()
        self.assertIsInstance(config, dict)
        self.assertEqual(get_scoring_value("matching.weights.research"), 0.30)
        self.assertEqual(get_scoring_int("faculty.total_limit", 0), 6)

    def test_factor_weights_sum_to_one(self):
        weights = get_scoring_value("matching.weights")
        self.assertAlmostEqual(sum(weights.values()), 1.0)
        university_only = get_scoring_value("matching.university_only_weights")
        self.assertAlmostEqual(sum(university_only.values()), 1.0)

    def test_missing_keys_fall_back_to_defaults(self):
        self.assertIsNone(get_scoring_value("matching.weights.unknown"))
        self.assertEqual(get_scoring_float("matching.nope", 0.42), 0.42)
        self.assertEqual(get_scoring_int("", 7), 7)

    def test_unparseable_number_uses_default(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "scoring.yaml"
            path.write_text("matching:\n  result_limit: lots\n", encoding="utf-8")
            with patch.dict(os.environ, {"SCORING_CONFIG_PATH": str(path)}):
                reset_scoring_config()
                self.assertEqual(get_scoring_int("matching.result_limit", 8), 8)

    def test_missing_file_means_defaults(self):
        with patch.dict(os.environ, {"SCORING_CONFIG_PATH": "/nonexistent/scoring.yaml"}):
            reset_scoring_config()
            self.assertEqual(get_scoring_config(), {})
            self.assertEqual(get_scoring_float("matching.blend.ai_weight", 0.6), 0.6)

    def test_non_mapping_config_is_rejected(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "scoring.yaml"
            path.write_text("- just\n- a list\n", encoding="utf-8")
            with patch.dict(os.environ, {"SCORING_CONFIG_PATH": str(path)}):
                reset_scoring_config()
                with self.assertRaises(RuntimeError):
                    get_scoring_config()


if __name__ == "__main__":
    unittest.main()
