import os
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from gradmatch.core.config.scoring import reset_scoring_config  # noqa: E402
from gradmatch.features.cv_validator import score_cv_content, validate_cv_content  # noqa: E402

SAMPLE_CV = """JANE DOE
Email: jane.doe@example.com | Phone: +1 555 123 4567 | github.com/janedoe

EDUCATION:
Stanford University, Master of Science in Computer Science, 2019 - 2021
GPA: 3.8/4.0

EXPERIENCE:
Software Engineer, Acme Corp, Jan 2021 - Present
- Developed machine learning pipelines for fraud detection
- Led a team of 4 engineers and improved model recall by 12%

SKILLS:
Python, SQL, PyTorch, programming languages, cloud database development

PROJECTS:
Research project on graph neural networks, published paper at a workshop
"""


class CVValidatorTests(unittest.TestCase):
    def tearDown(self):
        reset_scoring_config()

    def test_short_plain_text_is_rejected(self):
        text = "the quick brown fox jumps over a lazy dog"
        result = validate_cv_content(text)
        self.assertFalse(result.is_valid)
        self.assertEqual(result.confidence, 20)

    def test_realistic_cv_is_accepted_with_reasons(self):
        result = validate_cv_content(SAMPLE_CV)
        self.assertTrue(result.is_valid)
        self.assertGreater(result.confidence, 20)
        self.assertLessEqual(result.confidence, 100)
        self.assertTrue(any("Education" in reason for reason in result.reasons))
        self.assertTrue(any("Experience" in reason for reason in result.reasons))

    def test_confidence_is_clamped_for_huge_inputs(self):
        result = validate_cv_content(SAMPLE_CV * 40)
        self.assertTrue(result.is_valid)
        self.assertLessEqual(result.confidence, 100)
        self.assertGreaterEqual(result.confidence, validate_cv_content(SAMPLE_CV).confidence)

    def test_empty_input_never_raises(self):
        result = validate_cv_content("")
        self.assertFalse(result.is_valid)
        self.assertEqual(result.reasons, ())
        self.assertEqual(validate_cv_content(None).is_valid, False)

    def test_long_text_passes_on_length_alone(self):
        text = "lorem ipsum " * 20
        score, _reasons = score_cv_content(text)
        self.assertLess(score, 15)
        self.assertTrue(validate_cv_content(text).is_valid)

    def test_keyword_points_are_capped_per_category(self):
        text = " ".join(["education university college degree bachelor master phd diploma gpa grade"] * 5)
        score, reasons = score_cv_content(text)
        education = [reason for reason in reasons if reason.startswith("Contains Education")]
        self.assertEqual(education, ["Contains Education keywords (10 distinct)"])
        self.assertLessEqual(score, 20 + 20)

    def test_failsafe_marks_long_low_scoring_text_as_valid(self):
        text = "lorem ipsum " * 20
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "scoring.yaml"
            path.write_text(
                "validation:\n  min_length: 100000\n  failsafe_enabled: true\n  failsafe_length: 200\n",
                encoding="utf-8",
            )
            with patch.dict(os.environ, {"SCORING_CONFIG_PATH": str(path)}):
                reset_scoring_config()
                result = validate_cv_content(text)
        self.assertTrue(result.is_valid)
        self.assertEqual(result.confidence, 60)
        self.assertEqual(result.reasons[-1], "Adequate content for analysis")

    def test_failsafe_can_be_disabled(self):
        text = "lorem ipsum " * 20
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "scoring.yaml"
            path.write_text("validation:\n  min_length: 100000\n  failsafe_enabled: false\n", encoding="utf-8")
            with patch.dict(os.environ, {"SCORING_CONFIG_PATH": str(path)}):
                reset_scoring_config()
                result = validate_cv_content(text)
        self.assertFalse(result.is_valid)


if __name__ == "__main__":
    unittest.main()
