import sys
import unittest
from pathlib import Path
from unittest.mock import patch

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from gradmatch.parsing import parse_document  # noqa: E402
from gradmatch.services.cv_extraction import (  # noqa: E402
    _extract_gpa,
    extract_cv_profile,
    extraction_from_payload,
    heuristic_extraction,
)

CV_TEXT = """JANE DOE
jane.doe@example.com

EDUCATION
Bachelor of Science in Computer Science, University of Michigan, 2016 - 2020
GPA: 3.6/4.0
GRE: 325, TOEFL: 110

EXPERIENCE
- Research Assistant, working on computer vision for autonomous robotics systems
- Software Engineer Intern at Acme, built data pipelines in Python

PROJECTS
- Sign language recognition with deep learning and PyTorch models

PUBLICATIONS
- Doe J. Efficient vision transformers. Proceedings of a Workshop, 2021

AWARDS
- Dean's List for academic excellence, awarded in 2018 and 2019 by the university

SKILLS
Python, PyTorch, SQL"""


def _document():
    return parse_document(CV_TEXT.encode("utf-8"), "jane.txt", "text/plain")


class HeuristicExtractionTests(unittest.TestCase):
    def test_academic_facts(self):
        extraction = heuristic_extraction(_document())

        self.assertEqual(extraction.source, "heuristic")
        self.assertEqual(extraction.gpa, 3.6)
        self.assertEqual(extraction.degree, "Bachelor of Science")
        self.assertTrue(extraction.field_of_study.startswith("Computer Science"))
        self.assertEqual(extraction.institution, "University of Michigan")
        self.assertEqual(extraction.test_scores, {"gre": 325.0, "toefl": 110.0})

    def test_lists_come_from_sections_and_keywords(self):
        extraction = heuristic_extraction(_document())

        self.assertEqual(extraction.research_areas, ["deep learning", "computer vision", "robotics"])
        self.assertEqual(extraction.technical_skills, ["Python", "PyTorch", "SQL"])
        self.assertIn("Sign language recognition with deep learning and PyTorch models", extraction.projects)
        self.assertEqual(len(extraction.experience), 2)
        self.assertTrue(extraction.experience[0].startswith("Research Assistant"))
        self.assertEqual(
            extraction.publications,
            ["Doe J. Efficient vision transformers. Proceedings of a Workshop, 2021"],
        )
        self.assertEqual(len(extraction.awards), 1)
        self.assertIn("Dean's List", extraction.awards[0])

    def test_gpa_is_normalized_to_four_point_scale(self):
        self.assertEqual(_extract_gpa("CGPA: 8.5/10"), 3.4)
        self.assertEqual(_extract_gpa("GPA 3.9"), 3.9)
        self.assertIsNone(_extract_gpa("GPA: 9.1"))
        self.assertIsNone(_extract_gpa("no grades listed"))


class ModelExtractionTests(unittest.TestCase):
    def test_payload_is_coerced_into_extraction(self):
        extraction = extraction_from_payload(
            {
                "gpa": "3.7",
                "test_scores": {"GRE": "320", "toefl": None},
                "research_areas": "NLP",
                "projects": [{"title": "Parser"}, 5],
                "degree": 42,
            }
        )
        self.assertEqual(extraction.source, "llm")
        self.assertEqual(extraction.gpa, 3.7)
        self.assertEqual(extraction.test_scores, {"gre": 320.0})
        self.assertEqual(extraction.research_areas, ["NLP"])
        self.assertEqual(extraction.projects, ["Parser"])
        self.assertIsNone(extraction.degree)

    def test_out_of_range_gpa_is_dropped(self):
        self.assertIsNone(extraction_from_payload({"gpa": 42}).gpa)

    def test_model_payload_is_preferred_when_available(self):
        with patch(
            "gradmatch.services.cv_extraction.json_completion",
            return_value={"gpa": 3.95, "technical_skills": ["Rust"]},
        ):
            extraction = extract_cv_profile(_document())
        self.assertEqual(extraction.source, "llm")
        self.assertEqual(extraction.technical_skills, ["Rust"])

    def test_heuristics_run_when_model_returns_nothing(self):
        with patch("gradmatch.services.cv_extraction.json_completion", return_value=None) as completion:
            extraction = extract_cv_profile(_document())
        completion.assert_called_once()
        self.assertEqual(extraction.source, "heuristic")

    def test_model_can_be_skipped(self):
        with patch("gradmatch.services.cv_extraction.json_completion") as completion:
            extraction = extract_cv_profile(_document(), use_llm=False)
        completion.assert_not_called()
        self.assertEqual(extraction.gpa, 3.6)


if __name__ == "__main__":
    unittest.main()
