import sys
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from gradmatch.catalog import BUNDLED_CATALOG_PATH, load_catalog  # noqa: E402
from gradmatch.core.session_cache import MatchingSessionCache  # noqa: E402
from gradmatch.matching import (  # noqa: E402
    determine_category,
    is_program_relevant,
    score_all,
    score_program,
    score_university_only,
)
from gradmatch.matching.reasoning import PROVISIONAL_PROGRAM_NOTE, build_university_only_reasoning  # noqa: E402
from gradmatch.matching.scoring import (  # noqa: E402
    academic_score,
    admission_probability,
    financial_score,
    location_score,
    reputation_score,
    research_score,
)
from gradmatch.schemas import CandidateProfile, Preferences, ProgramCatalogEntry  # noqa: E402

CATALOG = load_catalog(BUNDLED_CATALOG_PATH)


def _profile(**overrides) -> CandidateProfile:
    data = {
        "gpa": 3.7,
        "research_interests": ["Machine Learning"],
        "target_degree": "Computer Science",
    }
    data.update(overrides)
    return CandidateProfile(**data)


class FactorTests(unittest.TestCase):
    def test_strong_gpa_against_selective_program(self):
        program = CATALOG.program("stanford", "stanford-ms-cs")
        university = CATALOG.university("stanford")
        profile = _profile(gpa=3.9, research_interests=["machine learning"])

        result = score_program(profile, program, university)

        self.assertAlmostEqual(result.factor_scores.academic, 1.0)
        self.assertGreaterEqual(result.factor_scores.research, 0.5)
        self.assertLessEqual(result.factor_scores.research, 1.0)
        self.assertIn(result.category, ("target", "reach"))

    def test_missing_interests_and_threshold_are_neutral(self):
        program = ProgramCatalogEntry(university_id="x", program_id="x-ms", research_areas=["Databases"])
        result = score_program(CandidateProfile(), program)

        self.assertEqual(result.factor_scores.research, 0.5)
        self.assertGreaterEqual(result.factor_scores.academic, 0.7)
        self.assertLessEqual(result.factor_scores.academic, 1.0)
        self.assertEqual(result.university_id, "x")

    def test_gpa_equal_to_minimum_meets_threshold(self):
        self.assertEqual(academic_score(3.5, 3.5), 1.0)
        self.assertAlmostEqual(academic_score(3.0, 3.5), 3.0 / 3.5 * 0.8)
        self.assertEqual(academic_score(None, 3.5), 0.7)
        self.assertAlmostEqual(academic_score(4.0, None), 1.0)

    def test_research_overlap_is_case_insensitive(self):
        self.assertEqual(research_score(["ROBOTICS"], ["Robotics"]), 1.0)
        self.assertEqual(research_score(["Biology"], ["Robotics"]), 0.0)
        self.assertEqual(research_score([], ["Robotics"]), 0.5)

    def test_reputation_and_financial_factors(self):
        self.assertAlmostEqual(reputation_score({"qs": 5, "us_news": 3}), 0.94)
        self.assertEqual(reputation_score({"qs": 400}), 0.3)
        self.assertEqual(reputation_score({}), 0.5)
        self.assertEqual(financial_score(50000, 40000), 1.0)
        self.assertAlmostEqual(financial_score(50000, 60000), 0.8)
        self.assertEqual(financial_score(None, 60000), 0.8)

    def test_location_country_match_ignores_case(self):
        university = CATALOG.university("stanford")
        profile = _profile(preferences=Preferences(countries=["united states"]))
        self.assertAlmostEqual(location_score(university, profile), 0.9)
        self.assertEqual(location_score(university, _profile()), 0.8)

    def test_admission_probability_is_bounded(self):
        program = CATALOG.program("stanford", "stanford-ms-cs")
        university = CATALOG.university("stanford")
        low = admission_probability(_profile(gpa=2.0), program, university)
        high = admission_probability(_profile(gpa=4.0), None, None)
        self.assertGreaterEqual(low, 0.1)
        self.assertLessEqual(high, 0.95)


class CategoryTests(unittest.TestCase):
    def test_category_is_a_function_of_score_and_rate(self):
        self.assertEqual(determine_category(0.9, 0.5), "safety")
        self.assertEqual(determine_category(0.9, 0.2), "target")
        self.assertEqual(determine_category(0.9, 0.1), "reach")
        self.assertEqual(determine_category(0.7, 0.5), "target")
        self.assertEqual(determine_category(0.5, 0.9), "reach")

    def test_thresholds_are_strict(self):
        self.assertEqual(determine_category(0.8, 0.5), "target")
        self.assertEqual(determine_category(0.6, 0.5), "reach")
        self.assertEqual(determine_category(0.9, 0.3), "target")

    def test_missing_rate_uses_default(self):
        self.assertEqual(determine_category(0.85), "safety")
        self.assertEqual(determine_category(1.5), "safety")


class ScoreAllTests(unittest.TestCase):
    def test_results_cover_programs_and_program_less_universities(self):
        results = score_all(_profile(), CATALOG)

        self.assertEqual(len(results), 6)
        scores = [result.overall_score for result in results]
        self.assertEqual(scores, sorted(scores, reverse=True))
        bare = [result for result in results if result.program_id is None]
        self.assertEqual([result.university_id for result in bare], ["edinburgh"])
        self.assertIn(PROVISIONAL_PROGRAM_NOTE, bare[0].reasoning)
        for result in results:
            self.assertEqual(result.source, "fallback")
            self.assertEqual(result.display_score, round(result.overall_score * 100))

    def test_scoring_is_deterministic(self):
        first = score_all(_profile(), CATALOG)
        second = score_all(_profile(), CATALOG)
        self.assertEqual([result.model_dump() for result in first], [result.model_dump() for result in second])

    def test_session_cache_reuses_program_scores(self):
        cache = MatchingSessionCache()
        first = score_all(_profile(), CATALOG, cache=cache)
        second = score_all(_profile(), CATALOG, cache=cache)
        self.assertEqual(cache.misses, 5)
        self.assertEqual(cache.hits, 5)
        self.assertEqual(first, second)

    def test_country_preference_filters_catalog(self):
        results = score_all(_profile(preferences=Preferences(countries=["canada"])), CATALOG)
        self.assertEqual({result.program_id for result in results}, {"uoft-msc-cs", "uoft-mi"})

    def test_min_admission_rate_filters_selective_programs(self):
        results = score_all(_profile(preferences=Preferences(min_admission_rate=0.3)), CATALOG)
        self.assertEqual({result.program_id for result in results}, {"uoft-msc-cs", "uoft-mi", None})

    def test_filters_relax_when_nothing_survives(self):
        results = score_all(_profile(preferences=Preferences(countries=["Japan"])), CATALOG)
        self.assertEqual(len(results), 6)

    def test_program_reasoning_mentions_profile_strengths(self):
        profile = _profile(
            gpa=3.9,
            publications=["Paper A"],
            preferences=Preferences(countries=["United States"], max_tuition=70000),
        )
        result = score_program(profile, CATALOG.program("stanford", "stanford-ms-cs"), CATALOG.university("stanford"))
        self.assertIn("Research Match: Alignment in Machine Learning", result.reasoning)
        self.assertIn("Research Profile: 1 publication(s)", result.reasoning)
        self.assertIn("Located in preferred country (United States)", result.reasoning)
        self.assertIn("Financial Fit: Within budget range", result.reasoning)
        self.assertTrue(result.reasoning.split("\n\n")[-1].startswith("Reach School"))


class UniversityOnlyTests(unittest.TestCase):
    def test_program_stays_provisional(self):
        result = score_university_only(_profile(), CATALOG.university("edinburgh"), "MSc Informatics")
        self.assertIsNone(result.program_id)
        self.assertTrue(
            result.reasoning.endswith("Suggested program area: MSc Informatics (specific program details to be confirmed).")
        )

    def test_reasons_are_limited_to_three(self):
        profile = _profile(preferences=Preferences(countries=["Canada"]))
        reasoning = build_university_only_reasoning(
            profile,
            CATALOG.university("uoft"),
            research=0.9,
            ai_reason="Strong ML group",
        )
        parts = reasoning.rstrip(".").split(". ")
        self.assertEqual(len(parts), 4)
        self.assertTrue(parts[0].startswith("AI Recommendation"))


class RelevanceTests(unittest.TestCase):
    def test_small_catalogs_keep_everything(self):
        program = ProgramCatalogEntry(university_id="u", program_id="p", program_name="PhD in Biology")
        self.assertTrue(is_program_relevant(program, _profile(), catalog_size=3))

    def test_unrelated_program_is_dropped_in_large_catalogs(self):
        program = ProgramCatalogEntry(
            university_id="u",
            program_id="p",
            program_name="PhD in Biology",
            field_of_study="Biology",
            research_areas=["Genetics"],
        )
        self.assertFalse(is_program_relevant(program, _profile(), catalog_size=50))

    def test_generic_masters_programs_are_relevant(self):
        program = ProgramCatalogEntry(
            university_id="u", program_id="p", program_name="Master of Arts in History", field_of_study="History"
        )
        self.assertTrue(is_program_relevant(program, _profile(), catalog_size=50))

    def test_empty_target_degree_keeps_everything(self):
        program = ProgramCatalogEntry(university_id="u", program_id="p", program_name="PhD in Biology")
        self.assertTrue(is_program_relevant(program, _profile(target_degree=""), catalog_size=50))


if __name__ == "__main__":
    unittest.main()
