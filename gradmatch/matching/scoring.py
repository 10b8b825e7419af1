from __future__ import annotations

import logging
import re

from gradmatch.core.config.scoring import get_scoring_float, get_scoring_int, get_scoring_value
from gradmatch.core.session_cache import MatchingSessionCache
from gradmatch.schemas.catalog import Catalog, ProgramCatalogEntry, UniversityRecord
from gradmatch.schemas.match import FactorScores, MatchCategory, MatchResult
from gradmatch.schemas.profile import CandidateProfile

from .reasoning import build_program_reasoning, build_university_only_reasoning
from .text import contains_either, matched_terms

logger = logging.getLogger(__name__)

DEFAULT_WEIGHTS: dict[str, float] = {
    "academic": 0.25,
    "research": 0.30,
    "reputation": 0.20,
    "financial": 0.15,
    "admission_probability": 0.10,
}

DEFAULT_UNIVERSITY_ONLY_WEIGHTS: dict[str, float] = {
    "reputation": 0.40,
    "location": 0.30,
    "research": 0.30,
}

_GENERIC_GRADUATE_RE = re.compile(r"\b(?:master\w*|mba|ms|msc|m\.s\.|science)\b", re.IGNORECASE)


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def _weights(path: str, defaults: dict[str, float]) -> dict[str, float]:
    configured = get_scoring_value(path, None)
    if not isinstance(configured, dict):
        return dict(defaults)
    weights: dict[str, float] = {}
    for key, default in defaults.items():
        try:
            weights[key] = float(configured.get(key, default))
        except (TypeError, ValueError):
            weights[key] = default
    return weights


def academic_score(gpa: float | None, min_gpa: float | None) -> float:
    if min_gpa is None or min_gpa <= 0:
        if gpa is None:
            return 0.85
        scale = get_scoring_float("matching.gpa_scale_max", 4.0)
        return 0.7 + 0.3 * min(gpa / scale, 1.0)
    if gpa is None:
        return 0.7
    if gpa >= min_gpa:
        return 1.0
    factor = get_scoring_float("matching.below_threshold_factor", 0.8)
    return _clamp(gpa / min_gpa * factor)


def research_score(interests: list[str], areas: list[str]) -> float:
    if not interests or not areas:
        return 0.5
    matched = matched_terms(interests, areas)
    return _clamp(len(matched) / max(len(interests), len(areas)))


def reputation_score(rankings: dict[str, int]) -> float:
    values = [float(rank) for rank in (rankings or {}).values() if isinstance(rank, (int, float)) and rank > 0]
    if not values:
        return 0.5
    average = sum(values) / len(values)
    return _clamp(1 - (average - 1) / 50, 0.3, 1.0)


def financial_score(budget: float | None, tuition: float | None) -> float:
    if not budget or tuition is None:
        return 0.8
    if tuition <= budget:
        return 1.0
    return _clamp(1 - (tuition - budget) / budget)


def location_score(university: UniversityRecord, profile: CandidateProfile) -> float:
    preferences = profile.preferences
    if not preferences.countries and not preferences.locations:
        return 0.8
    score = 0.5
    country = (university.country or "").lower()
    if country and any(country == item.lower() for item in preferences.countries):
        score += 0.4
    places = [university.city or "", university.state_province or ""]
    if any(contains_either(place, location) for place in places for location in preferences.locations):
        score += 0.3
    return _clamp(score)


def university_research_score(university: UniversityRecord, interests: list[str]) -> float:
    areas = [*university.research_areas, *university.departments]
    if not interests or not areas:
        return 0.5
    matched = matched_terms(interests, areas)
    return _clamp(len(matched) / len(interests) * 1.5)


def known_admission_rate(program: ProgramCatalogEntry | None, university: UniversityRecord | None) -> float | None:
    if program is not None and program.admission_rate is not None:
        return program.admission_rate
    if university is not None and university.acceptance_rate is not None:
        return university.acceptance_rate
    return None


def category_rate(program: ProgramCatalogEntry | None, university: UniversityRecord | None) -> float:
    rate = known_admission_rate(program, university)
    if rate is None:
        return get_scoring_float("matching.default_admission_rate", 0.5)
    return rate


def admission_probability(
    profile: CandidateProfile,
    program: ProgramCatalogEntry | None,
    university: UniversityRecord | None,
) -> float:
    probability = 0.5
    min_gpa = program.min_gpa if program is not None else None
    if profile.gpa is not None and min_gpa is not None:
        buffer = get_scoring_float("matching.gpa_buffer", 0.3)
        if profile.gpa >= min_gpa + buffer:
            probability += 0.3
        elif profile.gpa >= min_gpa:
            probability += 0.1
        else:
            probability -= 0.2
    rate = known_admission_rate(program, university)
    if rate is not None:
        probability *= 0.3 + rate * 0.7
    return _clamp(probability, 0.1, 0.95)


def determine_category(score: float, rate: float | None = None) -> MatchCategory:
    """Reach/target/safety from a clamped score and an admission rate."""
    score = _clamp(score)
    if rate is None:
        rate = get_scoring_float("matching.default_admission_rate", 0.5)
    if score > get_scoring_float("matching.categories.safety_score", 0.8) and rate > get_scoring_float(
        "matching.categories.safety_rate", 0.3
    ):
        return "safety"
    if score > get_scoring_float("matching.categories.target_score", 0.6) and rate > get_scoring_float(
        "matching.categories.target_rate", 0.15
    ):
        return "target"
    return "reach"


def cv_alignment_score(profile: CandidateProfile, program: ProgramCatalogEntry) -> float:
    score = 0.5
    areas = program.research_areas
    if profile.experience:
        relevant = [entry for entry in profile.experience if any(contains_either(entry, area) for area in areas)]
        score += len(relevant) / len(profile.experience) * 0.3
    if profile.technical_skills:
        relevant = matched_terms(profile.technical_skills, areas)
        score += min(0.2, len(relevant) / len(profile.technical_skills) * 0.2)
    return _clamp(score)


def result_confidence(
    profile: CandidateProfile,
    program: ProgramCatalogEntry | None,
    university: UniversityRecord | None,
) -> float:
    """Share of the scoring inputs that were actually known rather than defaulted."""

    def pair(left: bool, right: bool) -> float:
        return (float(left) + float(right)) / 2

    min_gpa = program.min_gpa if program is not None else None
    areas = program.research_areas if program is not None else []
    if not areas and university is not None:
        areas = [*university.research_areas, *university.departments]
    rankings = (program.ranking_scores if program is not None else {}) or (
        university.ranking_scores if university is not None else {}
    )
    tuition = program.tuition_annual if program is not None else None
    signals = [
        pair(profile.gpa is not None, min_gpa is not None),
        pair(bool(profile.research_interests), bool(areas)),
        1.0 if rankings else 0.0,
        pair(profile.preferences.max_tuition is not None, tuition is not None),
        1.0 if known_admission_rate(program, university) is not None else 0.0,
    ]
    return round(_clamp(sum(signals) / len(signals)), 4)


def _placeholder_university(university_id: str) -> UniversityRecord:
    return UniversityRecord(university_id=university_id, name=university_id)


def compute_factors(
    profile: CandidateProfile,
    program: ProgramCatalogEntry,
    university: UniversityRecord,
) -> FactorScores:
    rankings = program.ranking_scores or university.ranking_scores
    return FactorScores(
        academic=academic_score(profile.gpa, program.min_gpa),
        research=research_score(profile.research_interests, program.research_areas),
        financial=financial_score(profile.preferences.max_tuition, program.tuition_annual),
        location=location_score(university, profile),
        reputation=reputation_score(rankings),
        admission_probability=admission_probability(profile, program, university),
        cv_alignment=cv_alignment_score(profile, program),
    )


def weighted_total(factors: FactorScores) -> float:
    weights = _weights("matching.weights", DEFAULT_WEIGHTS)
    total = (
        factors.academic * weights["academic"]
        + factors.research * weights["research"]
        + factors.reputation * weights["reputation"]
        + factors.financial * weights["financial"]
        + factors.admission_probability * weights["admission_probability"]
    )
    return _clamp(total)


def _score_program(
    profile: CandidateProfile,
    program: ProgramCatalogEntry,
    university: UniversityRecord,
) -> MatchResult:
    factors = compute_factors(profile, program, university)
    overall = weighted_total(factors)
    rate = category_rate(program, university)
    category = determine_category(overall, rate)
    return MatchResult(
        university_id=university.university_id,
        program_id=program.program_id,
        overall_score=overall,
        category=category,
        factor_scores=factors,
        reasoning=build_program_reasoning(
            profile, program, university, factors, score=overall, category=category, rate=rate
        ),
        confidence=result_confidence(profile, program, university),
        source="fallback",
    )


def score_program(
    profile: CandidateProfile,
    program: ProgramCatalogEntry,
    university: UniversityRecord | None = None,
    *,
    cache: MatchingSessionCache | None = None,
) -> MatchResult:
    """Deterministic multi-factor score for one program."""
    university = university or _placeholder_university(program.university_id)
    if cache is None:
        return _score_program(profile, program, university)
    return cache.get_or_compute(
        "program_score",
        (program.university_id, program.program_id),
        lambda: _score_program(profile, program, university),
    )


def score_university_only(
    profile: CandidateProfile,
    university: UniversityRecord,
    suggested_program: str | None = None,
) -> MatchResult:
    """Score a university without a resolved program; the program stays provisional."""
    weights = _weights("matching.university_only_weights", DEFAULT_UNIVERSITY_ONLY_WEIGHTS)
    research = university_research_score(university, profile.research_interests)
    location = location_score(university, profile)
    reputation = reputation_score(university.ranking_scores)
    overall = _clamp(
        reputation * weights["reputation"] + location * weights["location"] + research * weights["research"]
    )
    factors = FactorScores(
        academic=academic_score(profile.gpa, None),
        research=research,
        financial=financial_score(profile.preferences.max_tuition, None),
        location=location,
        reputation=reputation,
        admission_probability=admission_probability(profile, None, university),
    )
    rate = category_rate(None, university)
    return MatchResult(
        university_id=university.university_id,
        program_id=None,
        overall_score=overall,
        category=determine_category(overall, rate),
        factor_scores=factors,
        reasoning=build_university_only_reasoning(
            profile,
            university,
            research=research,
            suggested_program=suggested_program,
        ),
        confidence=result_confidence(profile, None, university),
        source="fallback",
    )


def is_generic_graduate_program(program: ProgramCatalogEntry) -> bool:
    return bool(_GENERIC_GRADUATE_RE.search(program.program_name or ""))


def is_program_relevant(
    program: ProgramCatalogEntry,
    profile: CandidateProfile,
    *,
    catalog_size: int | None = None,
) -> bool:
    if catalog_size is not None and catalog_size <= get_scoring_int("matching.small_catalog_size", 5):
        return True
    target = profile.target_degree
    if not target:
        return True
    fields = [program.field_of_study, program.department or "", program.program_name]
    if any(contains_either(target, field) for field in fields):
        return True
    if matched_terms(profile.research_interests, program.research_areas):
        return True
    return is_generic_graduate_program(program)


def _matches_any(value: str | None, options: list[str]) -> bool:
    lowered = (value or "").strip().lower()
    return bool(lowered) and any(lowered == option.lower() for option in options)


def preferred_universities(catalog: Catalog, profile: CandidateProfile) -> list[UniversityRecord]:
    preferences = profile.preferences
    universities = list(catalog.universities)
    if preferences.countries:
        universities = [item for item in universities if _matches_any(item.country, preferences.countries)]
    if preferences.university_types:
        universities = [
            item for item in universities if _matches_any(item.university_type, preferences.university_types)
        ]
    return universities


def eligible_candidates(
    profile: CandidateProfile,
    catalog: Catalog,
) -> tuple[list[tuple[ProgramCatalogEntry, UniversityRecord]], list[UniversityRecord]]:
    """Programs to score plus program-less universities, after preference and relevance filters.

    Falls back to the unfiltered catalog when filtering would leave nothing.
    """
    by_id = {university.university_id: university for university in catalog.universities}
    universities = preferred_universities(catalog, profile)
    allowed_ids = {university.university_id for university in universities}
    min_rate = profile.preferences.min_admission_rate
    catalog_size = len(catalog.programs)

    programs: list[tuple[ProgramCatalogEntry, UniversityRecord]] = []
    for program in catalog.programs:
        university = by_id.get(program.university_id) or _placeholder_university(program.university_id)
        if program.university_id in by_id and program.university_id not in allowed_ids:
            continue
        if min_rate is not None:
            rate = known_admission_rate(program, university)
            if rate is not None and rate < min_rate:
                continue
        if not is_program_relevant(program, profile, catalog_size=catalog_size):
            continue
        programs.append((program, university))

    with_programs = {program.university_id for program in catalog.programs}
    bare = [university for university in universities if university.university_id not in with_programs]

    if not programs and not bare:
        logger.info("match_filters_relaxed programs=%s universities=%s", catalog_size, len(catalog.universities))
        programs = [
            (program, by_id.get(program.university_id) or _placeholder_university(program.university_id))
            for program in catalog.programs
        ]
        bare = [university for university in catalog.universities if university.university_id not in with_programs]
    return programs, bare


def score_all(
    profile: CandidateProfile,
    catalog: Catalog,
    *,
    cache: MatchingSessionCache | None = None,
) -> list[MatchResult]:
    """Score every eligible catalog entry, best first; ties keep catalog order."""
    programs, bare = eligible_candidates(profile, catalog)
    results = [score_program(profile, program, university, cache=cache) for program, university in programs]
    results.extend(score_university_only(profile, university) for university in bare)
    ranked = sorted(results, key=lambda result: -result.overall_score)
    logger.info("fallback_scoring_complete scored=%s catalog_programs=%s", len(ranked), len(catalog.programs))
    return ranked
