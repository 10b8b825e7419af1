from __future__ import annotations

from gradmatch.schemas.catalog import ProgramCatalogEntry, UniversityRecord
from gradmatch.schemas.match import FactorScores, MatchCategory
from gradmatch.schemas.profile import CandidateProfile

from .text import contains_either, matched_terms

PROVISIONAL_PROGRAM_NOTE = "specific program details to be confirmed"


def _percent(value: float) -> int:
    return int(round(value * 100))


def _top_rankings(rankings: dict[str, int], limit: int = 2) -> str:
    ordered = sorted(rankings.items(), key=lambda item: item[1])
    return ", ".join(f"{source}: #{rank}" for source, rank in ordered[:limit])


def _in_preferred_country(profile: CandidateProfile, university: UniversityRecord) -> bool:
    country = (university.country or "").strip().lower()
    return bool(country) and any(country == item.lower() for item in profile.preferences.countries)


def category_explanation(
    category: MatchCategory,
    score: float,
    rate: float,
    profile: CandidateProfile,
) -> str:
    if category == "safety":
        return (
            f"Safety School: High match score ({_percent(score)}%) "
            f"with good admission rate ({_percent(rate)}%)"
        )
    if category == "target":
        strengths: list[str] = []
        if profile.gpa is not None and profile.gpa > 3.5 + (1 - rate):
            strengths.append("strong GPA")
        if profile.publications:
            strengths.append("research experience")
        suffix = f" with {' and '.join(strengths)}" if strengths else ""
        return f"Target School: Good fit ({_percent(score)}%){suffix}"
    return (
        f"Reach School: Competitive program ({_percent(rate)}% admission rate) "
        "but worth applying given your profile strengths"
    )


def build_program_reasoning(
    profile: CandidateProfile,
    program: ProgramCatalogEntry,
    university: UniversityRecord,
    factors: FactorScores,
    *,
    score: float,
    category: MatchCategory,
    rate: float,
    ai_reason: str | None = None,
) -> str:
    sections: list[str] = []
    if ai_reason:
        sections.append(f"AI Analysis: {ai_reason.strip()}")

    academic: list[str] = []
    if factors.academic > 0.8 and profile.gpa is not None:
        if program.min_gpa is not None:
            academic.append(f"Your GPA ({profile.gpa:g}) meets the requirement ({program.min_gpa:g})")
        else:
            academic.append(f"Your GPA ({profile.gpa:g}) is competitive for this program")
    if profile.test_scores:
        listed = ", ".join(f"{name.upper()} {value:g}" for name, value in list(profile.test_scores.items())[:2])
        academic.append(f"Test scores on file ({listed})")
    if academic:
        sections.append(f"Academic Fit: {', '.join(academic)}")

    matched = matched_terms(profile.research_interests, program.research_areas)
    if matched:
        sections.append(
            f"Research Match: Alignment in {' and '.join(matched[:2])} ({_percent(factors.research)}% match)"
        )

    relevant_experience = [
        entry for entry in profile.experience if any(contains_either(entry, area) for area in program.research_areas)
    ]
    if relevant_experience:
        sections.append(
            f"Experience Fit: {len(relevant_experience)} relevant experience entries align with program focus areas"
        )
    if profile.publications:
        sections.append(f"Research Profile: {len(profile.publications)} publication(s) demonstrate research capability")
    relevant_projects = [
        entry for entry in profile.projects if any(contains_either(entry, area) for area in program.research_areas)
    ]
    if relevant_projects:
        sections.append(f"Project Relevance: {len(relevant_projects)} project(s) directly relate to program areas")

    institutional: list[str] = []
    if university.ranking_scores and factors.reputation > 0.7:
        institutional.append(f"Top-ranked institution ({_top_rankings(university.ranking_scores)})")
    if _in_preferred_country(profile, university):
        institutional.append(f"Located in preferred country ({university.country})")
    if institutional:
        sections.append(f"Institutional Fit: {', '.join(institutional)}")

    budget = profile.preferences.max_tuition
    if program.tuition_annual is not None and budget and program.tuition_annual <= budget:
        sections.append("Financial Fit: Within budget range")

    sections.append(category_explanation(category, score, rate, profile))
    return "\n\n".join(sections)


def build_university_only_reasoning(
    profile: CandidateProfile,
    university: UniversityRecord,
    *,
    research: float,
    suggested_program: str | None = None,
    ai_reason: str | None = None,
) -> str:
    reasons: list[str] = []
    if ai_reason:
        reasons.append(f"AI Recommendation: {ai_reason.strip().rstrip('.')}")
    if university.ranking_scores and min(university.ranking_scores.values()) <= 100:
        reasons.append(f"Top-tier university ({_top_rankings(university.ranking_scores)})")
    if _in_preferred_country(profile, university):
        reasons.append(f"Located in preferred country: {university.country}")
    if research > 0.7:
        reasons.append("Strong research alignment in your areas of interest")

    program_label = (suggested_program or "").strip() or "Graduate study"
    note = f"Suggested program area: {program_label} ({PROVISIONAL_PROGRAM_NOTE})"
    return ". ".join([*reasons[:3], note]) + "."


def build_unresolved_reasoning(university_name: str, program_name: str | None, ai_reason: str | None) -> str:
    program_label = (program_name or "").strip() or "a graduate program"
    parts = [f"Recommended {university_name} for {program_label}"]
    if ai_reason:
        parts.append(ai_reason.strip().rstrip("."))
    parts.append(f"This university is not in the catalog yet, so {PROVISIONAL_PROGRAM_NOTE}")
    return ". ".join(parts) + "."


def faculty_match_reason(research_areas: list[str], interests: list[str]) -> str:
    matched = [area for area in research_areas if any(contains_either(area, interest) for interest in interests)]
    if matched:
        return f"Research expertise in {' and '.join(matched[:2])} aligns with your interests"
    return "Research areas complement your academic background"
