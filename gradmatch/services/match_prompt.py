from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from gradmatch.ai.types import ChatMessage
from gradmatch.core.errors import AIServiceError
from gradmatch.schemas.catalog import Catalog, UniversityRecord
from gradmatch.schemas.match import MATCH_CATEGORIES
from gradmatch.schemas.profile import CandidateProfile

MATCH_SYSTEM_PROMPT = (
    "You are a graduate school admissions expert. Analyze the student profile and recommend "
    "universities with detailed reasoning. Prefer universities from the provided catalog. "
    "Return only a valid JSON array with no additional text."
)

MATCH_RESPONSE_EXAMPLE = """[
  {
    "university": "Stanford University",
    "program": "MS in Computer Science",
    "score": 85,
    "category": "reach",
    "reason": "Detailed explanation of fit"
  }
]"""

MAX_PROMPT_INTERESTS = 3
MAX_PROMPT_SKILLS = 5


class AIRecommendation(BaseModel):
    university: str = Field(min_length=1)
    program: str = ""
    score: float = 0.75
    category: str | None = None
    reason: str = ""

    @field_validator("score", mode="before")
    @classmethod
    def _normalize_score(cls, value: Any) -> float:
        # Accept both 0-100 and 0-1 scales; a missing score reads as 75.
        try:
            number = float(value)
        except (TypeError, ValueError):
            return 0.75
        if number > 1:
            number = number / 100
        return max(0.0, min(1.0, number))

    @field_validator("category", mode="before")
    @classmethod
    def _normalize_category(cls, value: Any) -> str | None:
        text = str(value or "").strip().lower()
        return text if text in MATCH_CATEGORIES else None

    @field_validator("program", "reason", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str:
        return str(value or "").strip()


def _format_preferences(profile: CandidateProfile) -> str:
    preferences = profile.preferences
    parts: list[str] = []
    if preferences.countries:
        parts.append(f"countries: {', '.join(preferences.countries)}")
    if preferences.locations:
        parts.append(f"locations: {', '.join(preferences.locations)}")
    if preferences.university_types:
        parts.append(f"university types: {', '.join(preferences.university_types)}")
    if preferences.max_tuition is not None:
        parts.append(f"max tuition: {preferences.max_tuition:g}")
    return "; ".join(parts) or "Open to all locations"


def _catalog_entry(university: UniversityRecord, catalog: Catalog) -> dict[str, Any]:
    return {
        "name": university.name,
        "country": university.country,
        "programs": [
            {
                "name": program.program_name,
                "field": program.department or program.field_of_study or "General",
                "degree_type": program.degree_type,
                "research_areas": program.research_areas,
                "admission_rate": program.admission_rate
                if program.admission_rate is not None
                else university.acceptance_rate,
                "min_gpa": program.min_gpa,
                "tuition": program.tuition_annual,
            }
            for program in catalog.programs_for(university.university_id)
        ],
    }


def build_match_messages(
    profile: CandidateProfile,
    catalog: Catalog,
    universities: list[UniversityRecord],
    *,
    max_entries: int = 15,
) -> list[ChatMessage]:
    interests = ", ".join(profile.research_interests[:MAX_PROMPT_INTERESTS]) or "Not specified"
    skills = ", ".join(profile.technical_skills[:MAX_PROMPT_SKILLS]) or "Not specified"
    gpa = f"{profile.gpa:g}" if profile.gpa is not None else "Not specified"
    entries = [_catalog_entry(university, catalog) for university in universities[:max_entries]]

    prompt = (
        "Based on this student profile, recommend 5-8 universities with specific programs:\n\n"
        "STUDENT PROFILE:\n"
        f"- GPA: {gpa}\n"
        f"- Field: {profile.target_degree or 'Not specified'}\n"
        f"- Research Interests: {interests}\n"
        f"- Top Skills: {skills}\n"
        f"- Publications: {len(profile.publications)}\n"
        f"- Location Preference: {_format_preferences(profile)}\n\n"
        "AVAILABLE UNIVERSITIES:\n"
        f"{json.dumps(entries, ensure_ascii=False)}\n\n"
        "Return ONLY a JSON array with university matches:\n"
        f"{MATCH_RESPONSE_EXAMPLE}"
    )
    return [
        ChatMessage(role="system", content=MATCH_SYSTEM_PROMPT),
        ChatMessage(role="user", content=prompt),
    ]


def _first_json_array(text: str) -> list[Any] | None:
    decoder = json.JSONDecoder()
    index = text.find("[")
    while index != -1:
        try:
            value, _end = decoder.raw_decode(text, index)
        except json.JSONDecodeError:
            value = None
        if isinstance(value, list):
            return value
        index = text.find("[", index + 1)
    return None


def parse_recommendations(text: str) -> list[AIRecommendation]:
    """Recommendations from the first well-formed JSON array in a model response."""
    items = _first_json_array(text or "")
    if items is None:
        raise AIServiceError(
            "AI response did not contain a JSON array of recommendations.",
            code="AI_MALFORMED_OUTPUT",
        )
    recommendations: list[AIRecommendation] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        try:
            recommendations.append(AIRecommendation.model_validate(item))
        except ValidationError:
            continue
    return recommendations
