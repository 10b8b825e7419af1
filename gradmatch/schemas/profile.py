from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


def unique_terms(values: list[str] | tuple[str, ...] | None) -> list[str]:
    """Strip, drop empties and de-duplicate case-insensitively, keeping first-seen order."""
    seen: set[str] = set()
    result: list[str] = []
    for value in values or []:
        text = str(value or "").strip()
        key = text.lower()
        if not text or key in seen:
            continue
        seen.add(key)
        result.append(text)
    return result


class Preferences(BaseModel):
    model_config = ConfigDict(frozen=True)

    countries: list[str] = Field(default_factory=list)
    locations: list[str] = Field(default_factory=list)
    university_types: list[str] = Field(default_factory=list)
    max_tuition: float | None = Field(default=None, ge=0)
    min_admission_rate: float | None = Field(default=None, ge=0.0, le=1.0)

    @field_validator("countries", "locations", "university_types")
    @classmethod
    def _dedupe(cls, value: list[str]) -> list[str]:
        return unique_terms(value)


class CandidateProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    gpa: float | None = Field(default=None, ge=0.0, le=10.0)
    test_scores: dict[str, float] = Field(default_factory=dict)
    research_interests: list[str] = Field(default_factory=list)
    target_degree: str = ""
    preferences: Preferences = Field(default_factory=Preferences)
    publications: list[str] = Field(default_factory=list)
    projects: list[str] = Field(default_factory=list)
    experience: list[str] = Field(default_factory=list)
    technical_skills: list[str] = Field(default_factory=list)
    awards: list[str] = Field(default_factory=list)

    @field_validator("research_interests", "technical_skills", "publications", "projects", "experience", "awards")
    @classmethod
    def _dedupe(cls, value: list[str]) -> list[str]:
        return unique_terms(value)

    @field_validator("target_degree")
    @classmethod
    def _strip(cls, value: str) -> str:
        return (value or "").strip()


class CVExtraction(BaseModel):
    """Structured facts pulled out of a CV, by the model or by heuristics."""

    gpa: float | None = Field(default=None, ge=0.0, le=10.0)
    degree: str | None = None
    field_of_study: str | None = None
    institution: str | None = None
    test_scores: dict[str, float] = Field(default_factory=dict)
    research_areas: list[str] = Field(default_factory=list)
    technical_skills: list[str] = Field(default_factory=list)
    publications: list[str] = Field(default_factory=list)
    projects: list[str] = Field(default_factory=list)
    experience: list[str] = Field(default_factory=list)
    awards: list[str] = Field(default_factory=list)
    source: str = "heuristic"


class StoredAcademicProfile(BaseModel):
    """Previously saved academic record, supplied by the storage collaborator."""

    gpa: float | None = Field(default=None, ge=0.0, le=10.0)
    current_field: str | None = None
    current_institution: str | None = None
    current_degree: str | None = None
    target_degree: str | None = None
    test_scores: dict[str, float] = Field(default_factory=dict)
    research_interests: list[str] = Field(default_factory=list)
    technical_skills: list[str] = Field(default_factory=list)
    preferences: Preferences | None = None
