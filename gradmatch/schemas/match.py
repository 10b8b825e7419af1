from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field

MatchCategory = Literal["reach", "target", "safety"]
MatchSource = Literal["ai", "fallback"]
MATCH_CATEGORIES: tuple[str, ...] = ("reach", "target", "safety")


class OrchestratorState(str, Enum):
    IDLE = "idle"
    REQUESTING = "requesting"
    SUCCEEDED = "succeeded"
    TIMED_OUT = "timed_out"
    FAILED = "failed"
    RECONCILED = "reconciled"
    DONE = "done"


class FactorScores(BaseModel):
    model_config = ConfigDict(frozen=True)

    academic: float = Field(ge=0.0, le=1.0)
    research: float = Field(ge=0.0, le=1.0)
    financial: float = Field(ge=0.0, le=1.0)
    location: float = Field(ge=0.0, le=1.0)
    reputation: float = Field(ge=0.0, le=1.0)
    admission_probability: float = Field(ge=0.0, le=1.0)
    cv_alignment: float | None = Field(default=None, ge=0.0, le=1.0)


class MatchResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    university_id: str
    program_id: str | None = None
    overall_score: float = Field(ge=0.0, le=1.0)
    category: MatchCategory
    factor_scores: FactorScores
    reasoning: str
    confidence: float = Field(ge=0.0, le=1.0)
    source: MatchSource = "fallback"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def display_score(self) -> int:
        return int(round(self.overall_score * 100))

    @property
    def key(self) -> tuple[str, str | None]:
        return (self.university_id, self.program_id)


class FacultyMatch(BaseModel):
    model_config = ConfigDict(frozen=True)

    faculty_id: str
    university_id: str
    program_id: str | None = None
    name: str = ""
    match_reason: str
    accepting_students: bool
    overlap_count: int = Field(default=0, ge=0)


class MatchingRun(BaseModel):
    matches: list[MatchResult] = Field(default_factory=list)
    faculty: list[FacultyMatch] = Field(default_factory=list)
    state_trail: list[str] = Field(default_factory=list)
    used_fallback: bool = False
    error: dict[str, Any] | None = None
