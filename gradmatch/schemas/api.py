from __future__ import annotations

from pydantic import BaseModel, Field

from gradmatch.features.cv_validator import ValidationResult
from gradmatch.parsing.models import ParsedDocument

from .catalog import Catalog
from .match import MatchingRun
from .profile import CandidateProfile, CVExtraction, StoredAcademicProfile


class MatchRequest(BaseModel):
    profile: CandidateProfile = Field(default_factory=CandidateProfile)
    cv_extraction: CVExtraction | None = None
    stored_profile: StoredAcademicProfile | None = None
    catalog: Catalog | None = None


class MatchResponse(BaseModel):
    profile: CandidateProfile
    run: MatchingRun


class CVParseResponse(BaseModel):
    document: ParsedDocument
    validation: ValidationResult
    extraction: CVExtraction | None = None


class CVMatchResponse(BaseModel):
    document: ParsedDocument
    validation: ValidationResult
    extraction: CVExtraction
    profile: CandidateProfile
    run: MatchingRun
