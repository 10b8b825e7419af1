from __future__ import annotations

import asyncio
import logging

from pydantic import BaseModel, ConfigDict

from gradmatch.ai.factory import get_ai_client
from gradmatch.core.errors import ContentValidationError
from gradmatch.features.cv_validator import ValidationResult, validate_cv_content
from gradmatch.normalize.profile_enhancer import enhance_profile
from gradmatch.parsing import ParsedDocument, parse_document
from gradmatch.schemas.catalog import Catalog
from gradmatch.schemas.match import MatchingRun
from gradmatch.schemas.profile import CandidateProfile, CVExtraction, StoredAcademicProfile
from gradmatch.services.cv_extraction import extract_cv_profile
from gradmatch.services.orchestrator import MatchOrchestrator

logger = logging.getLogger(__name__)

NOT_A_CV_HINT = "Upload a CV or resume that lists your education, experience and skills."


class CVAnalysis(BaseModel):
    model_config = ConfigDict(frozen=True)

    document: ParsedDocument
    validation: ValidationResult
    extraction: CVExtraction


class CVMatchOutcome(BaseModel):
    analysis: CVAnalysis
    profile: CandidateProfile
    run: MatchingRun


def analyze_cv(
    content: bytes,
    file_name: str,
    mime_hint: str | None = None,
    *,
    use_llm: bool = True,
) -> CVAnalysis:
    """Parse, gate on CV-likeness, then extract. Raises DocumentParseError or ContentValidationError."""
    document = parse_document(content, file_name, mime_hint)
    validation = validate_cv_content(document.text)
    if not validation.is_valid:
        logger.info("cv_rejected file=%s confidence=%s", file_name, validation.confidence)
        raise ContentValidationError(
            "The uploaded document does not appear to be a CV or resume.",
            hint=NOT_A_CV_HINT,
        )
    extraction = extract_cv_profile(document, use_llm=use_llm)
    return CVAnalysis(document=document, validation=validation, extraction=extraction)


async def run_cv_matching(
    content: bytes,
    file_name: str,
    mime_hint: str | None,
    profile: CandidateProfile,
    catalog: Catalog,
    *,
    stored_profile: StoredAcademicProfile | None = None,
    orchestrator: MatchOrchestrator | None = None,
    use_llm: bool = True,
) -> CVMatchOutcome:
    analysis = await asyncio.to_thread(analyze_cv, content, file_name, mime_hint, use_llm=use_llm)
    enhanced = enhance_profile(profile, analysis.extraction, stored_profile)
    orchestrator = orchestrator or MatchOrchestrator(get_ai_client())
    run = await orchestrator.run(enhanced, catalog)
    return CVMatchOutcome(analysis=analysis, profile=enhanced, run=run)
