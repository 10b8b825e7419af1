import asyncio
import logging

from fastapi import APIRouter, Depends, File, Form, Header, HTTPException, Request, UploadFile
from pydantic import ValidationError

from gradmatch.api.v1.deps import default_catalog, get_orchestrator, http_error, read_upload
from gradmatch.core.errors import GradMatchError
from gradmatch.core.rate_limit import rate_limit
from gradmatch.core.security import check_api_key
from gradmatch.features.cv_validator import validate_cv_content
from gradmatch.parsing import parse_document
from gradmatch.schemas.api import CVMatchResponse, CVParseResponse
from gradmatch.schemas.profile import CandidateProfile, StoredAcademicProfile
from gradmatch.services.cv_extraction import extract_cv_profile
from gradmatch.services.cv_pipeline import run_cv_matching
from gradmatch.services.orchestrator import MatchOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter()


def _parse_form_json(raw: str | None, model, field: str):
    if not raw:
        return None
    try:
        return model.model_validate_json(raw)
    except ValidationError as exc:
        raise HTTPException(
            status_code=422,
            detail={
                "code": "INVALID_REQUEST",
                "message": f"Invalid '{field}' JSON.",
                "errors": exc.errors(include_url=False, include_context=False, include_input=False),
            },
        ) from exc


def _parse_and_extract(content: bytes, file_name: str, mime_hint: str | None) -> CVParseResponse:
    document = parse_document(content, file_name, mime_hint)
    validation = validate_cv_content(document.text)
    extraction = extract_cv_profile(document) if validation.is_valid else None
    return CVParseResponse(document=document, validation=validation, extraction=extraction)


@router.post("/cv/parse", response_model=CVParseResponse)
@rate_limit()
async def cv_parse(
    request: Request,
    file: UploadFile = File(...),
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
):
    _ = request
    check_api_key(x_api_key)
    content = await read_upload(file)
    file_name = file.filename or "uploaded-file"
    try:
        return await asyncio.to_thread(_parse_and_extract, content, file_name, file.content_type)
    except GradMatchError as exc:
        logger.info("cv_parse_rejected file=%s code=%s", file_name, exc.code)
        raise http_error(exc) from exc


@router.post("/cv/match", response_model=CVMatchResponse)
@rate_limit()
async def cv_match(
    request: Request,
    file: UploadFile = File(...),
    profile: str | None = Form(default=None),
    stored_profile: str | None = Form(default=None),
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
    orchestrator: MatchOrchestrator = Depends(get_orchestrator),
):
    _ = request
    check_api_key(x_api_key)
    base = _parse_form_json(profile, CandidateProfile, "profile") or CandidateProfile()
    stored = _parse_form_json(stored_profile, StoredAcademicProfile, "stored_profile")
    content = await read_upload(file)
    file_name = file.filename or "uploaded-file"
    try:
        outcome = await run_cv_matching(
            content,
            file_name,
            file.content_type,
            base,
            default_catalog(),
            stored_profile=stored,
            orchestrator=orchestrator,
        )
    except GradMatchError as exc:
        logger.info("cv_match_rejected file=%s code=%s", file_name, exc.code)
        raise http_error(exc) from exc
    return CVMatchResponse(
        document=outcome.analysis.document,
        validation=outcome.analysis.validation,
        extraction=outcome.analysis.extraction,
        profile=outcome.profile,
        run=outcome.run,
    )
