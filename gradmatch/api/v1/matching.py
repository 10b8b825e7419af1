from fastapi import APIRouter, Depends, Header, Request

from gradmatch.api.v1.deps import default_catalog, get_orchestrator, http_error
from gradmatch.core.errors import GradMatchError
from gradmatch.core.rate_limit import rate_limit
from gradmatch.core.security import check_api_key
from gradmatch.normalize.profile_enhancer import enhance_profile
from gradmatch.schemas.api import MatchRequest, MatchResponse
from gradmatch.services.orchestrator import MatchOrchestrator

router = APIRouter()


@router.post("/matches", response_model=MatchResponse)
@rate_limit()
async def create_matches(
    request: Request,
    payload: MatchRequest,
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
    orchestrator: MatchOrchestrator = Depends(get_orchestrator),
):
    _ = request
    check_api_key(x_api_key)
    profile = enhance_profile(payload.profile, payload.cv_extraction, payload.stored_profile)
    try:
        catalog = payload.catalog if payload.catalog is not None else default_catalog()
        run = await orchestrator.run(profile, catalog)
    except GradMatchError as exc:
        raise http_error(exc) from exc
    return MatchResponse(profile=profile, run=run)
