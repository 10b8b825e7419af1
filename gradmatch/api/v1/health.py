from fastapi import APIRouter

from gradmatch.ai.config import ai_credentials_present, load_ai_config

router = APIRouter()


@router.get("/health", summary="Health Check", description="Check the health status of the application.")
async def health_check():
    cfg = load_ai_config()
    ai_ready = cfg.enabled and ai_credentials_present(cfg.provider)
    return {"status": "healthy", "ai": "configured" if ai_ready else "fallback_only"}
