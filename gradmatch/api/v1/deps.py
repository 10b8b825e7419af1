from __future__ import annotations

from functools import lru_cache

from fastapi import HTTPException, UploadFile

from gradmatch.ai.factory import get_ai_client
from gradmatch.catalog import load_catalog
from gradmatch.core.config import settings
from gradmatch.core.errors import GradMatchError
from gradmatch.schemas.catalog import Catalog
from gradmatch.services.orchestrator import MatchOrchestrator

_READ_CHUNK_BYTES = 1024 * 64


def http_error(exc: GradMatchError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.to_dict())


async def read_upload(file: UploadFile) -> bytes:
    chunks: list[bytes] = []
    total = 0
    while True:
        chunk = await file.read(_READ_CHUNK_BYTES)
        if not chunk:
            break
        total += len(chunk)
        if total > settings.max_upload_bytes:
            limit_mb = settings.max_upload_bytes // (1024 * 1024)
            raise HTTPException(
                status_code=413,
                detail={
                    "code": "FILE_TOO_LARGE",
                    "message": f"File size exceeds {limit_mb}MB limit.",
                    "hint": f"Compress the document or upload a version under {limit_mb}MB.",
                },
            )
        chunks.append(chunk)
    return b"".join(chunks)


@lru_cache(maxsize=1)
def default_catalog() -> Catalog:
    return load_catalog()


def get_orchestrator() -> MatchOrchestrator:
    return MatchOrchestrator(get_ai_client())
