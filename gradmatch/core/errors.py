from __future__ import annotations

from typing import Any


class GradMatchError(RuntimeError):
    """Base error carrying a stable machine-readable code for the caller."""

    default_code = "INTERNAL_ERROR"
    default_status_code = 500

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        hint: str | None = None,
        status_code: int | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.hint = hint
        self.status_code = status_code or self.default_status_code

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.hint:
            payload["hint"] = self.hint
        return payload


class DocumentParseError(GradMatchError):
    default_code = "PARSE_FAILED"
    default_status_code = 422


class ContentValidationError(GradMatchError):
    default_code = "NOT_A_CV"
    default_status_code = 422


class AIServiceError(GradMatchError):
    """Recommendation service failure. Never surfaced as fatal; it triggers fallback."""

    default_code = "AI_REQUEST_FAILED"
    default_status_code = 503


class AITimeoutError(AIServiceError):
    default_code = "AI_TIMEOUT"


class NoCatalogError(GradMatchError):
    default_code = "NO_CATALOG_AVAILABLE"
    default_status_code = 503

    def __init__(self, message: str = "No catalog available for matching.", **kwargs: Any):
        super().__init__(message, **kwargs)
