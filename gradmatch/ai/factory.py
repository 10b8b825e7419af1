from __future__ import annotations

from gradmatch.ai.config import ai_credentials_present, load_ai_config
from gradmatch.ai.providers.openai_provider import AzureOpenAIProvider, OpenAIProvider
from gradmatch.ai.types import AIClient


def get_ai_client() -> AIClient | None:
    """Return the configured recommendation client, or None when AI is off or unconfigured."""
    cfg = load_ai_config()
    if not cfg.enabled or not ai_credentials_present(cfg.provider):
        return None

    if cfg.provider == "openai":
        return OpenAIProvider(model=cfg.model)

    if cfg.provider == "azure":
        return AzureOpenAIProvider(model=cfg.model)

    raise ValueError(f"Unsupported AI_PROVIDER='{cfg.provider}'")
