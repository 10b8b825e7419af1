from __future__ import annotations

import json
import logging
import os
import time
from functools import lru_cache
from typing import Any

from openai import OpenAI

from gradmatch.ai.config import ai_credentials_present, load_ai_config

logger = logging.getLogger(__name__)


def llm_json_enabled() -> bool:
    cfg = load_ai_config()
    if not cfg.enabled or cfg.provider != "openai":
        return False
    return ai_credentials_present(cfg.provider)


@lru_cache(maxsize=1)
def _client() -> OpenAI:
    return OpenAI(
        api_key=(os.getenv("OPENAI_API_KEY") or "").strip(),
        base_url=(os.getenv("OPENAI_BASE_URL") or None),
        timeout=float(os.getenv("CV_LLM_TIMEOUT_S", "20")),
        max_retries=int(os.getenv("OPENAI_MAX_RETRIES", "1")),
    )


def json_completion(
    *,
    system_prompt: str,
    user_prompt: str,
    temperature: float = 0.1,
    max_output_tokens: int = 1500,
    purpose: str = "unknown",
) -> dict[str, Any] | None:
    """Ask the model for a JSON object. Returns None whenever the caller should fall back."""
    if not llm_json_enabled():
        logger.debug("llm_json_skipped purpose=%s reason=disabled", purpose)
        return None

    started = time.perf_counter()
    model = load_ai_config().model
    try:
        response = _client().chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=temperature,
            response_format={"type": "json_object"},
            max_tokens=max_output_tokens,
        )
        content = response.choices[0].message.content if response.choices else ""
        if not content:
            logger.warning("llm_json_empty purpose=%s model=%s", purpose, model)
            return None
        parsed = json.loads(content)
    except Exception as exc:  # noqa: BLE001 - deterministic fallback is expected
        logger.warning("llm_json_failed purpose=%s model=%s prompt_len=%s: %s", purpose, model, len(user_prompt), exc)
        return None

    latency_ms = int((time.perf_counter() - started) * 1000)
    if not isinstance(parsed, dict):
        logger.warning("llm_json_invalid_schema purpose=%s latency_ms=%s", purpose, latency_ms)
        return None
    logger.info("llm_json_success purpose=%s latency_ms=%s", purpose, latency_ms)
    return parsed
