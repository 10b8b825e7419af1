from __future__ import annotations

import os
from typing import Optional, Sequence

from openai import AsyncAzureOpenAI, AsyncOpenAI

from gradmatch.ai.types import ChatMessage


class OpenAIProvider:
    def __init__(
        self,
        model: str,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_s: float = 30.0,
        temperature: float = 0.1,
        max_tokens: int = 1500,
    ):
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens
        key = (api_key or os.getenv("OPENAI_API_KEY") or "").strip()
        if not key:
            raise RuntimeError("OPENAI_API_KEY is missing")

        # Retries stay off: the orchestrator owns the timeout and falls back instead.
        self._client = AsyncOpenAI(
            api_key=key,
            base_url=(base_url or os.getenv("OPENAI_BASE_URL") or None),
            timeout=float(os.getenv("OPENAI_TIMEOUT_S", str(timeout_s))),
            max_retries=0,
        )

    async def complete(self, messages: Sequence[ChatMessage]) -> str:
        payload = [{"role": m.role, "content": m.content} for m in messages]
        response = await self._client.chat.completions.create(
            model=self._model,
            messages=payload,
            temperature=self._temperature,
            top_p=0.95,
            max_tokens=self._max_tokens,
        )
        content = response.choices[0].message.content if response.choices else ""
        if not content:
            raise RuntimeError("No content received from AI response")
        return content


class AzureOpenAIProvider(OpenAIProvider):
    def __init__(
        self,
        model: str,
        api_key: Optional[str] = None,
        endpoint: Optional[str] = None,
        api_version: Optional[str] = None,
        timeout_s: float = 30.0,
        temperature: float = 0.1,
        max_tokens: int = 1500,
    ):
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens
        key = (api_key or os.getenv("AZURE_OPENAI_API_KEY") or "").strip()
        azure_endpoint = (endpoint or os.getenv("AZURE_OPENAI_ENDPOINT") or "").strip()
        if not key or not azure_endpoint:
            raise RuntimeError("AZURE_OPENAI_API_KEY and AZURE_OPENAI_ENDPOINT are required")

        self._client = AsyncAzureOpenAI(
            api_key=key,
            azure_endpoint=azure_endpoint,
            api_version=(api_version or os.getenv("AZURE_OPENAI_API_VERSION") or "2024-06-01"),
            timeout=float(os.getenv("OPENAI_TIMEOUT_S", str(timeout_s))),
            max_retries=0,
        )
