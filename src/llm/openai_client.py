"""OpenAI/Azure OpenAI client wrapper."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from openai import AsyncOpenAI

from config.settings import get_settings
from llm.base import BaseLLMClient

LOGGER = logging.getLogger(__name__)


class OpenAIClient(BaseLLMClient):
    """Wrapper for OpenAI or Azure OpenAI Chat Completion API."""

    def __init__(self) -> None:
        settings = get_settings()
        if not settings.llm_api_key:
            raise ValueError("LLM API key must be configured for OpenAI client.")

        self._client = AsyncOpenAI(
            api_key=settings.llm_api_key,
            base_url=settings.llm_endpoint or None,
        )
        self._model = settings.llm_model
        self._max_tokens = settings.llm_max_reply_tokens

    async def chat(
        self,
        messages: Iterable[dict[str, str]],
        *,
        temperature: float = 0.2,
    ) -> str:
        response = await self._client.chat.completions.create(
            model=self._model,
            messages=list(messages),
            temperature=temperature,
            max_tokens=self._max_tokens,
        )
        return response.choices[0].message.content or ""
