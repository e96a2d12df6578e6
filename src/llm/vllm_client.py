"""Client for self-hosted vLLM or TGI compatible inference endpoints."""

from __future__ import annotations

import logging
from collections.abc import Iterable

import httpx

from config.settings import get_settings
from llm.base import BaseLLMClient

LOGGER = logging.getLogger(__name__)


class VLLMClient(BaseLLMClient):
    """Minimal client for a self-hosted OpenAI-compatible chat endpoint."""

    def __init__(self, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        settings = get_settings()
        if not settings.llm_endpoint:
            raise ValueError("Self-hosted LLM endpoint must be configured.")

        self._endpoint = settings.llm_endpoint.rstrip("/")
        self._model = settings.llm_model
        self._api_key = settings.llm_api_key
        self._max_tokens = settings.llm_max_reply_tokens
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    async def chat(
        self,
        messages: Iterable[dict[str, str]],
        *,
        temperature: float = 0.2,
    ) -> str:
        payload = {
            "model": self._model,
            "messages": list(messages),
            "temperature": temperature,
            "max_tokens": self._max_tokens,
        }

        async with httpx.AsyncClient(timeout=60, transport=self._transport) as client:
            response = await client.post(
                f"{self._endpoint}/v1/chat/completions",
                json=payload,
                headers=self._headers(),
            )

        response.raise_for_status()
        data = response.json()
        choices: list[dict] = data.get("choices", [])
        if not choices:
            raise RuntimeError("LLM response contains no choices.")
        choice = choices[0]
        if choice.get("finish_reason") == "length":
            LOGGER.warning("Reply hit the %d token limit and was cut short", self._max_tokens)
        return choice["message"]["content"]
