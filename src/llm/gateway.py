"""Generation gateway backed by a chat-completion model."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from conversation.errors import GenerationFailedError
from conversation.gateways import GenerationGateway
from conversation.models import Turn
from conversation.state_utils import build_llm_history
from llm.base import BaseLLMClient

LOGGER = logging.getLogger(__name__)


class LLMGenerationGateway(GenerationGateway):
    def __init__(self, client: BaseLLMClient, *, temperature: float = 0.2) -> None:
        self._client = client
        self._temperature = temperature

    async def generate(self, transcript: Sequence[Turn]) -> str:
        messages = build_llm_history(transcript)
        try:
            response = await self._client.chat(messages, temperature=self._temperature)
        except Exception as exc:
            raise GenerationFailedError(f"{type(exc).__name__}: {exc}") from exc

        text = (response or "").strip()
        if not text:
            raise GenerationFailedError("LLM returned an empty reply.")
        LOGGER.debug("Generated reply of %d characters from %d messages", len(text), len(messages))
        return text
