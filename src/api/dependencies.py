"""Shared FastAPI dependencies.

Separated to avoid circular imports between route modules.
"""

from __future__ import annotations

from functools import lru_cache
from typing import TYPE_CHECKING

from config.settings import get_settings

if TYPE_CHECKING:  # pragma: no cover
    from conversation.gateways import TelephonyGateway
    from conversation.orchestrator import CallOrchestrator


@lru_cache(maxsize=1)
def _telephony_factory() -> TelephonyGateway:
    from integrations.twilio_client import TwilioTelephonyGateway, build_twilio_client, get_twilio_config

    cfg = get_twilio_config()
    return TwilioTelephonyGateway(cfg, build_twilio_client(cfg))


@lru_cache(maxsize=1)
def _orchestrator_factory() -> CallOrchestrator:
    # Lazy imports so provider SDKs load only when the first call arrives.
    from conversation.orchestrator import CallOrchestrator
    from conversation.store import ConversationStore
    from llm.factory import build_llm_client
    from llm.gateway import LLMGenerationGateway
    from prompts.loader import load_prompt
    from speech.gateway import build_transcription_gateway

    settings = get_settings()
    return CallOrchestrator(
        ConversationStore(load_prompt(settings.system_prompt_file)),
        transcription=build_transcription_gateway(),
        generation=LLMGenerationGateway(build_llm_client(), temperature=settings.llm_temperature),
        telephony=_telephony_factory(),
        fallback_reply=settings.fallback_reply,
        reprompt_message=settings.reprompt_message,
        max_hold_cycles=settings.max_hold_cycles,
        idle_timeout_seconds=settings.session_idle_timeout_seconds,
    )


def orchestrator_built() -> bool:
    return _orchestrator_factory.cache_info().currsize > 0


def get_telephony() -> TelephonyGateway:
    return _telephony_factory()


def get_orchestrator() -> CallOrchestrator:
    return _orchestrator_factory()


async def shutdown_orchestrator() -> None:
    """Cancel in-flight gateway work if an orchestrator was ever built."""

    if orchestrator_built():
        await _orchestrator_factory().aclose()
