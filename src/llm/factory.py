"""Factory returning configured LLM client implementation."""

from __future__ import annotations

from config.settings import get_settings
from llm.base import BaseLLMClient


def build_llm_client() -> BaseLLMClient:
    """Instantiate the configured LLM connector.

    Provider modules are imported lazily so only the selected SDK has to be importable.
    """

    settings = get_settings()
    if settings.llm_provider == "openai":
        from llm.openai_client import OpenAIClient

        return OpenAIClient()
    if settings.llm_provider == "self_hosted_vllm":
        from llm.vllm_client import VLLMClient

        return VLLMClient()
    if settings.llm_provider == "aleph_alpha":
        from llm.aleph_alpha_client import AlephAlphaClient

        return AlephAlphaClient()
    raise ValueError(f"Unsupported llm_provider: {settings.llm_provider}")
