"""Application-wide configuration loading and validation."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Centralized environment configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    environment: Literal["local", "dev", "prod"] = Field(default="local")
    log_level: str = Field(default="INFO")

    system_prompt_file: str = Field(
        default="system_prompt.txt",
        description="Prompt file (under src/prompts) used as the first message of every call.",
    )

    # LLM connectivity
    llm_provider: Literal["self_hosted_vllm", "openai", "aleph_alpha"] = Field(default="openai")
    llm_endpoint: str | None = Field(
        default=None, description="HTTP endpoint for the self-hosted inference server."
    )
    llm_api_key: str | None = Field(default=None)
    llm_model: str = Field(
        default="gpt-3.5-turbo",
        description="Model identifier for the selected provider.",
    )
    llm_temperature: float = Field(default=0.2, ge=0.0, le=2.0)
    llm_max_reply_tokens: int = Field(
        default=150,
        ge=16,
        description="Upper bound on a generated reply; every reply is read aloud to the caller.",
    )

    # Speech recognition
    transcription_provider: Literal["openai", "whisper"] = Field(default="openai")
    transcription_api_key: str | None = Field(
        default=None,
        description="API key for hosted transcription; falls back to LLM_API_KEY.",
    )
    transcription_model: str = Field(default="whisper-1")
    whisper_model_size: str = Field(default="Systran/faster-whisper-large-v3")
    whisper_compute_type: str = Field(default="auto")  # e.g. float16, int8_float16
    whisper_device: str = Field(default="auto")
    whisper_language: str | None = Field(default="en")

    # Twilio (Voice)
    twilio_account_sid: str | None = Field(default=None)
    twilio_auth_token: str | None = Field(default=None)
    public_base_url: str | None = Field(
        default=None,
        description="Public base URL for Twilio webhooks (e.g. https://<ngrok>.ngrok-free.app).",
    )
    twilio_say_language: str = Field(default="en-US")
    twilio_say_voice: str | None = Field(default=None, description="Optional <Say> voice, e.g. Polly.Joanna.")
    twilio_queue_name: str = Field(default="wait-for-assistant-queue")
    twilio_wait_pause_seconds: int = Field(default=1, ge=1)
    twilio_record_timeout_seconds: int = Field(
        default=5,
        ge=1,
        description="Seconds of silence after which Twilio stops recording the caller.",
    )
    twilio_record_max_length_seconds: int = Field(default=60, ge=1)

    # Conversation
    hold_message: str = Field(default="Formulating an answer, please hold.")
    fallback_reply: str = Field(
        default="I'm sorry, I'm having trouble answering right now. Could you say that again?"
    )
    reprompt_message: str = Field(default="Sorry, I didn't catch that. Could you repeat your question?")
    max_hold_cycles: int | None = Field(
        default=None,
        ge=1,
        description="Hold instructions per turn before the turn is abandoned. Unset means unlimited.",
    )
    session_idle_timeout_seconds: float = Field(default=900.0, gt=0)
    session_sweep_interval_seconds: float = Field(
        default=60.0,
        ge=0,
        description="How often orphaned sessions are swept. 0 disables the sweeper.",
    )

    @field_validator("public_base_url")
    @classmethod
    def strip_trailing_slash(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip().rstrip("/")
        return value or None


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance."""

    return Settings()
