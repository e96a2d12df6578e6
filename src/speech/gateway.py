"""Transcription gateways turning a recording reference into caller text."""

from __future__ import annotations

import asyncio
import logging
from abc import abstractmethod
from typing import TYPE_CHECKING

import httpx
from openai import AsyncOpenAI

from config.settings import get_settings
from conversation.errors import NoSpeechDetectedError, TranscriptionFailedError
from conversation.gateways import TranscriptionGateway
from speech.recordings import RecordingFetcher

if TYPE_CHECKING:  # pragma: no cover
    from speech.transcriber import WhisperTranscriber

LOGGER = logging.getLogger(__name__)


class _RecordingTranscriptionGateway(TranscriptionGateway):
    def __init__(self, fetcher: RecordingFetcher) -> None:
        self._fetcher = fetcher

    async def transcribe(self, recording_ref: str) -> str:
        try:
            audio = await self._fetcher.fetch(recording_ref)
        except httpx.HTTPError as exc:
            raise TranscriptionFailedError(f"Could not download recording: {exc}") from exc

        try:
            text = await self._transcribe_audio(audio)
        except TranscriptionFailedError:
            raise
        except Exception as exc:
            raise TranscriptionFailedError(f"{type(exc).__name__}: {exc}") from exc

        text = text.strip()
        if not text:
            raise NoSpeechDetectedError()
        LOGGER.debug("Transcribed %d characters from %s", len(text), recording_ref)
        return text

    @abstractmethod
    async def _transcribe_audio(self, audio: bytes) -> str:
        """Return the raw transcript of downloaded audio."""


class OpenAITranscriptionGateway(_RecordingTranscriptionGateway):
    """Hosted transcription through the OpenAI audio API."""

    def __init__(self, fetcher: RecordingFetcher, client: AsyncOpenAI, *, model: str = "whisper-1") -> None:
        super().__init__(fetcher)
        self._client = client
        self._model = model

    async def _transcribe_audio(self, audio: bytes) -> str:
        transcript = await self._client.audio.transcriptions.create(
            model=self._model,
            file=("recording.wav", audio, "audio/wav"),
        )
        return transcript.text


class WhisperTranscriptionGateway(_RecordingTranscriptionGateway):
    """Transcription with a local faster-whisper model."""

    def __init__(self, fetcher: RecordingFetcher, transcriber: WhisperTranscriber) -> None:
        super().__init__(fetcher)
        self._transcriber = transcriber

    async def _transcribe_audio(self, audio: bytes) -> str:
        from speech.transcriber import merge_segments

        segments = await asyncio.to_thread(self._transcriber.transcribe, audio)
        return merge_segments(segments)


def build_transcription_gateway() -> TranscriptionGateway:
    """Instantiate the configured transcription provider."""

    settings = get_settings()
    fetcher = RecordingFetcher(
        account_sid=settings.twilio_account_sid,
        auth_token=settings.twilio_auth_token,
    )

    if settings.transcription_provider == "openai":
        api_key = settings.transcription_api_key or settings.llm_api_key
        if not api_key:
            raise ValueError("TRANSCRIPTION_API_KEY or LLM_API_KEY must be configured for OpenAI transcription.")
        return OpenAITranscriptionGateway(
            fetcher,
            AsyncOpenAI(api_key=api_key),
            model=settings.transcription_model,
        )
    if settings.transcription_provider == "whisper":
        # Lazy import to avoid loading the Whisper model stack unless selected.
        from speech.transcriber import WhisperTranscriber

        return WhisperTranscriptionGateway(fetcher, WhisperTranscriber())
    raise ValueError(f"Unsupported transcription_provider: {settings.transcription_provider}")
