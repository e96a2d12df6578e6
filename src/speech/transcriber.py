"""Local speech-to-text transcriber based on faster-whisper."""

from __future__ import annotations

import io
import logging
from collections.abc import Iterable
from dataclasses import dataclass

import numpy as np
import soundfile as sf
from faster_whisper import WhisperModel

from config.settings import get_settings

LOGGER = logging.getLogger(__name__)

INITIAL_PROMPT = "This is a phone call with a voting information assistant about US elections."


@dataclass
class TranscriptionSegment:
    """Structured representation of a Whisper transcription segment."""

    start: float
    end: float
    text: str
    logprob: float


class WhisperTranscriber:
    """Blocking transcription of whole recordings; run it off the event loop."""

    def __init__(self) -> None:
        settings = get_settings()
        self._language = settings.whisper_language
        self._model = WhisperModel(
            model_size_or_path=settings.whisper_model_size,
            device=settings.whisper_device,
            compute_type=settings.whisper_compute_type,
        )

    def transcribe(self, audio_bytes: bytes) -> list[TranscriptionSegment]:
        """Transcribe raw audio bytes into text segments."""

        with sf.SoundFile(io.BytesIO(audio_bytes), mode="r") as audio_file:
            audio_array = audio_file.read(dtype="float32")

        if isinstance(audio_array, np.ndarray) and audio_array.ndim > 1:
            audio_array = np.mean(audio_array, axis=1)  # convert to mono
        elif not isinstance(audio_array, np.ndarray):
            audio_array = np.array(audio_array, dtype=np.float32)

        segments, _info = self._model.transcribe(
            audio_array,
            beam_size=5,
            task="transcribe",
            language=self._language,
            condition_on_previous_text=False,
            initial_prompt=INITIAL_PROMPT,
            temperature=0.0,
        )

        results: list[TranscriptionSegment] = []
        for segment in segments:
            text = segment.text.strip()
            if not text:
                continue
            results.append(
                TranscriptionSegment(
                    start=segment.start,
                    end=segment.end,
                    text=text,
                    logprob=segment.avg_logprob,
                )
            )

        return results


def merge_segments(segments: Iterable[TranscriptionSegment]) -> str:
    """Merge segments into a single string."""

    return " ".join(segment.text for segment in segments).strip()
