"""Contracts for the external services a call depends on.

Implementations raise subclasses of ``GatewayError``; the orchestrator never
retries and never lets these errors reach the inbound webhook response.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from conversation.models import Turn


class TranscriptionGateway(ABC):
    """Turns a recording reference into caller text."""

    @abstractmethod
    async def transcribe(self, recording_ref: str) -> str:
        """Return the transcribed text of the recording."""


class GenerationGateway(ABC):
    """Produces the assistant's next utterance from the transcript so far."""

    @abstractmethod
    async def generate(self, transcript: Sequence[Turn]) -> str:
        """Return the next assistant utterance."""


class TelephonyGateway(ABC):
    """Issues voice instructions to a live call and renders call-control markup."""

    @abstractmethod
    async def speak_then_record(self, call_id: str, text: str, *, generation: int) -> None:
        """Speak ``text`` on the live call, then record the caller's reply.

        ``generation`` is echoed back on the recording callback so late or
        duplicate deliveries can be fenced.
        """

    @abstractmethod
    async def hold_caller(self, call_id: str) -> None:
        """Place the caller in a wait state without ending the call."""

    @abstractmethod
    def incoming_call_markup(self) -> str:
        """Markup returned when a call first arrives."""

    @abstractmethod
    def enqueue_markup(self) -> str:
        """Markup that parks the caller in the wait queue."""

    @abstractmethod
    def wait_markup(self) -> str:
        """Markup played on each wait-loop poll while the caller is queued."""

    @abstractmethod
    def hold_markup(self) -> str:
        """Markup that tells the caller to hold on, then parks them in the wait queue."""
