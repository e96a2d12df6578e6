"""Domain-specific exceptions for conversation orchestration.

These exceptions are safe to import from API layers without triggering heavy ML imports.
"""

from __future__ import annotations


class ConversationError(Exception):
    default_detail: str = "Conversation error"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.default_detail)
        self.detail = detail or self.default_detail


class SessionNotFoundError(ConversationError):
    default_detail = "No live session for this call."


class SessionAlreadyExistsError(ConversationError):
    default_detail = "A live session already exists for this call."


class StaleGenerationError(ConversationError):
    default_detail = "Result belongs to a turn the call has already moved past."


class InvalidTransitionError(ConversationError):
    default_detail = "Event is not valid in the current turn state."


class GatewayError(ConversationError):
    default_detail = "External service call failed."


class TranscriptionFailedError(GatewayError):
    default_detail = "Transcription failed."


class NoSpeechDetectedError(TranscriptionFailedError):
    default_detail = "No speech detected in the recording."


class GenerationFailedError(GatewayError):
    default_detail = "Reply generation failed."


class TelephonyFailedError(GatewayError):
    default_detail = "Updating the live call failed."
