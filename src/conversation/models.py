"""In-memory session state for a single phone call."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Literal

Role = Literal["system", "assistant", "caller"]


@dataclass(frozen=True)
class Turn:
    """One message of the conversation transcript."""

    role: Role
    text: str


class TurnState(str, Enum):
    IDLE = "idle"
    AWAITING_TRANSCRIPTION = "awaiting_transcription"
    AWAITING_GENERATION = "awaiting_generation"
    SPEAKING = "speaking"


@dataclass
class CallSession:
    """Mutable per-call state. Owned by the store, written only by the orchestrator."""

    call_id: str
    transcript: list[Turn] = field(default_factory=list)
    turn_state: TurnState = TurnState.IDLE
    generation: int = 0
    hold_cycles: int = 0
    created_at: float = field(default_factory=time.monotonic)
    last_activity: float = field(default_factory=time.monotonic)

    def touch(self, now: float | None = None) -> None:
        self.last_activity = time.monotonic() if now is None else now

    def snapshot(self) -> CallSnapshot:
        return CallSnapshot(
            call_id=self.call_id,
            turn_state=self.turn_state,
            generation=self.generation,
            transcript=tuple(self.transcript),
        )


@dataclass(frozen=True)
class CallSnapshot:
    """Read-only view of a session handed out to callers outside the orchestrator."""

    call_id: str
    turn_state: TurnState
    generation: int
    transcript: tuple[Turn, ...]
