"""In-memory store owning the session of every live call."""

from __future__ import annotations

import asyncio
import logging

from conversation.errors import SessionAlreadyExistsError, SessionNotFoundError
from conversation.models import CallSession, Turn, TurnState

LOGGER = logging.getLogger(__name__)


class ConversationStore:
    """Keyed session state for active calls.

    Note: This is a single-process store. Sessions do not survive a restart and
    are not shared between workers.

    Methods never await, so each one is atomic on the event loop. Work on one
    call that spans awaits must hold ``lock(call_id)``. Instructions sent to the
    live call go out under ``telephony_lock(call_id)`` so they land in the order
    they were issued.
    """

    def __init__(self, system_prompt: str) -> None:
        self._system_prompt = system_prompt
        self._sessions: dict[str, CallSession] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._telephony_locks: dict[str, asyncio.Lock] = {}

    def __contains__(self, call_id: object) -> bool:
        return call_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def lock(self, call_id: str) -> asyncio.Lock:
        lock = self._locks.get(call_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[call_id] = lock
        return lock

    def telephony_lock(self, call_id: str) -> asyncio.Lock:
        lock = self._telephony_locks.get(call_id)
        if lock is None:
            lock = asyncio.Lock()
            self._telephony_locks[call_id] = lock
        return lock

    def create_session(self, call_id: str) -> CallSession:
        if call_id in self._sessions:
            raise SessionAlreadyExistsError(f"Session already exists for call {call_id}")

        session = CallSession(
            call_id=call_id,
            transcript=[Turn(role="system", text=self._system_prompt)],
            turn_state=TurnState.IDLE,
        )
        self._sessions[call_id] = session
        LOGGER.debug("Created session for call %s", call_id)
        return session

    def get(self, call_id: str) -> CallSession:
        session = self._sessions.get(call_id)
        if session is None:
            raise SessionNotFoundError(f"No live session for call {call_id}")
        return session

    def snapshot(self, call_id: str) -> tuple[Turn, ...]:
        return tuple(self.get(call_id).transcript)

    def append_turn(self, call_id: str, turn: Turn) -> None:
        session = self.get(call_id)
        session.transcript.append(turn)
        session.touch()

    def destroy_session(self, call_id: str) -> bool:
        self._locks.pop(call_id, None)
        self._telephony_locks.pop(call_id, None)
        removed = self._sessions.pop(call_id, None) is not None
        if removed:
            LOGGER.debug("Destroyed session for call %s", call_id)
        return removed

    def idle_call_ids(self, cutoff: float) -> list[str]:
        """Calls whose last event happened before ``cutoff`` (monotonic seconds)."""

        return [
            call_id
            for call_id, session in self._sessions.items()
            if session.last_activity < cutoff
        ]

    def discard_unused_locks(self) -> None:
        """Drop locks left behind by events for calls that no longer have a session."""

        for locks in (self._locks, self._telephony_locks):
            for call_id in [key for key in locks if key not in self._sessions]:
                if not locks[call_id].locked():
                    del locks[call_id]
