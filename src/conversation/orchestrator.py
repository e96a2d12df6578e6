"""Turn state machine driving one spoken conversation per live call.

Every inbound provider callback is turned into one of the event methods below.
A session moves through::

    IDLE -> AWAITING_GENERATION -> SPEAKING -> AWAITING_TRANSCRIPTION
                  ^                                     |
                  +-------------------------------------+

and is removed from the store when the call ends. Transcription and generation
run as background tasks tagged with the session's ``generation`` counter at
submission time; a completion whose tag no longer matches is discarded, which
is what absorbs duplicate and out-of-order webhook deliveries.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Coroutine
from typing import Any

from conversation.errors import (
    ConversationError,
    GatewayError,
    InvalidTransitionError,
    SessionAlreadyExistsError,
    SessionNotFoundError,
    StaleGenerationError,
)
from conversation.gateways import GenerationGateway, TelephonyGateway, TranscriptionGateway
from conversation.models import CallSession, CallSnapshot, Turn, TurnState
from conversation.store import ConversationStore

LOGGER = logging.getLogger(__name__)


class CallOrchestrator:
    """Sequences turns for every live call and is the only writer to the store."""

    def __init__(
        self,
        store: ConversationStore,
        transcription: TranscriptionGateway,
        generation: GenerationGateway,
        telephony: TelephonyGateway,
        *,
        fallback_reply: str,
        reprompt_message: str,
        max_hold_cycles: int | None = None,
        idle_timeout_seconds: float = 900.0,
    ) -> None:
        self._store = store
        self._transcription = transcription
        self._generation = generation
        self._telephony = telephony
        self._fallback_reply = fallback_reply
        self._reprompt_message = reprompt_message
        self._max_hold_cycles = max_hold_cycles
        self._idle_timeout = idle_timeout_seconds
        self._tasks: set[asyncio.Task] = set()
        self._in_flight: dict[str, asyncio.Task] = {}
        # call_id -> monotonic time the call ended; pruned by sweep_idle
        self._ended: dict[str, float] = {}

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    async def call_started(self, call_id: str) -> bool:
        if call_id in self._ended:
            LOGGER.info("Ignoring call start for already ended call %s", call_id)
            return False

        async with self._store.lock(call_id):
            try:
                session = self._store.create_session(call_id)
            except SessionAlreadyExistsError as exc:
                LOGGER.info("Duplicate call start for %s: %s", call_id, exc.detail)
                return False

            # The assistant speaks first: go straight to generating the opening line.
            session.turn_state = TurnState.AWAITING_GENERATION
            self._submit_generation(session)

        LOGGER.info("Call %s started", call_id)
        return True

    async def generation_complete(self, call_id: str, text: str, generation: int) -> bool:
        async with self._store.lock(call_id):
            try:
                session = self._store.get(call_id)
                self._check_fence(session, TurnState.AWAITING_GENERATION, generation)
                self._store.append_turn(call_id, Turn(role="assistant", text=text))
            except ConversationError as exc:
                LOGGER.info("Discarding generation result for call %s: %s", call_id, exc.detail)
                return False

            session.turn_state = TurnState.SPEAKING
            session.hold_cycles = 0
            spoken_generation = session.generation

        LOGGER.info("Call %s speaking reply (generation %d)", call_id, spoken_generation)
        await self._speak(call_id, text, spoken_generation)
        return True

    async def recording_ready(
        self, call_id: str, recording_ref: str, generation: int | None = None
    ) -> bool:
        async with self._store.lock(call_id):
            try:
                session = self._store.get(call_id)
                self._check_fence(session, TurnState.SPEAKING, generation)
            except ConversationError as exc:
                LOGGER.info("Discarding recording for call %s: %s", call_id, exc.detail)
                return False

            session.generation += 1
            session.turn_state = TurnState.AWAITING_TRANSCRIPTION
            session.hold_cycles = 0
            session.touch()
            tag = session.generation
            self._spawn(call_id, self._run_transcription(call_id, recording_ref, tag))

        LOGGER.info("Call %s transcribing recording (generation %d)", call_id, tag)
        return True

    async def transcription_complete(self, call_id: str, text: str, generation: int) -> bool:
        async with self._store.lock(call_id):
            try:
                session = self._store.get(call_id)
                self._check_fence(session, TurnState.AWAITING_TRANSCRIPTION, generation)
                self._store.append_turn(call_id, Turn(role="caller", text=text))
            except ConversationError as exc:
                LOGGER.info("Discarding transcription for call %s: %s", call_id, exc.detail)
                return False

            session.turn_state = TurnState.AWAITING_GENERATION
            self._submit_generation(session)

        LOGGER.info("Call %s generating reply (generation %d)", call_id, generation)
        return True

    async def turn_action_fired(self, call_id: str) -> bool:
        """Keep the caller on the line while a reply is still being prepared."""

        async with self._store.lock(call_id):
            try:
                session = self._store.get(call_id)
            except SessionNotFoundError as exc:
                LOGGER.info("Ignoring turn action for call %s: %s", call_id, exc.detail)
                return False

            if session.turn_state is TurnState.SPEAKING:
                LOGGER.debug("Turn action for call %s while speaking; recording callback pending", call_id)
                return False

            session.hold_cycles += 1
            session.touch()
            abandoned_text: str | None = None
            if self._max_hold_cycles is not None and session.hold_cycles > self._max_hold_cycles:
                abandoned_text = self._abandon_turn(session)
            spoken_generation = session.generation

        if abandoned_text is not None:
            await self._speak(call_id, abandoned_text, spoken_generation)
            return True

        async with self._store.telephony_lock(call_id):
            # The reply may have gone out while this hold waited for the line.
            snapshot = self.describe(call_id)
            if snapshot is None or snapshot.turn_state is TurnState.SPEAKING:
                LOGGER.debug("Dropping hold for call %s; reply already spoken or call gone", call_id)
                return False
            try:
                await self._telephony.hold_caller(call_id)
            except GatewayError as exc:
                LOGGER.warning("Could not hold caller on call %s: %s", call_id, exc.detail)
        return True

    async def call_ended(self, call_id: str) -> bool:
        self._ended[call_id] = time.monotonic()
        removed = self._store.destroy_session(call_id)
        if removed:
            LOGGER.info("Call %s ended", call_id)
        else:
            LOGGER.debug("Call end for unknown call %s", call_id)
        return removed

    # ------------------------------------------------------------------
    # Queries and housekeeping
    # ------------------------------------------------------------------

    def describe(self, call_id: str) -> CallSnapshot | None:
        try:
            return self._store.get(call_id).snapshot()
        except SessionNotFoundError:
            return None

    async def sweep_idle(self, now: float | None = None) -> list[str]:
        """Destroy sessions that have seen no event within the idle timeout."""

        now = time.monotonic() if now is None else now
        cutoff = now - self._idle_timeout

        destroyed: list[str] = []
        for call_id in self._store.idle_call_ids(cutoff):
            task = self._in_flight.get(call_id)
            if task is not None and not task.done():
                continue
            if self._store.destroy_session(call_id):
                self._ended[call_id] = now
                destroyed.append(call_id)

        self._store.discard_unused_locks()

        self._ended = {
            call_id: ended_at for call_id, ended_at in self._ended.items() if ended_at >= cutoff
        }
        if destroyed:
            LOGGER.info("Swept %d idle session(s): %s", len(destroyed), ", ".join(destroyed))
        return destroyed

    async def drain(self) -> None:
        """Wait until no gateway work is in flight."""

        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def aclose(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        await self.drain()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _check_fence(session: CallSession, expected: TurnState, generation: int | None) -> None:
        if generation is not None and generation != session.generation:
            raise StaleGenerationError(
                f"tag {generation} does not match current generation {session.generation}"
            )
        if session.turn_state is not expected:
            raise InvalidTransitionError(
                f"expected {expected.value}, session is {session.turn_state.value}"
            )

    def _submit_generation(self, session: CallSession) -> None:
        session.touch()
        transcript = tuple(session.transcript)
        self._spawn(
            session.call_id,
            self._run_generation(session.call_id, transcript, session.generation),
        )

    def _abandon_turn(self, session: CallSession) -> str:
        """Give up on the pending request and return what to say instead."""

        task = self._in_flight.pop(session.call_id, None)
        if task is not None:
            task.cancel()

        LOGGER.warning(
            "Call %s exceeded %d hold cycles while %s; abandoning turn",
            session.call_id,
            self._max_hold_cycles,
            session.turn_state.value,
        )
        session.generation += 1
        session.hold_cycles = 0
        if session.turn_state is TurnState.AWAITING_GENERATION:
            self._store.append_turn(session.call_id, Turn(role="assistant", text=self._fallback_reply))
            text = self._fallback_reply
        else:
            text = self._reprompt_message
        session.turn_state = TurnState.SPEAKING
        return text

    async def _run_generation(self, call_id: str, transcript: tuple[Turn, ...], generation: int) -> None:
        try:
            text = await self._generation.generate(transcript)
        except GatewayError as exc:
            LOGGER.warning(
                "Generation failed for call %s (generation %d), using fallback reply: %s",
                call_id,
                generation,
                exc.detail,
            )
            text = self._fallback_reply
        await self.generation_complete(call_id, text, generation)

    async def _run_transcription(self, call_id: str, recording_ref: str, generation: int) -> None:
        try:
            text = await self._transcription.transcribe(recording_ref)
        except GatewayError as exc:
            LOGGER.warning(
                "Transcription failed for call %s (generation %d): %s",
                call_id,
                generation,
                exc.detail,
            )
            await self._reprompt(call_id, generation)
            return
        await self.transcription_complete(call_id, text, generation)

    async def _reprompt(self, call_id: str, generation: int) -> None:
        """Ask the caller to repeat themselves; the transcript is left untouched."""

        async with self._store.lock(call_id):
            try:
                session = self._store.get(call_id)
                self._check_fence(session, TurnState.AWAITING_TRANSCRIPTION, generation)
            except ConversationError as exc:
                LOGGER.info("Skipping re-prompt for call %s: %s", call_id, exc.detail)
                return

            session.turn_state = TurnState.SPEAKING
            session.touch()

        await self._speak(call_id, self._reprompt_message, generation)

    async def _speak(self, call_id: str, text: str, generation: int) -> None:
        async with self._store.telephony_lock(call_id):
            try:
                await self._telephony.speak_then_record(call_id, text, generation=generation)
            except GatewayError as exc:
                LOGGER.error("Could not update live call %s: %s", call_id, exc.detail)

    def _spawn(self, call_id: str, coro: Coroutine[Any, Any, None]) -> None:
        # A completion was accepted for this call, so whatever is still in flight
        # belongs to a finished turn and can only ever be fenced.
        current = self._in_flight.get(call_id)
        if current is not None and not current.done() and current is not asyncio.current_task():
            LOGGER.debug("Cancelling superseded request for call %s", call_id)
            current.cancel()

        task = asyncio.create_task(coro)
        self._tasks.add(task)
        self._in_flight[call_id] = task
        task.add_done_callback(lambda done: self._on_task_done(call_id, done))

    def _on_task_done(self, call_id: str, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if self._in_flight.get(call_id) is task:
            del self._in_flight[call_id]
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            LOGGER.error("Background work for call %s crashed", call_id, exc_info=exc)
