from __future__ import annotations

import time

import pytest

from conversation.errors import SessionAlreadyExistsError, SessionNotFoundError
from conversation.models import Turn, TurnState
from conversation.store import ConversationStore


def test_create_session_starts_with_single_system_turn():
    store = ConversationStore("SYS")

    session = store.create_session("CA1")

    assert session.transcript == [Turn(role="system", text="SYS")]
    assert session.turn_state is TurnState.IDLE
    assert session.generation == 0
    assert "CA1" in store
    assert len(store) == 1


def test_create_session_twice_raises_already_exists():
    store = ConversationStore("SYS")
    store.create_session("CA1")

    with pytest.raises(SessionAlreadyExistsError):
        store.create_session("CA1")


def test_snapshot_is_an_immutable_copy():
    store = ConversationStore("SYS")
    store.create_session("CA1")

    before = store.snapshot("CA1")
    store.append_turn("CA1", Turn(role="assistant", text="Hi"))

    assert isinstance(before, tuple)
    assert before == (Turn(role="system", text="SYS"),)
    assert store.snapshot("CA1")[-1] == Turn(role="assistant", text="Hi")


def test_missing_session_raises_not_found():
    store = ConversationStore("SYS")

    with pytest.raises(SessionNotFoundError):
        store.snapshot("nope")
    with pytest.raises(SessionNotFoundError):
        store.append_turn("nope", Turn(role="caller", text="Hello?"))


def test_destroy_session_is_idempotent():
    store = ConversationStore("SYS")
    store.create_session("CA1")

    assert store.destroy_session("CA1") is True
    assert store.destroy_session("CA1") is False
    assert "CA1" not in store


def test_lock_is_stable_per_call():
    store = ConversationStore("SYS")

    assert store.lock("CA1") is store.lock("CA1")
    assert store.lock("CA1") is not store.lock("CA2")


def test_telephony_lock_is_separate_and_dropped_with_the_session():
    store = ConversationStore("SYS")
    store.create_session("CA1")
    lock = store.telephony_lock("CA1")

    assert lock is store.telephony_lock("CA1")
    assert lock is not store.lock("CA1")

    store.destroy_session("CA1")
    assert store.telephony_lock("CA1") is not lock

    store.discard_unused_locks()
    assert store._telephony_locks == {}


def test_idle_call_ids_uses_last_activity():
    store = ConversationStore("SYS")
    old = store.create_session("old")
    fresh = store.create_session("fresh")
    now = time.monotonic()
    old.touch(now - 100)
    fresh.touch(now)

    assert store.idle_call_ids(now - 50) == ["old"]
