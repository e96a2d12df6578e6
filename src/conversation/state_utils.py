from __future__ import annotations

from collections.abc import Iterable

from conversation.models import Role, Turn

_CHAT_ROLES: dict[Role, str] = {
    "system": "system",
    "assistant": "assistant",
    "caller": "user",
}


def chat_role_for(role: Role) -> str:
    return _CHAT_ROLES[role]


def build_llm_history(transcript: Iterable[Turn]) -> list[dict[str, str]]:
    """Map a call transcript onto chat-completion messages."""

    return [{"role": chat_role_for(turn.role), "content": turn.text} for turn in transcript]
