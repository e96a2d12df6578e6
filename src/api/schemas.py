"""API-facing Pydantic models."""

from __future__ import annotations

from pydantic import BaseModel, Field


class TurnResponse(BaseModel):
    role: str
    text: str


class CallStateResponse(BaseModel):
    call_id: str
    turn_state: str
    generation: int = Field(description="Fence counter incremented at the start of every caller turn.")
    transcript: list[TurnResponse]


class HealthResponse(BaseModel):
    status: str = "ok"
    environment: str
