"""FastAPI routes exposing service health and read-only call state."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_orchestrator
from api.schemas import CallStateResponse, HealthResponse, TurnResponse
from config.settings import get_settings
from conversation.orchestrator import CallOrchestrator

LOGGER = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse(environment=get_settings().environment)


@router.get("/calls/{call_id}", response_model=CallStateResponse)
async def get_call_state(
    call_id: str,
    orchestrator: CallOrchestrator = Depends(get_orchestrator),
) -> CallStateResponse:
    snapshot = orchestrator.describe(call_id)
    if snapshot is None:
        raise HTTPException(status_code=404, detail="No live session for this call.")

    return CallStateResponse(
        call_id=snapshot.call_id,
        turn_state=snapshot.turn_state.value,
        generation=snapshot.generation,
        transcript=[TurnResponse(role=turn.role, text=turn.text) for turn in snapshot.transcript],
    )
