"""Twilio Voice webhooks driving the per-call conversation.

Call flow:
- ``/voice``: call arrives; the caller is parked in a queue while the opening
  line is generated.
- ``/enqueue`` and ``/wait``: queue and wait-loop markup while the assistant
  is thinking.
- ``/recording``: Twilio recording status callback carrying the caller's reply.
- ``/record-action``: ``<Record>`` finished; the caller is asked to hold and goes
  back to the queue.
- ``/status``: call status callback; terminal statuses end the session.

Every handler answers immediately with fixed markup and hands the event to the
orchestrator as a background task, so Twilio never waits on transcription or
generation.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, Request, Response

from api.dependencies import get_orchestrator, get_telephony
from conversation.gateways import TelephonyGateway
from conversation.orchestrator import CallOrchestrator

LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="/twilio", tags=["twilio"])

TERMINAL_CALL_STATUSES = frozenset({"completed", "failed", "busy", "no-answer", "canceled"})


def _twiml_response(xml: str) -> Response:
    # Twilio expects application/xml
    return Response(content=xml, media_type="application/xml")


async def _form_field(request: Request, name: str) -> str:
    form = await request.form()
    return str(form.get(name) or "").strip()


async def _run_event(event: str, handler: Callable[..., Awaitable[Any]], *args: Any) -> None:
    try:
        await handler(*args)
    except Exception:
        LOGGER.exception("Handling %s failed for call %s", event, args[0] if args else "unknown")


@router.post("/voice")
async def twilio_voice_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    orchestrator: CallOrchestrator = Depends(get_orchestrator),
    telephony: TelephonyGateway = Depends(get_telephony),
) -> Response:
    call_sid = await _form_field(request, "CallSid")
    if call_sid:
        LOGGER.info("Incoming call %s", call_sid)
        background_tasks.add_task(_run_event, "call start", orchestrator.call_started, call_sid)
    else:
        LOGGER.warning("Voice webhook without CallSid")
    return _twiml_response(telephony.incoming_call_markup())


@router.post("/enqueue")
async def twilio_enqueue(telephony: TelephonyGateway = Depends(get_telephony)) -> Response:
    return _twiml_response(telephony.enqueue_markup())


@router.post("/wait")
async def twilio_wait(
    request: Request,
    orchestrator: CallOrchestrator = Depends(get_orchestrator),
    telephony: TelephonyGateway = Depends(get_telephony),
) -> Response:
    call_sid = await _form_field(request, "CallSid")
    snapshot = orchestrator.describe(call_sid) if call_sid else None
    LOGGER.debug(
        "Wait poll for call %s (%s)",
        call_sid or "unknown",
        snapshot.turn_state.value if snapshot else "no session",
    )
    return _twiml_response(telephony.wait_markup())


@router.post("/recording", status_code=204)
async def twilio_recording_status(
    request: Request,
    background_tasks: BackgroundTasks,
    generation: int | None = None,
    orchestrator: CallOrchestrator = Depends(get_orchestrator),
) -> Response:
    form = await request.form()
    call_sid = str(form.get("CallSid") or "").strip()
    recording_url = str(form.get("RecordingUrl") or "").strip()
    recording_status = str(form.get("RecordingStatus") or "completed").strip()

    if not call_sid or not recording_url:
        LOGGER.warning("Recording callback missing CallSid or RecordingUrl")
    elif recording_status != "completed":
        LOGGER.info("Ignoring recording for call %s with status %s", call_sid, recording_status)
    else:
        background_tasks.add_task(
            _run_event,
            "recording",
            orchestrator.recording_ready,
            call_sid,
            recording_url,
            generation,
        )
    return Response(status_code=204)


@router.post("/record-action")
async def twilio_record_action(
    request: Request,
    background_tasks: BackgroundTasks,
    orchestrator: CallOrchestrator = Depends(get_orchestrator),
    telephony: TelephonyGateway = Depends(get_telephony),
) -> Response:
    call_sid = await _form_field(request, "CallSid")
    if call_sid:
        background_tasks.add_task(_run_event, "turn action", orchestrator.turn_action_fired, call_sid)
    return _twiml_response(telephony.hold_markup())


@router.post("/status")
async def twilio_call_status(
    request: Request,
    background_tasks: BackgroundTasks,
    orchestrator: CallOrchestrator = Depends(get_orchestrator),
) -> Response:
    form = await request.form()
    call_sid = str(form.get("CallSid") or "").strip()
    call_status = str(form.get("CallStatus") or "").strip()

    if call_sid and call_status in TERMINAL_CALL_STATUSES:
        LOGGER.info("Call %s reported %s", call_sid, call_status)
        background_tasks.add_task(_run_event, "call end", orchestrator.call_ended, call_sid)
    else:
        LOGGER.debug("No action for call %s status %s", call_sid or "unknown", call_status or "unknown")

    # Always acknowledge so Twilio does not retry
    return Response(content="OK", media_type="text/plain")
