from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from config.settings import Settings, get_settings
from conversation.errors import TelephonyFailedError
from conversation.gateways import TelephonyGateway
from telephony.twiml import (
    twiml_enqueue,
    twiml_pause,
    twiml_redirect,
    twiml_say_then_record,
    twiml_say_then_redirect,
)

LOGGER = logging.getLogger(__name__)

WEBHOOK_PREFIX = "/api/twilio"


@dataclass(frozen=True)
class TwilioConfig:
    account_sid: str
    auth_token: str
    public_base_url: str


def get_twilio_config() -> TwilioConfig:
    settings = get_settings()
    if not settings.twilio_account_sid or not settings.twilio_auth_token:
        raise ValueError("Twilio credentials are not configured")
    if not settings.public_base_url:
        raise ValueError("PUBLIC_BASE_URL is required for Twilio callbacks")

    return TwilioConfig(
        account_sid=settings.twilio_account_sid,
        auth_token=settings.twilio_auth_token,
        public_base_url=settings.public_base_url.rstrip("/"),
    )


def build_twilio_client(cfg: TwilioConfig):
    from twilio.rest import Client

    return Client(cfg.account_sid, cfg.auth_token)


class TwilioTelephonyGateway(TelephonyGateway):
    """Drives live calls through the Twilio REST API.

    The Twilio helper library is synchronous, so call updates run in a worker thread.
    """

    def __init__(self, cfg: TwilioConfig, client: Any, settings: Settings | None = None) -> None:
        self._client = client
        self._settings = settings or get_settings()
        self._base = f"{cfg.public_base_url}{WEBHOOK_PREFIX}"

    def _url(self, path: str) -> str:
        return f"{self._base}/{path}"

    def recording_callback_url(self, generation: int) -> str:
        return self._url(f"recording?generation={generation}")

    async def _update_call(self, call_id: str, twiml: str) -> None:
        try:
            await asyncio.to_thread(self._client.calls(call_id).update, twiml=twiml)
        except Exception as exc:
            raise TelephonyFailedError(f"{type(exc).__name__}: {exc}") from exc

    async def speak_then_record(self, call_id: str, text: str, *, generation: int) -> None:
        twiml = twiml_say_then_record(
            say_text=text,
            action_url=self._url("record-action"),
            recording_callback_url=self.recording_callback_url(generation),
            language=self._settings.twilio_say_language,
            voice=self._settings.twilio_say_voice,
            timeout_seconds=self._settings.twilio_record_timeout_seconds,
            max_length_seconds=self._settings.twilio_record_max_length_seconds,
        )
        await self._update_call(call_id, twiml)
        LOGGER.debug("Updated call %s with reply and recording (generation %d)", call_id, generation)

    async def hold_caller(self, call_id: str) -> None:
        await self._update_call(call_id, self.hold_markup())
        LOGGER.debug("Placed call %s on hold", call_id)

    def incoming_call_markup(self) -> str:
        return twiml_redirect(self._url("enqueue"))

    def enqueue_markup(self) -> str:
        return twiml_enqueue(queue_name=self._settings.twilio_queue_name, wait_url=self._url("wait"))

    def wait_markup(self) -> str:
        return twiml_pause(self._settings.twilio_wait_pause_seconds)

    def hold_markup(self) -> str:
        return twiml_say_then_redirect(
            say_text=self._settings.hold_message,
            redirect_url=self._url("enqueue"),
            language=self._settings.twilio_say_language,
            voice=self._settings.twilio_say_voice,
        )
