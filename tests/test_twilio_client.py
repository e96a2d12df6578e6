from __future__ import annotations

import asyncio

import pytest

from config.settings import Settings
from conversation.errors import TelephonyFailedError
from integrations.twilio_client import TwilioConfig, TwilioTelephonyGateway
from telephony.twiml import twiml_enqueue, twiml_pause, twiml_say_then_record


class FakeCallContext:
    def __init__(self, client: FakeTwilioClient, sid: str) -> None:
        self._client = client
        self._sid = sid

    def update(self, *, twiml: str):
        if self._client.fail:
            raise RuntimeError("HTTP 404: call not found")
        self._client.updates.append((self._sid, twiml))
        return self


class FakeTwilioClient:
    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.updates: list[tuple[str, str]] = []

    def calls(self, sid: str) -> FakeCallContext:
        return FakeCallContext(self, sid)


def _gateway(client: FakeTwilioClient) -> TwilioTelephonyGateway:
    settings = Settings(
        twilio_say_language="en-US",
        twilio_say_voice="Polly.Joanna",
        twilio_record_timeout_seconds=5,
        hold_message="Formulating an answer, please hold.",
        _env_file=None,
    )
    cfg = TwilioConfig(account_sid="AC123", auth_token="token", public_base_url="https://voice.example.com")
    return TwilioTelephonyGateway(cfg, client, settings)


def test_say_then_record_escapes_text_and_wires_callbacks():
    xml = twiml_say_then_record(
        say_text="Polls open at 7 & close at 8 <local time>",
        action_url="https://x/api/twilio/record-action",
        recording_callback_url="https://x/api/twilio/recording?generation=2",
        language="en-US",
    )

    assert xml.startswith("<?xml")
    assert "Polls open at 7 &amp; close at 8 &lt;local time&gt;" in xml
    assert 'recordingStatusCallback="https://x/api/twilio/recording?generation=2"' in xml
    assert 'action="https://x/api/twilio/record-action"' in xml
    assert 'transcribe="false"' in xml
    assert xml.index("<Say") < xml.index("<Record")


def test_enqueue_and_pause_markup():
    assert (
        '<Enqueue waitUrl="https://x/wait" waitUrlMethod="POST">wait-for-assistant-queue</Enqueue>'
        in twiml_enqueue(queue_name="wait-for-assistant-queue", wait_url="https://x/wait")
    )
    assert '<Pause length="1"/>' in twiml_pause(0)


def test_speak_then_record_updates_live_call_with_tagged_callback():
    client = FakeTwilioClient()

    asyncio.run(_gateway(client).speak_then_record("CA1", "Hello there", generation=4))

    assert len(client.updates) == 1
    sid, twiml = client.updates[0]
    assert sid == "CA1"
    assert '<Say language="en-US" voice="Polly.Joanna">Hello there</Say>' in twiml
    assert "https://voice.example.com/api/twilio/recording?generation=4" in twiml
    assert 'timeout="5"' in twiml


def test_hold_caller_says_hold_message_and_requeues():
    client = FakeTwilioClient()

    asyncio.run(_gateway(client).hold_caller("CA1"))

    _, twiml = client.updates[0]
    assert "Formulating an answer, please hold." in twiml
    assert "<Redirect method=\"POST\">https://voice.example.com/api/twilio/enqueue</Redirect>" in twiml


def test_update_failure_is_wrapped_as_telephony_error():
    gateway = _gateway(FakeTwilioClient(fail=True))

    with pytest.raises(TelephonyFailedError, match="call not found"):
        asyncio.run(gateway.speak_then_record("CA1", "Hello", generation=0))


def test_markup_points_at_public_webhooks():
    gateway = _gateway(FakeTwilioClient())

    assert "https://voice.example.com/api/twilio/enqueue" in gateway.incoming_call_markup()
    assert 'waitUrl="https://voice.example.com/api/twilio/wait"' in gateway.enqueue_markup()
    assert "<Pause" in gateway.wait_markup()


def test_hold_markup_speaks_hold_message_before_requeue():
    twiml = _gateway(FakeTwilioClient()).hold_markup()

    assert twiml.index("Formulating an answer, please hold.") < twiml.index("<Redirect")
    assert "https://voice.example.com/api/twilio/enqueue" in twiml
