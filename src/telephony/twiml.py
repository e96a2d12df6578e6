"""TwiML documents for the queue / wait / speak-and-record call flow."""

from __future__ import annotations

from xml.sax.saxutils import escape, quoteattr

_HEADER = "<?xml version=\"1.0\" encoding=\"UTF-8\"?>"


def _document(*verbs: str) -> str:
    return _HEADER + "<Response>" + "".join(verbs) + "</Response>"


def _say(text: str, *, language: str, voice: str | None = None) -> str:
    attrs = f" language={quoteattr(language)}"
    if voice:
        attrs += f" voice={quoteattr(voice)}"
    return f"<Say{attrs}>{escape(text)}</Say>"


def twiml_redirect(url: str) -> str:
    return _document(f"<Redirect method=\"POST\">{escape(url)}</Redirect>")


def twiml_enqueue(*, queue_name: str, wait_url: str) -> str:
    return _document(
        f"<Enqueue waitUrl={quoteattr(wait_url)} waitUrlMethod=\"POST\">{escape(queue_name)}</Enqueue>"
    )


def twiml_pause(seconds: int) -> str:
    return _document(f"<Pause length=\"{max(1, int(seconds))}\"/>")


def twiml_say_then_record(
    *,
    say_text: str,
    action_url: str,
    recording_callback_url: str,
    language: str,
    voice: str | None = None,
    timeout_seconds: int = 5,
    max_length_seconds: int = 60,
) -> str:
    """Speak, then record the caller; the recording is delivered by status callback."""

    record = (
        "<Record"
        f" timeout=\"{int(timeout_seconds)}\""
        f" maxLength=\"{int(max_length_seconds)}\""
        " transcribe=\"false\""
        f" action={quoteattr(action_url)}"
        " method=\"POST\""
        f" recordingStatusCallback={quoteattr(recording_callback_url)}"
        " recordingStatusCallbackEvent=\"completed\""
        " recordingStatusCallbackMethod=\"POST\""
        "/>"
    )
    return _document(_say(say_text, language=language, voice=voice), record)


def twiml_say_then_redirect(
    *,
    say_text: str,
    redirect_url: str,
    language: str,
    voice: str | None = None,
) -> str:
    return _document(
        _say(say_text, language=language, voice=voice),
        f"<Redirect method=\"POST\">{escape(redirect_url)}</Redirect>",
    )
