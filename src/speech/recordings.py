"""Download of caller recordings referenced by the telephony provider."""

from __future__ import annotations

import logging

import httpx

LOGGER = logging.getLogger(__name__)


class RecordingFetcher:
    """Fetches recording audio, authenticating against Twilio when credentials are set.

    Twilio serves ``RecordingUrl`` without an extension; appending ``.wav``
    pins the format regardless of account defaults.
    """

    def __init__(
        self,
        *,
        account_sid: str | None = None,
        auth_token: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._auth = (account_sid, auth_token) if account_sid and auth_token else None
        self._timeout = timeout
        self._transport = transport

    @staticmethod
    def audio_url(recording_ref: str) -> str:
        if recording_ref.rsplit("/", 1)[-1].count(".") == 0:
            return f"{recording_ref}.wav"
        return recording_ref

    async def fetch(self, recording_ref: str) -> bytes:
        url = self.audio_url(recording_ref)
        async with httpx.AsyncClient(
            auth=self._auth,
            timeout=self._timeout,
            follow_redirects=True,
            transport=self._transport,
        ) as client:
            response = await client.get(url)

        response.raise_for_status()
        LOGGER.debug("Fetched %d bytes of audio from %s", len(response.content), url)
        return response.content
