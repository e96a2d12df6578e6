"""Periodic cleanup of sessions whose call-ended callback never arrived."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

LOGGER = logging.getLogger(__name__)


class IdleSessionSweeper:
    def __init__(
        self,
        sweep: Callable[[], Awaitable[list[str]]],
        *,
        interval_seconds: float,
    ) -> None:
        self._sweep = sweep
        self._interval = interval_seconds
        self._task: asyncio.Task | None = None

    async def run_once(self) -> list[str]:
        try:
            return await self._sweep()
        except Exception:
            LOGGER.exception("Idle session sweep failed")
            return []

    async def run_forever(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            await self.run_once()

    def start(self) -> None:
        if self._task is None:
            LOGGER.info("Sweeping idle sessions every %.0f seconds", self._interval)
            self._task = asyncio.create_task(self.run_forever())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
