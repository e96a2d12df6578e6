"""Entry point for the phone voice assistant service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from api.dependencies import get_orchestrator, orchestrator_built, shutdown_orchestrator
from api.routes import router as api_router
from api.twilio_routes import router as twilio_router
from config.settings import get_settings
from conversation.sweeper import IdleSessionSweeper


async def sweep_idle_sessions(app: FastAPI) -> list[str]:
    override = app.dependency_overrides.get(get_orchestrator)
    if override is None and not orchestrator_built():
        # The first call builds the orchestrator; until then there is nothing to sweep.
        return []
    return await (override or get_orchestrator)().sweep_idle()


@asynccontextmanager
async def lifespan(app: FastAPI):
    sweeper: IdleSessionSweeper | None = None
    if settings.session_sweep_interval_seconds > 0:
        sweeper = IdleSessionSweeper(
            lambda: sweep_idle_sessions(app),
            interval_seconds=settings.session_sweep_interval_seconds,
        )
        sweeper.start()
    yield
    if sweeper is not None:
        await sweeper.stop()
    await shutdown_orchestrator()


settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("twilio.http_client").setLevel(logging.WARNING)

app = FastAPI(
    title="Voice Call Assistant",
    description="Turn-based phone conversations over Twilio with speech-to-text and an LLM.",
    lifespan=lifespan,
)
app.include_router(api_router, prefix="/api")
app.include_router(twilio_router, prefix="/api")
