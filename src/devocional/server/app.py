"""FastAPI application for the devotional bot."""

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI

from devocional.server.routes import (
    delivery,
    health,
    pairing,
    readings,
    recipients,
    scheduler,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from devocional.core import DevotionalBot

logger = logging.getLogger(__name__)


class DevocionalServer:
    """Admin API over a DevotionalBot.

    The bot is started by the app lifespan and stopped when it ends, so the
    API and the session share one lifecycle.
    """

    def __init__(self, bot: "DevotionalBot", *, manage_lifecycle: bool = True):
        self._bot = bot
        self._manage_lifecycle = manage_lifecycle
        self._app = self._create_app()

    @property
    def app(self) -> FastAPI:
        return self._app

    @property
    def bot(self) -> "DevotionalBot":
        return self._bot

    def _create_app(self) -> FastAPI:
        @asynccontextmanager
        async def lifespan(app: FastAPI) -> "AsyncIterator[None]":
            if self._manage_lifecycle:
                logger.info("server_starting")
                await self._bot.start()
            yield
            if self._manage_lifecycle:
                logger.info("server_stopping")
                await self._bot.stop()

        docs = self._bot.config.server.docs
        app = FastAPI(
            title="Devocional Bot",
            description="Daily devotional delivery admin API",
            version="0.1.0",
            lifespan=lifespan,
            docs_url="/docs" if docs else None,
            redoc_url=None,
            openapi_url="/openapi.json" if docs else None,
        )

        app.state.server = self
        app.state.bot = self._bot

        app.include_router(health.router, tags=["health"])
        app.include_router(delivery.router, tags=["delivery"])
        app.include_router(readings.router, prefix="/readings", tags=["readings"])
        app.include_router(pairing.router, tags=["pairing"])
        app.include_router(scheduler.router, prefix="/scheduler", tags=["scheduler"])
        app.include_router(recipients.router, prefix="/recipients", tags=["recipients"])

        return app


def create_app(bot: "DevotionalBot", *, manage_lifecycle: bool = True) -> FastAPI:
    """Create the FastAPI application."""
    return DevocionalServer(bot, manage_lifecycle=manage_lifecycle).app
