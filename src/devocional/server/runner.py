"""Run the admin API under uvicorn until a shutdown signal arrives."""

from __future__ import annotations

import asyncio
import logging
import os
import signal
from typing import TYPE_CHECKING

import uvicorn

if TYPE_CHECKING:
    from fastapi import FastAPI

logger = logging.getLogger(__name__)

SHUTDOWN_SIGNALS = (signal.SIGTERM, signal.SIGINT)


class ServerRunner:
    """Serves an app and turns SIGINT/SIGTERM into an orderly exit.

    The first signal asks uvicorn to stop accepting requests, which runs the
    app lifespan shutdown (scheduler, session, storage). A second signal
    while that is in progress exits the process immediately.
    """

    def __init__(self, app: FastAPI, *, host: str, port: int) -> None:
        self._app = app
        self._host = host
        self._port = port
        self._signals_received = 0

    def _on_signal(self, server: uvicorn.Server) -> None:
        self._signals_received += 1
        if self._signals_received > 1:
            logger.warning("server_force_shutdown")
            os._exit(1)
        logger.info("server_shutting_down")
        server.should_exit = True

    async def run(self) -> None:
        server = uvicorn.Server(
            uvicorn.Config(
                self._app,
                host=self._host,
                port=self._port,
                log_level="info",
                log_config=None,  # keep the handlers from configure_logging()
            )
        )

        loop = asyncio.get_running_loop()
        for sig in SHUTDOWN_SIGNALS:
            loop.add_signal_handler(sig, self._on_signal, server)

        logger.info(
            "server_listening",
            extra={"server.host": self._host, "server.port": self._port},
        )
        await server.serve()
