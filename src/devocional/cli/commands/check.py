"""End-to-end check: connect, pair if needed, send a test message."""

import asyncio
from pathlib import Path
from typing import Annotated

import typer

from devocional.cli.console import dim, error, show_pairing, success


def register(app: typer.Typer) -> None:
    """Register the test command."""

    @app.command("test")
    def test_command(
        config: Annotated[
            Path | None,
            typer.Option("--config", "-c", help="Path to configuration file"),
        ] = None,
        timeout: Annotated[
            float,
            typer.Option("--timeout", help="Seconds to wait for the session to open"),
        ] = 120.0,
    ) -> None:
        """Connect, pair if needed, and send a test message."""
        from devocional.logging import configure_logging

        configure_logging()
        ok = asyncio.run(_run_check(config, timeout))
        if not ok:
            raise typer.Exit(1)


async def _run_check(config_path: Path | None, timeout: float) -> bool:
    from devocional.config import load_config
    from devocional.core import DevotionalBot
    from devocional.session import ConnectionState

    bot = DevotionalBot(load_config(config_path))
    opened = asyncio.Event()

    def on_state(previous: ConnectionState, current: ConnectionState) -> None:
        dim(f"Session: {previous.value} -> {current.value}")
        if current == ConnectionState.OPEN:
            opened.set()

    bot.session.on_state_change(on_state)
    bot.session.on_pairing(show_pairing)

    try:
        await bot.recipients.initialize()
        if await bot.session.start() == ConnectionState.OPEN:
            opened.set()
        try:
            await asyncio.wait_for(opened.wait(), timeout=timeout)
        except TimeoutError:
            error(f"Session did not open within {timeout:.0f}s")
            return False

        if await bot.send_test_message():
            success("Test message sent")
            return True
        error("Failed to send test message")
        return False
    finally:
        await bot.stop()
