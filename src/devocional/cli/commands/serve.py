"""Server command for running the bot."""

import asyncio
import logging
from pathlib import Path
from typing import Annotated

import typer

logger = logging.getLogger(__name__)


def register(app: typer.Typer) -> None:
    """Register the serve command."""

    @app.command()
    def serve(
        config: Annotated[
            Path | None,
            typer.Option(
                "--config",
                "-c",
                help="Path to configuration file",
            ),
        ] = None,
        host: Annotated[
            str | None,
            typer.Option(
                "--host",
                "-h",
                help="Host to bind to (default: server.host)",
            ),
        ] = None,
        port: Annotated[
            int | None,
            typer.Option(
                "--port",
                "-p",
                help="Port to bind to (default: server.port)",
            ),
        ] = None,
    ) -> None:
        """Start the bot with its admin API and daily schedule."""
        try:
            asyncio.run(_run_server(config, host, port))
        except KeyboardInterrupt:
            # Use print here since logging may not be configured yet
            print("\nServer stopped")


async def _run_server(
    config_path: Path | None = None,
    host: str | None = None,
    port: int | None = None,
) -> None:
    from devocional.logging import configure_logging

    # Rich for colorful server output, JSONL for later inspection
    configure_logging(use_rich=True, log_to_file=True)

    from devocional.cli.console import show_pairing
    from devocional.config import load_config
    from devocional.core import DevotionalBot
    from devocional.server import ServerRunner, create_app

    logger.info("config_loading")
    bot_config = load_config(config_path)
    bot = DevotionalBot(bot_config)

    bot.session.on_pairing(
        lambda artifact: show_pairing(artifact, hint="Or open /qr on the admin server")
    )

    runner = ServerRunner(
        create_app(bot),
        host=host or bot_config.server.host,
        port=port or bot_config.server.port,
    )
    await runner.run()
