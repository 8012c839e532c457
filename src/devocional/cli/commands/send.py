"""Trigger a delivery on a running server."""

from pathlib import Path
from typing import Annotated

import typer

from devocional.cli.console import error, success


def register(app: typer.Typer) -> None:
    """Register the send command."""

    @app.command()
    def send(
        url: Annotated[
            str | None,
            typer.Option(
                "--url",
                "-u",
                help="Base URL of the running server (default: http://localhost:<server.port>)",
            ),
        ] = None,
        config: Annotated[
            Path | None,
            typer.Option("--config", "-c", help="Path to configuration file"),
        ] = None,
        timeout: Annotated[
            float,
            typer.Option("--timeout", help="Request timeout in seconds"),
        ] = 60.0,
    ) -> None:
        """Send today's devotional now through the running server."""
        import httpx

        if url is None:
            from devocional.config import load_config

            url = f"http://localhost:{load_config(config).server.port}"

        try:
            response = httpx.post(f"{url.rstrip('/')}/send", timeout=timeout)
        except httpx.HTTPError as e:
            error(f"Could not reach server at {url}: {e}")
            raise typer.Exit(1) from None

        try:
            payload = response.json()
        except ValueError:
            payload = {}

        if response.status_code == 200 and payload.get("success"):
            success("Devotional sent successfully")
            return

        error(f"Failed to send devotional: {payload.get('error') or response.text}")
        raise typer.Exit(1)
