"""Stored session credential commands."""

import asyncio
from pathlib import Path
from typing import Annotated

import typer

from devocional.cli.console import confirm_or_cancel, error, success


def register(app: typer.Typer) -> None:
    """Register the credentials command group."""
    credentials_app = typer.Typer(help="Manage stored session credentials")

    @credentials_app.command("clear")
    def clear(
        config: Annotated[
            Path | None,
            typer.Option("--config", "-c", help="Path to configuration file"),
        ] = None,
        force: Annotated[
            bool,
            typer.Option("--force", "-f", help="Skip confirmation"),
        ] = False,
    ) -> None:
        """Delete stored credentials so the next start pairs again."""
        from devocional.config import load_config
        from devocional.credentials import StoreUnavailable, create_credential_store

        bot_config = load_config(config)
        session_id = bot_config.session.name
        backend = bot_config.credentials.backend
        if not confirm_or_cancel(
            f"Delete stored credentials for '{session_id}' ({backend})?", force
        ):
            raise typer.Exit(0)

        async def _clear() -> None:
            store = create_credential_store(bot_config.credentials)
            try:
                await store.clear(session_id)
            finally:
                await store.close()

        try:
            asyncio.run(_clear())
        except StoreUnavailable as e:
            error(f"Credential store unavailable: {e}")
            raise typer.Exit(1) from None
        success(f"Credentials cleared for '{session_id}'")

    app.add_typer(credentials_app, name="credentials")
