"""Reading plan inspection."""

import asyncio
from datetime import date, datetime
from pathlib import Path
from typing import Annotated

import typer

from devocional.cli.console import console, error, warning


def register(app: typer.Typer) -> None:
    """Register the readings command."""

    @app.command()
    def readings(
        day: Annotated[
            str | None,
            typer.Option("--date", "-d", help="Date to show (YYYY-MM-DD, default: today)"),
        ] = None,
        config: Annotated[
            Path | None,
            typer.Option("--config", "-c", help="Path to configuration file"),
        ] = None,
    ) -> None:
        """Show the message that would be sent for a date."""
        from zoneinfo import ZoneInfo

        from devocional.config import load_config
        from devocional.readings import ReadingPlan, ReadingsError
        from devocional.shortener import UrlShortener

        bot_config = load_config(config)
        try:
            target = date.fromisoformat(day) if day else None
        except ValueError:
            error(f"Invalid date: {day}. Expected YYYY-MM-DD")
            raise typer.Exit(1) from None

        shortener = UrlShortener(enabled=False)
        try:
            plan = ReadingPlan(
                bot_config.readings.path,
                bible_version=bot_config.readings.bible_version,
                footer_url=bot_config.readings.footer_url,
                shortener=shortener,
            )
        except ReadingsError as e:
            error(str(e))
            raise typer.Exit(1) from None

        if target is None:
            target = datetime.now(ZoneInfo(bot_config.delivery.timezone)).date()

        console.print(f"[dim]{plan.count} readings in {plan.path}[/dim]")
        message = asyncio.run(plan.get_content_for_date(target))
        if message is None:
            warning(f"No reading for {target.isoformat()}")
            raise typer.Exit(1)
        console.print(message, highlight=False, markup=False)
