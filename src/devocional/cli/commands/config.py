"""Configuration inspection commands."""

from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import click
import typer

from devocional.cli.console import console, create_table, error, success

if TYPE_CHECKING:
    from devocional.config import BotConfig

ACTIONS = ("show", "validate")


def register(app: typer.Typer) -> None:
    """Register the config command."""

    @app.command()
    def config(
        action: Annotated[
            str | None,
            typer.Argument(help="Action: show, validate"),
        ] = None,
        path: Annotated[
            Path | None,
            typer.Option(
                "--path",
                "-p",
                help="Path to config file (default: $DEVOCIONAL_HOME/config.toml)",
            ),
        ] = None,
    ) -> None:
        """Show or validate configuration."""
        if action is None:
            click.echo(click.get_current_context().get_help())
            raise typer.Exit(0)
        if action not in ACTIONS:
            error(f"Unknown action: {action}")
            console.print(f"Valid actions: {', '.join(ACTIONS)}")
            raise typer.Exit(1)

        from devocional.config.paths import get_config_path

        config_path = path.expanduser() if path else get_config_path()
        if action == "show":
            _show(config_path)
        else:
            _validate(config_path)


def _show(config_path: Path) -> None:
    from rich.syntax import Syntax

    if not config_path.exists():
        error(f"Config file not found: {config_path}")
        console.print("Without a file, defaults plus environment variables apply")
        raise typer.Exit(1)

    console.print(f"[bold]Config file: {config_path}[/bold]\n")
    console.print(
        Syntax(config_path.read_text(), "toml", theme="monokai", line_numbers=True)
    )


def _validate(config_path: Path) -> None:
    from pydantic import ValidationError

    from devocional.config import load_config

    try:
        bot_config = load_config(config_path if config_path.exists() else None)
    except ValidationError as e:
        error("Configuration validation failed:")
        console.print()
        for problem in e.errors():
            location = ".".join(str(part) for part in problem["loc"])
            console.print(f"  [yellow]{location}[/yellow]: {problem['msg']}")
        raise typer.Exit(1) from None
    except Exception as e:
        error(f"Error loading config: {e}")
        raise typer.Exit(1) from None

    success("Configuration is valid!")
    console.print()
    console.print(_summary(bot_config))


def _summary(bot_config: "BotConfig"):
    delivery = bot_config.delivery
    schedule = f"{delivery.send_time} {delivery.timezone}"
    if not delivery.enabled:
        schedule += " [dim](disabled)[/dim]"

    table = create_table("Configuration Summary", [("Setting", "cyan"), ("Value", "green")])
    for setting, value in (
        ("Session", bot_config.session.name),
        ("Transport", bot_config.session.transport),
        ("Credentials", bot_config.credentials.backend),
        ("Schedule", schedule),
        ("Group chat", delivery.group_chat_id or "[dim]not configured[/dim]"),
        ("Readings", str(bot_config.readings.path)),
        ("Server", f"{bot_config.server.host}:{bot_config.server.port}"),
    ):
        table.add_row(setting, value)
    return table
