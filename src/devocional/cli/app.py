"""Main CLI application."""

import typer

from devocional.cli.commands import (
    check,
    config,
    credentials,
    readings,
    send,
    serve,
)

app = typer.Typer(
    name="devocional",
    help="Devocional Bot - daily Bible reading delivery",
    no_args_is_help=True,
)

serve.register(app)
send.register(app)
check.register(app)
config.register(app)
readings.register(app)
credentials.register(app)


if __name__ == "__main__":
    app()
