"""CLI command modules."""

from devocional.cli.commands import (
    check,
    config,
    credentials,
    readings,
    send,
    serve,
)

__all__ = [
    "check",
    "config",
    "credentials",
    "readings",
    "send",
    "serve",
]
