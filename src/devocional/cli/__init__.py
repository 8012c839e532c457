"""Command-line interface."""

from devocional.cli.app import app

__all__ = ["app"]
