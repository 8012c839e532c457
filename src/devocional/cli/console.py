"""Console output shared by CLI commands."""

from typing import TYPE_CHECKING

import typer
from rich.console import Console
from rich.table import Table

if TYPE_CHECKING:
    from devocional.session import PairingArtifact

console = Console()


def _styled(style: str, msg: str) -> None:
    console.print(f"[{style}]{msg}[/{style}]")


def error(msg: str) -> None:
    _styled("red", msg)


def warning(msg: str) -> None:
    _styled("yellow", msg)


def success(msg: str) -> None:
    _styled("green", msg)


def dim(msg: str) -> None:
    _styled("dim", msg)


def show_pairing(artifact: "PairingArtifact", hint: str | None = None) -> None:
    """Print a pairing QR code that a phone camera can scan from the terminal."""
    console.print(f"[bold]Scan this QR code to pair (#{artifact.generation})[/bold]")
    if hint:
        dim(hint)
    console.print(artifact.to_terminal(), highlight=False, markup=False)


def create_table(title: str, columns: list[tuple[str, str]]) -> Table:
    """Build a table from (header, style) pairs."""
    table = Table(title=title)
    for header, style in columns:
        table.add_column(header, style=style)
    return table


def confirm_or_cancel(prompt: str, force: bool) -> bool:
    """True when forced or confirmed; prints "Cancelled" on decline."""
    if force or typer.confirm(prompt):
        return True
    dim("Cancelled")
    return False
