"""Session types.

Public types:
- ConnectionState: Lifecycle states of the messaging session
- PairingArtifact: The current pairing code, renderable as an image
- SendSummary: Outcome of a fan-out send
"""

import io
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum

import segno


class ConnectionState(StrEnum):
    """Lifecycle states, held in memory only."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    AWAITING_PAIRING = "awaiting_pairing"
    OPEN = "open"
    CLOSING = "closing"


@dataclass(frozen=True)
class PairingArtifact:
    """A pairing code produced by the transport handshake.

    Only the most recent artifact is valid; ``generation`` increases with
    every new code so a stale render can be told apart from a fresh one.
    """

    code: str
    generation: int
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def _qr(self) -> segno.QRCode:
        return segno.make(self.code, error="m")

    def to_svg(self, scale: int = 6) -> str:
        """Render as an inline SVG document."""
        return self._qr().svg_inline(scale=scale)

    def to_data_uri(self, scale: int = 6) -> str:
        """Render as a PNG data URI for <img src=...>."""
        return self._qr().png_data_uri(scale=scale)

    def to_terminal(self) -> str:
        """Render as text for a terminal."""
        buffer = io.StringIO()
        self._qr().terminal(out=buffer, compact=True)
        return buffer.getvalue()


@dataclass
class SendSummary:
    """Outcome of a sequential fan-out send."""

    success_count: int = 0
    failure_count: int = 0
    delivered: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.success_count + self.failure_count

    @property
    def all_succeeded(self) -> bool:
        return self.total > 0 and self.failure_count == 0


PairingObserver = Callable[[PairingArtifact], None]
StateObserver = Callable[[ConnectionState, ConnectionState], None]
