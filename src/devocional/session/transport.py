"""Transport collaborator contract.

The transport owns the wire protocol and cryptography of the messaging
service. The session manager only sees the typed events defined here and
the handful of calls on the Transport interface.
"""

import importlib
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

from devocional.credentials.base import KeyStoreAdapter
from devocional.credentials.types import CredentialRecord

logger = logging.getLogger(__name__)


class TransportError(Exception):
    """Base class for transport failures."""

    pass


class TransportDisconnected(TransportError):
    """Soft failure: reconnect with the same credentials."""

    pass


class CredentialsRevoked(TransportError):
    """Hard failure: stored credentials are no longer accepted."""

    pass


class DisconnectReason(StrEnum):
    """Why the transport dropped the connection."""

    LOGGED_OUT = "logged_out"
    CONNECTION_LOST = "connection_lost"
    TIMED_OUT = "timed_out"
    RESTART_REQUIRED = "restart_required"
    OTHER = "other"

    @property
    def revokes_credentials(self) -> bool:
        return self is DisconnectReason.LOGGED_OUT


@dataclass(frozen=True)
class Authenticated:
    """The transport accepted our identity; sending is allowed."""


@dataclass(frozen=True)
class Disconnected:
    """The connection dropped involuntarily."""

    reason: DisconnectReason = DisconnectReason.OTHER
    detail: str | None = None


@dataclass(frozen=True)
class CredentialsUpdated:
    """The transport changed the identity material and it must be persisted."""

    record: CredentialRecord


TransportEvent = Authenticated | Disconnected | CredentialsUpdated
EventHandler = Callable[[TransportEvent], None]
PairingHandler = Callable[[str], None]


class Transport(ABC):
    """Abstract interface for the messaging transport client.

    Handlers are plain callables and must not block; the session manager
    queues what they receive and applies it on its own task.
    """

    def __init__(self) -> None:
        self._event_handler: EventHandler | None = None
        self._pairing_handler: PairingHandler | None = None

    @property
    @abstractmethod
    def name(self) -> str:
        """Transport identifier (e.g., 'log')."""
        ...

    def on_event(self, handler: EventHandler) -> None:
        """Register the single connection-state event handler."""
        self._event_handler = handler

    def on_pairing(self, handler: PairingHandler) -> None:
        """Register the single pairing-code handler."""
        self._pairing_handler = handler

    def emit(self, event: TransportEvent) -> None:
        if self._event_handler is not None:
            self._event_handler(event)

    def emit_pairing(self, code: str) -> None:
        if self._pairing_handler is not None:
            self._pairing_handler(code)

    @abstractmethod
    async def connect(self, credentials: CredentialRecord, keys: KeyStoreAdapter) -> None:
        """Open a connection using the stored identity.

        Outcomes are reported through events. May raise CredentialsRevoked or
        TransportDisconnected when the failure is known synchronously.
        """
        ...

    @abstractmethod
    async def send_text(self, destination: str, text: str) -> bool:
        """Send a text message. Returns False when the transport refuses it."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Close the connection. Safe to call when not connected."""
        ...


class LogTransport(Transport):
    """Transport that logs messages instead of sending them.

    Used where no real client is available (development, CI, or when
    delivery is intentionally disabled). Authenticates immediately.
    """

    def __init__(self) -> None:
        super().__init__()
        self._connected = False
        self.sent: list[tuple[str, str]] = []

    @property
    def name(self) -> str:
        return "log"

    async def connect(self, credentials: CredentialRecord, keys: KeyStoreAdapter) -> None:
        self._connected = True
        logger.warning("log_transport_active")
        self.emit(Authenticated())

    async def send_text(self, destination: str, text: str) -> bool:
        if not self._connected:
            return False
        self.sent.append((destination, text))
        logger.info(
            "log_transport_message",
            extra={"messaging.chat_id": destination, "message.length": len(text)},
        )
        logger.debug("log_transport_body: %s", text)
        return True

    async def close(self) -> None:
        self._connected = False


BUILTIN_TRANSPORTS: dict[str, type[Transport]] = {
    "log": LogTransport,
}


def load_transport(name: str) -> Transport:
    """Instantiate a transport by builtin name or "package.module:ClassName".

    Raises:
        ValueError: If the name cannot be resolved to a Transport subclass.
    """
    if name in BUILTIN_TRANSPORTS:
        return BUILTIN_TRANSPORTS[name]()

    module_name, sep, class_name = name.partition(":")
    if not sep or not module_name or not class_name:
        available = ", ".join(sorted(BUILTIN_TRANSPORTS))
        raise ValueError(
            f"Unknown transport '{name}'. Use one of: {available}, "
            "or 'package.module:ClassName'"
        )

    try:
        module = importlib.import_module(module_name)
        transport_cls = getattr(module, class_name)
    except (ImportError, AttributeError) as e:
        raise ValueError(f"Cannot load transport '{name}': {e}") from e

    if not isinstance(transport_cls, type) or not issubclass(transport_cls, Transport):
        raise ValueError(f"'{name}' is not a Transport subclass")
    return transport_cls()
