"""Messaging session lifecycle.

Public API:
- SessionManager: Connection state machine
- Transport: Abstract transport client contract
- load_transport: Resolve a transport from configuration

Types:
- ConnectionState, PairingArtifact, SendSummary
- Authenticated, Disconnected, CredentialsUpdated (transport events)
"""

from devocional.session.manager import SessionManager
from devocional.session.transport import (
    Authenticated,
    CredentialsRevoked,
    CredentialsUpdated,
    Disconnected,
    DisconnectReason,
    LogTransport,
    Transport,
    TransportDisconnected,
    TransportError,
    TransportEvent,
    load_transport,
)
from devocional.session.types import ConnectionState, PairingArtifact, SendSummary

__all__ = [
    "Authenticated",
    "ConnectionState",
    "CredentialsRevoked",
    "CredentialsUpdated",
    "Disconnected",
    "DisconnectReason",
    "LogTransport",
    "PairingArtifact",
    "SendSummary",
    "SessionManager",
    "Transport",
    "TransportDisconnected",
    "TransportError",
    "TransportEvent",
    "load_transport",
]
