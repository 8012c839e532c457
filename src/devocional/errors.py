"""Error types raised across the package, collected in one place."""

from devocional.config.models import ConfigError
from devocional.credentials.types import StoreUnavailable
from devocional.readings import ReadingsError
from devocional.scheduling.types import InvalidSchedule
from devocional.session.transport import (
    CredentialsRevoked,
    TransportDisconnected,
    TransportError,
)

__all__ = [
    "ConfigError",
    "CredentialsRevoked",
    "InvalidSchedule",
    "ReadingsError",
    "StoreUnavailable",
    "TransportDisconnected",
    "TransportError",
]
