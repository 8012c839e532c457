"""Credential storage types."""

from dataclasses import dataclass, field
from typing import Any

# Opaque key material; None in an update is a tombstone (delete)
KeyValue = Any
KeyUpdates = dict[str, KeyValue | None]


class StoreUnavailable(Exception):
    """Credential backend I/O failure.

    Fatal to the connect attempt in progress, never to the process.
    """

    pass


@dataclass
class CredentialRecord:
    """Long-lived identity material for one session.

    The transport owns the shape of ``data``; the store only persists it.
    An empty record is valid and means "not paired yet".
    """

    data: dict[str, Any] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.data

    @classmethod
    def empty(cls) -> "CredentialRecord":
        return cls()
