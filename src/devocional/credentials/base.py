"""Abstract credential store interface."""

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping

from devocional.credentials.types import CredentialRecord, KeyUpdates, KeyValue


class CredentialStore(ABC):
    """Durable persistence for one session's credential and key records.

    Every backend honors the same contract so the session manager behaves
    identically regardless of where the material lives:

    - load_credentials never fails for "not found", only StoreUnavailable
    - get_keys omits absent ids instead of raising
    - set_keys treats a None value as a delete
    - a record that fails to deserialize is logged and treated as absent

    Only one writer per session id is supported.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend identifier (e.g., 'file', 'sqlite', 'mongo')."""
        ...

    @abstractmethod
    async def load_credentials(self, session_id: str) -> CredentialRecord:
        """Load the credential record, or an empty one if none exists.

        Raises:
            StoreUnavailable: On backend I/O failure.
        """
        ...

    @abstractmethod
    async def save_credentials(
        self, session_id: str, record: CredentialRecord
    ) -> None:
        """Overwrite the credential record (upsert)."""
        ...

    @abstractmethod
    async def get_keys(
        self, session_id: str, category: str, ids: Iterable[str]
    ) -> dict[str, KeyValue]:
        """Fetch the subset of ids present in a key category."""
        ...

    @abstractmethod
    async def set_keys(
        self, session_id: str, category: str, updates: KeyUpdates
    ) -> None:
        """Apply upserts and tombstones for one key category atomically."""
        ...

    @abstractmethod
    async def clear(self, session_id: str) -> None:
        """Delete the credential record and every key record for a session."""
        ...

    async def close(self) -> None:
        """Release backend resources."""
        return None


class KeyStoreAdapter:
    """Key access handed to the transport, bound to one session id.

    Mirrors the batch shape transports expect: get by id list within a
    category, and set across categories with None meaning delete.
    """

    def __init__(self, store: CredentialStore, session_id: str) -> None:
        self._store = store
        self._session_id = session_id

    @property
    def session_id(self) -> str:
        return self._session_id

    async def get(self, category: str, ids: Iterable[str]) -> dict[str, KeyValue]:
        return await self._store.get_keys(self._session_id, category, ids)

    async def set(self, data: Mapping[str, KeyUpdates]) -> None:
        for category, updates in data.items():
            if updates:
                await self._store.set_keys(self._session_id, category, dict(updates))
