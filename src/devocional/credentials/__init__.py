"""Credential persistence for the messaging session.

Public API:
- CredentialStore: Backend-neutral async interface
- KeyStoreAdapter: Batch key access handed to the transport
- create_credential_store: Build the configured backend

Backends:
- FileCredentialStore: JSON file tree
- SQLCredentialStore: SQLAlchemy tables
- MongoCredentialStore: MongoDB collection
"""

from devocional.config.models import ConfigError, CredentialsConfig
from devocional.credentials.base import CredentialStore, KeyStoreAdapter
from devocional.credentials.file import FileCredentialStore
from devocional.credentials.types import (
    CredentialRecord,
    KeyUpdates,
    KeyValue,
    StoreUnavailable,
)


def create_credential_store(config: CredentialsConfig) -> CredentialStore:
    """Build the credential backend named in configuration.

    This is the only place the backend is chosen; everything downstream
    receives the constructed store.
    """
    if config.backend == "sqlite":
        from devocional.credentials.sql import SQLCredentialStore
        from devocional.db.engine import Database

        return SQLCredentialStore(Database(database_path=config.database_path))

    if config.backend == "mongo":
        from devocional.credentials.mongo import MongoCredentialStore

        if config.mongodb_uri is None:
            raise ConfigError("MONGODB_URI environment variable is required")
        return MongoCredentialStore.from_uri(
            config.mongodb_uri.get_secret_value(),
            config.mongodb_db_name,
            config.mongodb_collection,
        )

    return FileCredentialStore(config.path)


__all__ = [
    "CredentialRecord",
    "CredentialStore",
    "FileCredentialStore",
    "KeyStoreAdapter",
    "KeyUpdates",
    "KeyValue",
    "StoreUnavailable",
    "create_credential_store",
]
