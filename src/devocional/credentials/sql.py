"""Relational credential backend (SQLAlchemy, SQLite by default)."""

import asyncio
import logging
from collections.abc import AsyncGenerator, Iterable
from contextlib import asynccontextmanager

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from devocional.credentials import codec
from devocional.credentials.base import CredentialStore
from devocional.credentials.types import (
    CredentialRecord,
    KeyUpdates,
    KeyValue,
    StoreUnavailable,
)
from devocional.db.engine import Database
from devocional.db.models import SessionCredentials, SessionKey

logger = logging.getLogger(__name__)


class SQLCredentialStore(CredentialStore):
    """Credential store backed by the session_credentials/session_keys tables.

    Every operation runs in a single transaction, so a set_keys batch is
    all-or-nothing.
    """

    def __init__(self, database: Database) -> None:
        self._database = database
        self._connect_lock = asyncio.Lock()

    @property
    def name(self) -> str:
        return "sqlite"

    @property
    def database(self) -> Database:
        return self._database

    @asynccontextmanager
    async def _session(self) -> AsyncGenerator[AsyncSession, None]:
        try:
            async with self._connect_lock:
                if not self._database.is_connected:
                    await self._database.connect()
            async with self._database.session() as session:
                yield session
        except (SQLAlchemyError, OSError) as e:
            raise StoreUnavailable(f"Credential database error: {e}") from e

    def _decode(self, payload: str, **context: str) -> KeyValue | None:
        try:
            return codec.loads(payload)
        except ValueError as e:
            logger.warning(
                "credential_record_corrupt",
                extra={**context, "error.message": str(e)},
            )
            return None

    async def load_credentials(self, session_id: str) -> CredentialRecord:
        async with self._session() as session:
            row = await session.get(SessionCredentials, session_id)
            payload = row.data if row else None
        if payload is None:
            return CredentialRecord.empty()
        data = self._decode(payload, **{"session.id": session_id})
        if not isinstance(data, dict):
            return CredentialRecord.empty()
        return CredentialRecord(data=data)

    async def save_credentials(
        self, session_id: str, record: CredentialRecord
    ) -> None:
        payload = codec.dumps(record.data)
        async with self._session() as session:
            await session.merge(SessionCredentials(session_id=session_id, data=payload))

    async def get_keys(
        self, session_id: str, category: str, ids: Iterable[str]
    ) -> dict[str, KeyValue]:
        wanted = list(dict.fromkeys(ids))
        if not wanted:
            return {}
        async with self._session() as session:
            result = await session.execute(
                select(SessionKey.key_id, SessionKey.data).where(
                    SessionKey.session_id == session_id,
                    SessionKey.category == category,
                    SessionKey.key_id.in_(wanted),
                )
            )
            rows = result.all()

        found: dict[str, KeyValue] = {}
        for key_id, payload in rows:
            value = self._decode(
                payload,
                **{"session.id": session_id, "key.category": category, "key.id": key_id},
            )
            if value is not None:
                found[key_id] = value
        return found

    async def set_keys(
        self, session_id: str, category: str, updates: KeyUpdates
    ) -> None:
        encoded = {
            key_id: None if value is None else codec.dumps(value)
            for key_id, value in updates.items()
        }
        async with self._session() as session:
            for key_id, payload in encoded.items():
                if payload is None:
                    await session.execute(
                        delete(SessionKey).where(
                            SessionKey.session_id == session_id,
                            SessionKey.category == category,
                            SessionKey.key_id == key_id,
                        )
                    )
                else:
                    await session.merge(
                        SessionKey(
                            session_id=session_id,
                            category=category,
                            key_id=key_id,
                            data=payload,
                        )
                    )

    async def clear(self, session_id: str) -> None:
        async with self._session() as session:
            await session.execute(
                delete(SessionCredentials).where(
                    SessionCredentials.session_id == session_id
                )
            )
            await session.execute(
                delete(SessionKey).where(SessionKey.session_id == session_id)
            )
        logger.info("credentials_cleared", extra={"session.id": session_id})

    async def close(self) -> None:
        await self._database.disconnect()
