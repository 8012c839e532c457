"""Async SQLite access for the SQL-backed stores."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from devocional.db.models import Base

logger = logging.getLogger(__name__)

# Seconds a connection waits on a locked SQLite file before giving up
SQLITE_BUSY_TIMEOUT = 5.0


def sqlite_url(path: Path) -> str:
    return f"sqlite+aiosqlite:///{path}"


class Database:
    """One async engine and its session factory.

    Each store owns its own instance; there is no process-wide handle.
    Tables declared in ``devocional.db.models`` are created on connect.
    """

    def __init__(self, database_path: Path | None = None, *, url: str | None = None):
        if url is None:
            if database_path is None:
                raise ValueError("database_path or url is required")
            url = sqlite_url(database_path)
        self._path = database_path
        self._url = url
        self._engine: AsyncEngine | None = None
        self._sessions: async_sessionmaker[AsyncSession] | None = None

    @property
    def url(self) -> str:
        return self._url

    @property
    def is_connected(self) -> bool:
        return self._engine is not None

    async def connect(self) -> None:
        """Open the engine and create missing tables. Idempotent."""
        if self._engine is not None:
            return
        if self._path is not None:
            self._path.parent.mkdir(parents=True, exist_ok=True)

        connect_args = {"timeout": SQLITE_BUSY_TIMEOUT} if self._url.startswith("sqlite") else {}
        engine = create_async_engine(self._url, connect_args=connect_args)
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        self._engine = engine
        self._sessions = async_sessionmaker(engine, expire_on_commit=False)
        logger.debug("database_connected", extra={"db.url": self._url})

    async def disconnect(self) -> None:
        engine, self._engine = self._engine, None
        self._sessions = None
        if engine is not None:
            await engine.dispose()

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Yield a session that commits on success and rolls back on error.

        Raises:
            RuntimeError: If connect() has not been called.
        """
        if self._sessions is None:
            raise RuntimeError("Database is not connected")
        async with self._sessions() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
