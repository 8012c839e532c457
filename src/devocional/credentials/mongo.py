"""MongoDB credential backend.

One collection holds every session's material. Documents look like:

    {"session_id": "...", "kind": "creds", "category": "", "key_id": "", "data": "<json>"}
    {"session_id": "...", "kind": "key", "category": "pre-key", "key_id": "12", "data": "<json>"}

``data`` is the codec's JSON text so the same corrupt-record handling applies
as in the other backends.
"""

import asyncio
import logging
from collections.abc import Iterable
from typing import Any

from pymongo import ASCENDING, AsyncMongoClient, DeleteOne, ReplaceOne
from pymongo.errors import PyMongoError

from devocional.credentials import codec
from devocional.credentials.base import CredentialStore
from devocional.credentials.types import (
    CredentialRecord,
    KeyUpdates,
    KeyValue,
    StoreUnavailable,
)

logger = logging.getLogger(__name__)

SERVER_SELECTION_TIMEOUT_MS = 5000
SOCKET_TIMEOUT_MS = 45000
MAX_POOL_SIZE = 10


def _creds_filter(session_id: str) -> dict[str, str]:
    return {"session_id": session_id, "kind": "creds", "category": "", "key_id": ""}


def _key_filter(session_id: str, category: str, key_id: str) -> dict[str, str]:
    return {
        "session_id": session_id,
        "kind": "key",
        "category": category,
        "key_id": key_id,
    }


class MongoCredentialStore(CredentialStore):
    """Credential store backed by a MongoDB collection.

    Accepts any collection exposing the async pymongo API, which keeps the
    client construction in from_uri() and out of the storage logic.
    """

    def __init__(self, collection: Any, client: AsyncMongoClient | None = None) -> None:
        self._collection = collection
        self._client = client
        self._guard = asyncio.Lock()
        self._indexed = False

    @classmethod
    def from_uri(
        cls, uri: str, db_name: str, collection_name: str
    ) -> "MongoCredentialStore":
        client: AsyncMongoClient = AsyncMongoClient(
            uri,
            maxPoolSize=MAX_POOL_SIZE,
            serverSelectionTimeoutMS=SERVER_SELECTION_TIMEOUT_MS,
            socketTimeoutMS=SOCKET_TIMEOUT_MS,
        )
        return cls(client[db_name][collection_name], client=client)

    @property
    def name(self) -> str:
        return "mongo"

    async def _ensure_index(self) -> None:
        if self._indexed:
            return
        await self._collection.create_index(
            [
                ("session_id", ASCENDING),
                ("kind", ASCENDING),
                ("category", ASCENDING),
                ("key_id", ASCENDING),
            ],
            unique=True,
        )
        self._indexed = True

    def _decode(self, payload: Any, **context: str) -> KeyValue | None:
        try:
            return codec.loads(payload)
        except ValueError as e:
            logger.warning(
                "credential_record_corrupt",
                extra={**context, "error.message": str(e)},
            )
            return None

    async def load_credentials(self, session_id: str) -> CredentialRecord:
        async with self._guard:
            try:
                await self._ensure_index()
                doc = await self._collection.find_one(_creds_filter(session_id))
            except PyMongoError as e:
                raise StoreUnavailable(f"MongoDB error: {e}") from e
        if not doc:
            return CredentialRecord.empty()
        data = self._decode(doc.get("data"), **{"session.id": session_id})
        if not isinstance(data, dict):
            return CredentialRecord.empty()
        return CredentialRecord(data=data)

    async def save_credentials(
        self, session_id: str, record: CredentialRecord
    ) -> None:
        document = {**_creds_filter(session_id), "data": codec.dumps(record.data)}
        async with self._guard:
            try:
                await self._ensure_index()
                await self._collection.replace_one(
                    _creds_filter(session_id), document, upsert=True
                )
            except PyMongoError as e:
                raise StoreUnavailable(f"MongoDB error: {e}") from e

    async def get_keys(
        self, session_id: str, category: str, ids: Iterable[str]
    ) -> dict[str, KeyValue]:
        wanted = list(dict.fromkeys(ids))
        if not wanted:
            return {}
        query = {
            "session_id": session_id,
            "kind": "key",
            "category": category,
            "key_id": {"$in": wanted},
        }
        docs: list[dict[str, Any]] = []
        async with self._guard:
            try:
                await self._ensure_index()
                async for doc in self._collection.find(query):
                    docs.append(doc)
            except PyMongoError as e:
                raise StoreUnavailable(f"MongoDB error: {e}") from e

        found: dict[str, KeyValue] = {}
        for doc in docs:
            key_id = doc["key_id"]
            value = self._decode(
                doc.get("data"),
                **{"session.id": session_id, "key.category": category, "key.id": key_id},
            )
            if value is not None:
                found[key_id] = value
        return found

    async def set_keys(
        self, session_id: str, category: str, updates: KeyUpdates
    ) -> None:
        operations: list[DeleteOne | ReplaceOne] = []
        for key_id, value in updates.items():
            key_filter = _key_filter(session_id, category, key_id)
            if value is None:
                operations.append(DeleteOne(key_filter))
            else:
                operations.append(
                    ReplaceOne(
                        key_filter,
                        {**key_filter, "data": codec.dumps(value)},
                        upsert=True,
                    )
                )
        if not operations:
            return
        async with self._guard:
            try:
                await self._ensure_index()
                await self._collection.bulk_write(operations, ordered=True)
            except PyMongoError as e:
                raise StoreUnavailable(f"MongoDB error: {e}") from e

    async def clear(self, session_id: str) -> None:
        async with self._guard:
            try:
                await self._collection.delete_many({"session_id": session_id})
            except PyMongoError as e:
                raise StoreUnavailable(f"MongoDB error: {e}") from e
        logger.info("credentials_cleared", extra={"session.id": session_id})

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
