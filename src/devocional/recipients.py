"""Delivery recipient storage."""

import logging
from typing import Any, Literal

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from devocional.db.engine import Database
from devocional.db.models import Recipient

logger = logging.getLogger(__name__)

RecipientType = Literal["group", "person"]
RECIPIENT_TYPES = ("group", "person")


def _validate(chat_id: str, name: str, type: str) -> tuple[str, str, str]:
    chat_id = chat_id.strip()
    name = name.strip()
    if not chat_id:
        raise ValueError("chat_id is required")
    if not name:
        raise ValueError("name is required")
    if type not in RECIPIENT_TYPES:
        raise ValueError("type must be group or person")
    return chat_id, name, type


def recipient_to_dict(recipient: Recipient) -> dict[str, Any]:
    return {
        "id": recipient.id,
        "chat_id": recipient.chat_id,
        "name": recipient.name,
        "type": recipient.type,
        "created_at": recipient.created_at.isoformat(),
        "updated_at": recipient.updated_at.isoformat(),
    }


class RecipientStore:
    """CRUD over the recipients table."""

    def __init__(self, database: Database):
        self._database = database

    @property
    def database(self) -> Database:
        return self._database

    async def initialize(self) -> None:
        await self._database.connect()
        logger.info("recipients_initialized", extra={"db.url": self._database.url})

    async def close(self) -> None:
        await self._database.disconnect()

    async def chat_ids(self) -> list[str]:
        return [r.chat_id for r in await self.list_all()]

    async def list_all(self) -> list[Recipient]:
        async with self._database.session() as session:
            result = await session.execute(select(Recipient).order_by(Recipient.id))
            return list(result.scalars().all())

    async def get(self, recipient_id: int) -> Recipient | None:
        async with self._database.session() as session:
            return await session.get(Recipient, recipient_id)

    async def create(self, chat_id: str, name: str, type: str) -> Recipient:
        """Add a recipient.

        Raises:
            ValueError: On invalid fields or a duplicate chat_id.
        """
        chat_id, name, type = _validate(chat_id, name, type)
        recipient = Recipient(chat_id=chat_id, name=name, type=type)
        try:
            async with self._database.session() as session:
                session.add(recipient)
                await session.flush()
        except IntegrityError as e:
            raise ValueError(f"chat_id already registered: {chat_id}") from e
        logger.info("recipient_created", extra={"recipient.id": recipient.id})
        return recipient

    async def update(
        self, recipient_id: int, chat_id: str, name: str, type: str
    ) -> Recipient | None:
        """Replace a recipient's fields. Returns None if it does not exist."""
        chat_id, name, type = _validate(chat_id, name, type)
        try:
            async with self._database.session() as session:
                recipient = await session.get(Recipient, recipient_id)
                if recipient is None:
                    return None
                recipient.chat_id = chat_id
                recipient.name = name
                recipient.type = type
                await session.flush()
        except IntegrityError as e:
            raise ValueError(f"chat_id already registered: {chat_id}") from e
        return recipient

    async def delete(self, recipient_id: int) -> bool:
        async with self._database.session() as session:
            recipient = await session.get(Recipient, recipient_id)
            if recipient is None:
                return False
            await session.delete(recipient)
        logger.info("recipient_deleted", extra={"recipient.id": recipient_id})
        return True
