"""Recipient management routes."""

from typing import Any, Literal

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel

from devocional.core import DevotionalBot
from devocional.recipients import recipient_to_dict
from devocional.server.deps import get_bot

router = APIRouter()


class RecipientBody(BaseModel):
    chat_id: str
    name: str
    type: Literal["group", "person"]


@router.get("")
async def list_recipients(bot: DevotionalBot = Depends(get_bot)) -> dict[str, Any]:
    recipients = await bot.recipients.list_all()
    return {"recipients": [recipient_to_dict(r) for r in recipients]}


@router.post("", status_code=201)
async def create_recipient(
    body: RecipientBody, bot: DevotionalBot = Depends(get_bot)
) -> dict[str, Any]:
    try:
        recipient = await bot.recipients.create(body.chat_id, body.name, body.type)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return recipient_to_dict(recipient)


@router.put("/{recipient_id}")
async def update_recipient(
    recipient_id: int, body: RecipientBody, bot: DevotionalBot = Depends(get_bot)
) -> dict[str, Any]:
    try:
        recipient = await bot.recipients.update(
            recipient_id, body.chat_id, body.name, body.type
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    if recipient is None:
        raise HTTPException(status_code=404, detail="Recipient not found")
    return recipient_to_dict(recipient)


@router.delete("/{recipient_id}", status_code=204)
async def delete_recipient(
    recipient_id: int, bot: DevotionalBot = Depends(get_bot)
) -> Response:
    if not await bot.recipients.delete(recipient_id):
        raise HTTPException(status_code=404, detail="Recipient not found")
    return Response(status_code=204)
