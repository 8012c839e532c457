"""Health check routes."""

from typing import Any

from fastapi import APIRouter, Depends

from devocional.core import DevotionalBot
from devocional.server.deps import get_bot

router = APIRouter()


@router.get("/health")
async def health_check(bot: DevotionalBot = Depends(get_bot)) -> dict[str, Any]:
    """Process health plus the messaging session state."""
    return {"status": "ok", **bot.session.status()}
