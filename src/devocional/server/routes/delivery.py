"""Manual delivery routes."""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from devocional.core import DevotionalBot
from devocional.server.deps import get_bot

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/send")
async def send_devotional(bot: DevotionalBot = Depends(get_bot)) -> JSONResponse:
    """Send today's devotional to every destination now, without retries."""
    try:
        sent = await bot.send_todays_devotional()
    except Exception as e:
        logger.exception("manual_send_failed")
        return JSONResponse({"success": False, "error": str(e)}, status_code=500)
    if not sent:
        return JSONResponse(
            {"success": False, "error": "Failed to send devotional"}, status_code=500
        )
    return JSONResponse({"success": True, "message": "Devotional sent successfully"})
