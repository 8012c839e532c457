"""Delivery scheduler routes."""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from devocional.core import DevotionalBot
from devocional.scheduling import InvalidSchedule
from devocional.server.deps import get_bot

router = APIRouter()


@router.get("")
async def scheduler_status(bot: DevotionalBot = Depends(get_bot)) -> dict[str, Any]:
    return bot.scheduler.status()


@router.post("/start")
async def start_scheduler(bot: DevotionalBot = Depends(get_bot)) -> dict[str, Any]:
    try:
        await bot.scheduler.start()
    except InvalidSchedule as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return bot.scheduler.status()


@router.post("/stop")
async def stop_scheduler(bot: DevotionalBot = Depends(get_bot)) -> dict[str, Any]:
    await bot.scheduler.stop()
    return bot.scheduler.status()


@router.post("/execute")
async def execute_now(bot: DevotionalBot = Depends(get_bot)) -> dict[str, Any]:
    """Run one delivery now; failures keep retrying in the background."""
    success = await bot.scheduler.execute_now()
    return {"success": success, **bot.scheduler.status()}
