"""Reading plan routes."""

from datetime import date
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query

from devocional.core import DevotionalBot
from devocional.server.deps import get_bot

router = APIRouter()


@router.get("")
async def list_readings(
    date_filter: str | None = Query(default=None, alias="date"),
    bot: DevotionalBot = Depends(get_bot),
) -> dict[str, Any]:
    readings = bot.readings.all(date_filter)
    return {
        "count": len(readings),
        "readings": [r.to_dict() for r in readings],
    }


@router.get("/today")
async def todays_reading(bot: DevotionalBot = Depends(get_bot)) -> dict[str, Any]:
    today: date = bot.today()
    reading = bot.readings.get_reading_for_date(today)
    if reading is None:
        raise HTTPException(status_code=404, detail="No reading found for today")
    return {
        **reading.to_dict(),
        "formatted_date": reading.formatted_date,
        "message": await bot.readings.format_message(reading),
    }
