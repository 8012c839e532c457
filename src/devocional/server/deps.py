"""Request dependencies."""

from typing import TYPE_CHECKING

from fastapi import Request

if TYPE_CHECKING:
    from devocional.core import DevotionalBot


def get_bot(request: Request) -> "DevotionalBot":
    return request.app.state.bot
