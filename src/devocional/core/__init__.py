"""Bot orchestration."""

from devocional.core.bot import DevotionalBot

__all__ = ["DevotionalBot"]
