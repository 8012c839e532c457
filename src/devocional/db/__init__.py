"""Database layer."""

from devocional.db.engine import Database
from devocional.db.models import Base, Recipient, SessionCredentials, SessionKey

__all__ = [
    "Base",
    "Database",
    "Recipient",
    "SessionCredentials",
    "SessionKey",
]
