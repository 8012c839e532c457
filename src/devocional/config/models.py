"""Configuration models using Pydantic."""

import logging
import re
from pathlib import Path
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, SecretStr, field_validator, model_validator

from devocional.config.paths import (
    get_credentials_database_path,
    get_readings_path,
    get_recipients_database_path,
    get_tokens_path,
)

logger = logging.getLogger(__name__)

SEND_TIME_PATTERN = re.compile(r"^\d{1,2}:\d{2}$")


class ConfigError(Exception):
    """Configuration error."""

    pass


class SessionConfig(BaseModel):
    """Messaging session settings."""

    name: str = "devocional-bot"
    # "log" or a dotted path "package.module:ClassName"
    transport: str = "log"
    reconnect_delay: float = 5.0  # seconds before a soft reconnect
    settle_delay: float = 2.0  # seconds between clearing credentials and re-pairing


class DeliveryConfig(BaseModel):
    """Daily delivery schedule.

    send_time is validated loosely here (shape only); the scheduler does the
    strict HH:MM range check so a bad value fails at start().
    """

    group_chat_id: str | None = None
    send_time: str = "07:00"
    timezone: str = "America/Sao_Paulo"
    enabled: bool = True
    max_retries: int = 3
    retry_delay: float = 300.0  # 5 minutes

    @field_validator("send_time")
    @classmethod
    def _check_send_time(cls, value: str) -> str:
        value = value.strip()
        if not SEND_TIME_PATTERN.match(value):
            raise ValueError(f"Invalid time format: {value}. Expected format: HH:MM")
        return value

    @field_validator("timezone")
    @classmethod
    def _check_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {value}") from e
        return value


class CredentialsConfig(BaseModel):
    """Credential persistence backend."""

    backend: Literal["file", "sqlite", "mongo"] = "file"
    path: Path = Field(default_factory=get_tokens_path)
    database_path: Path = Field(default_factory=get_credentials_database_path)
    mongodb_uri: SecretStr | None = None
    mongodb_db_name: str = "devocional_bot"
    mongodb_collection: str = "whatsapp_auth"

    @model_validator(mode="after")
    def _require_mongo_uri(self) -> "CredentialsConfig":
        if self.backend == "mongo" and self.mongodb_uri is None:
            raise ValueError("MONGODB_URI is required for the mongo credentials backend")
        return self


class ReadingsConfig(BaseModel):
    """Reading plan source and message formatting."""

    path: Path = Field(default_factory=get_readings_path)
    bible_version: str = "NVI-PT"
    footer_url: str | None = "https://bit.ly/devocional-restauracao"


class ShortenerConfig(BaseModel):
    """Outbound link shortening."""

    enabled: bool = True
    timeout: float = 5.0


class RecipientsConfig(BaseModel):
    """Recipient list storage."""

    database_path: Path = Field(default_factory=get_recipients_database_path)


class ServerConfig(BaseModel):
    """Configuration for HTTP server."""

    host: str = "0.0.0.0"
    port: int = 3000
    docs: bool = False


class BotConfig(BaseModel):
    """Root configuration model."""

    session: SessionConfig = Field(default_factory=SessionConfig)
    delivery: DeliveryConfig = Field(default_factory=DeliveryConfig)
    credentials: CredentialsConfig = Field(default_factory=CredentialsConfig)
    readings: ReadingsConfig = Field(default_factory=ReadingsConfig)
    shortener: ShortenerConfig = Field(default_factory=ShortenerConfig)
    recipients: RecipientsConfig = Field(default_factory=RecipientsConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
