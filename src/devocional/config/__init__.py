"""Configuration module."""

from devocional.config.loader import get_default_config, load_config
from devocional.config.models import (
    BotConfig,
    ConfigError,
    CredentialsConfig,
    DeliveryConfig,
    ReadingsConfig,
    RecipientsConfig,
    ServerConfig,
    SessionConfig,
    ShortenerConfig,
)
from devocional.config.paths import get_config_path, get_home

__all__ = [
    "BotConfig",
    "ConfigError",
    "CredentialsConfig",
    "DeliveryConfig",
    "ReadingsConfig",
    "RecipientsConfig",
    "ServerConfig",
    "SessionConfig",
    "ShortenerConfig",
    "get_config_path",
    "get_default_config",
    "get_home",
    "load_config",
]
