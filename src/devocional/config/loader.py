"""Configuration loading from TOML files and environment variables."""

import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic import SecretStr

from devocional.config.models import BotConfig
from devocional.config.paths import get_config_path

# (section, key, environment variable)
ENV_OVERRIDES: list[tuple[str, str, str]] = [
    ("session", "name", "WHATSAPP_SESSION_NAME"),
    ("session", "transport", "WHATSAPP_TRANSPORT"),
    ("delivery", "group_chat_id", "GROUP_CHAT_ID"),
    ("delivery", "send_time", "SEND_TIME"),
    ("delivery", "timezone", "TIMEZONE"),
    ("readings", "path", "DATA_PATH"),
    ("server", "host", "SERVER_HOST"),
    ("server", "port", "SERVER_PORT"),
    ("credentials", "backend", "CREDENTIALS_BACKEND"),
    ("credentials", "mongodb_db_name", "MONGODB_DB_NAME"),
    ("credentials", "mongodb_collection", "MONGODB_COLLECTION_NAME"),
    ("shortener", "enabled", "URL_SHORTENER_ENABLED"),
]

SECRET_OVERRIDES: list[tuple[str, str, str]] = [
    ("credentials", "mongodb_uri", "MONGODB_URI"),
]


def _get_default_config_paths() -> list[Path]:
    """Get ordered list of default config file locations."""
    return [
        Path("config.toml"),  # Current directory
        get_config_path(),  # ~/.devocional/config.toml (or DEVOCIONAL_HOME)
        Path("/etc/devocional/config.toml"),  # System-wide
    ]


def _apply_env_overrides(config: dict[str, Any]) -> dict[str, Any]:
    """Overlay environment variables on the raw config.

    Environment wins over the file so container deployments can be tuned
    without editing the mounted config.
    """
    for section_key, key, env_var in ENV_OVERRIDES:
        value = os.environ.get(env_var)
        if value is None or value.strip() == "":
            continue
        section = config.setdefault(section_key, {})
        if key == "enabled":
            section[key] = value.strip().lower() != "false"
        else:
            section[key] = value.strip()

    for section_key, key, env_var in SECRET_OVERRIDES:
        value = os.environ.get(env_var)
        if value:
            config.setdefault(section_key, {})[key] = SecretStr(value)

    return config


def load_config(path: Path | None = None) -> BotConfig:
    """Load configuration from TOML file.

    Args:
        path: Explicit path to config file. If None, searches default locations
            and falls back to defaults plus environment when none exists.

    Raises:
        FileNotFoundError: If an explicit path does not exist.
        ValueError: If config file is invalid.
    """
    config_path: Path | None = None

    if path is not None:
        config_path = Path(path).expanduser()
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
    else:
        for default_path in _get_default_config_paths():
            expanded = default_path.expanduser()
            if expanded.exists():
                config_path = expanded
                break

    raw_config: dict[str, Any] = {}
    if config_path is not None:
        with config_path.open("rb") as f:
            raw_config = tomllib.load(f)

    raw_config = _apply_env_overrides(raw_config)

    return BotConfig.model_validate(raw_config)


def get_default_config() -> BotConfig:
    """Get a default configuration for development/testing."""
    return BotConfig()
