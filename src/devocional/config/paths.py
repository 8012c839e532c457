"""Centralized path management for the devotional bot.

All state (config, credentials, databases, logs) lives under a single base
directory. The base directory can be overridden with the DEVOCIONAL_HOME
environment variable.

Default locations:
- Linux/macOS: ~/.devocional
- Windows: %USERPROFILE%\\.devocional
"""

import os
from functools import lru_cache
from pathlib import Path

ENV_VAR = "DEVOCIONAL_HOME"


@lru_cache(maxsize=1)
def get_home() -> Path:
    """Get the base directory for all bot data.

    Resolution order:
    1. DEVOCIONAL_HOME environment variable (if set)
    2. Platform default (~/.devocional)
    """
    if env_home := os.environ.get(ENV_VAR):
        return Path(env_home).expanduser().resolve()

    return Path.home() / ".devocional"


def get_config_path() -> Path:
    """Get the default config file path."""
    return get_home() / "config.toml"


def get_data_path() -> Path:
    """Get the data directory (databases, reading plan)."""
    return get_home() / "data"


def get_readings_path() -> Path:
    """Get the default reading plan file."""
    return get_data_path() / "leituras.json"


def get_tokens_path() -> Path:
    """Get the default root of the file-backed credential tree.

    Honors TOKENS_DIR so existing deployments keep their paired session.
    """
    if tokens_dir := os.environ.get("TOKENS_DIR"):
        return Path(tokens_dir).expanduser() / "tokens"
    return get_home() / "tokens"


def get_credentials_database_path() -> Path:
    """Get the SQLite database used by the SQL credential backend."""
    return get_data_path() / "whatsapp_auth.db"


def get_recipients_database_path() -> Path:
    """Get the SQLite database holding delivery recipients."""
    return get_data_path() / "recipients.db"


def get_logs_path() -> Path:
    """Get the default logs directory path."""
    return get_home() / "logs"
