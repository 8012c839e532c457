"""Tests for configuration loading and models."""

from pathlib import Path

import pytest
from pydantic import SecretStr, ValidationError

from devocional.config.loader import get_default_config, load_config
from devocional.config.models import (
    BotConfig,
    CredentialsConfig,
    DeliveryConfig,
)


class TestDeliveryConfig:
    """Tests for DeliveryConfig model."""

    def test_defaults(self):
        config = DeliveryConfig()
        assert config.send_time == "07:00"
        assert config.timezone == "America/Sao_Paulo"
        assert config.max_retries == 3
        assert config.retry_delay == 300.0
        assert config.group_chat_id is None

    def test_send_time_is_trimmed(self):
        assert DeliveryConfig(send_time=" 6:30 ").send_time == "6:30"

    def test_bad_send_time_shape(self):
        with pytest.raises(ValidationError, match="Expected format: HH:MM"):
            DeliveryConfig(send_time="6h30")

    def test_unknown_timezone(self):
        with pytest.raises(ValidationError, match="Unknown timezone"):
            DeliveryConfig(timezone="Nowhere/Land")


class TestCredentialsConfig:
    """Tests for CredentialsConfig model."""

    def test_file_backend_is_default(self, isolated_home: Path):
        config = CredentialsConfig()
        assert config.backend == "file"
        assert config.path == isolated_home / "tokens"

    def test_tokens_dir_env(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("TOKENS_DIR", str(tmp_path / "legacy"))
        assert CredentialsConfig().path == tmp_path / "legacy" / "tokens"

    def test_mongo_requires_uri(self):
        with pytest.raises(ValidationError, match="MONGODB_URI is required"):
            CredentialsConfig(backend="mongo")

    def test_mongo_uri_is_secret(self):
        config = CredentialsConfig(
            backend="mongo", mongodb_uri=SecretStr("mongodb://u:p@localhost")
        )
        assert "u:p" not in repr(config)
        assert config.mongodb_collection == "whatsapp_auth"

    def test_unknown_backend(self):
        with pytest.raises(ValidationError):
            CredentialsConfig(backend="redis")


class TestBotConfig:
    def test_sections_default(self):
        config = BotConfig()
        assert config.session.name == "devocional-bot"
        assert config.session.reconnect_delay == 5.0
        assert config.session.settle_delay == 2.0
        assert config.delivery.enabled is True

    def test_get_default_config(self):
        config = get_default_config()
        assert config.session.transport == "log"
        assert config.server.port == 3000


class TestLoadConfig:
    """Tests for load_config."""

    def test_load_from_file(self, tmp_path: Path):
        path = tmp_path / "config.toml"
        path.write_text("""
[session]
name = "igreja"
reconnect_delay = 1.5

[delivery]
group_chat_id = "123@g.us"
send_time = "05:45"
enabled = false
""")
        config = load_config(path)
        assert config.session.name == "igreja"
        assert config.session.reconnect_delay == 1.5
        assert config.delivery.group_chat_id == "123@g.us"
        assert config.delivery.send_time == "05:45"
        assert config.delivery.enabled is False

    def test_explicit_missing_path(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.toml")

    def test_home_config_is_found(self, isolated_home: Path):
        isolated_home.mkdir(parents=True)
        (isolated_home / "config.toml").write_text('[server]\nport = 4000\n')

        assert load_config().server.port == 4000

    def test_no_file_uses_defaults(self):
        config = load_config()
        assert config.session.name == "devocional-bot"
        assert config.credentials.backend == "file"

    def test_env_overrides_file(self, tmp_path: Path, monkeypatch):
        path = tmp_path / "config.toml"
        path.write_text('[delivery]\nsend_time = "05:00"\n')
        monkeypatch.setenv("SEND_TIME", "06:15")
        monkeypatch.setenv("GROUP_CHAT_ID", "999@g.us")
        monkeypatch.setenv("SERVER_PORT", "3100")
        monkeypatch.setenv("URL_SHORTENER_ENABLED", "false")

        config = load_config(path)

        assert config.delivery.send_time == "06:15"
        assert config.delivery.group_chat_id == "999@g.us"
        assert config.server.port == 3100
        assert config.shortener.enabled is False

    def test_blank_env_is_ignored(self, monkeypatch):
        monkeypatch.setenv("TIMEZONE", "  ")
        assert load_config().delivery.timezone == "America/Sao_Paulo"

    def test_mongo_from_env(self, monkeypatch):
        monkeypatch.setenv("CREDENTIALS_BACKEND", "mongo")
        monkeypatch.setenv("MONGODB_URI", "mongodb://user:secret@db:27017")
        monkeypatch.setenv("MONGODB_DB_NAME", "bot")

        config = load_config()

        assert config.credentials.backend == "mongo"
        assert config.credentials.mongodb_uri is not None
        assert (
            config.credentials.mongodb_uri.get_secret_value()
            == "mongodb://user:secret@db:27017"
        )
        assert config.credentials.mongodb_db_name == "bot"

    def test_invalid_values_raise(self, monkeypatch):
        monkeypatch.setenv("SEND_TIME", "noon")
        with pytest.raises(ValidationError):
            load_config()
