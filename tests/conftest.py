"""Shared test fixtures and fakes."""

import asyncio
import json
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest

from devocional.config.models import (
    BotConfig,
    CredentialsConfig,
    DeliveryConfig,
    ReadingsConfig,
    RecipientsConfig,
    ShortenerConfig,
)
from devocional.credentials import FileCredentialStore
from devocional.credentials.base import KeyStoreAdapter
from devocional.credentials.types import CredentialRecord
from devocional.db.engine import Database
from devocional.session.transport import Authenticated, Transport

# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point DEVOCIONAL_HOME at a temp dir and clear env overrides."""
    from devocional.config.paths import get_home

    home = tmp_path / "home"
    monkeypatch.setenv("DEVOCIONAL_HOME", str(home))
    for var in (
        "WHATSAPP_SESSION_NAME",
        "WHATSAPP_TRANSPORT",
        "GROUP_CHAT_ID",
        "SEND_TIME",
        "TIMEZONE",
        "DATA_PATH",
        "SERVER_HOST",
        "SERVER_PORT",
        "TOKENS_DIR",
        "CREDENTIALS_BACKEND",
        "MONGODB_URI",
        "MONGODB_DB_NAME",
        "MONGODB_COLLECTION_NAME",
        "URL_SHORTENER_ENABLED",
    ):
        monkeypatch.delenv(var, raising=False)
    get_home.cache_clear()
    yield home
    get_home.cache_clear()


@pytest.fixture
def readings_file(tmp_path: Path) -> Path:
    path = tmp_path / "leituras.json"
    path.write_text(
        json.dumps(
            [
                {"date": "2026-01-02", "reading": "Gênesis 4-6"},
                {"date": "2026-01-03", "reading": "Gênesis 7-9"},
                {
                    "date": "2026-01-04",
                    "at1": "Gênesis 10",
                    "at2": "Salmos 3",
                    "nt": "Mateus 4",
                },
            ]
        ),
        encoding="utf-8",
    )
    return path


@pytest.fixture
def bot_config(tmp_path: Path, readings_file: Path) -> BotConfig:
    """Configuration with every path under tmp_path and no network."""
    return BotConfig(
        delivery=DeliveryConfig(
            group_chat_id="group-1@g.us",
            send_time="06:00",
            timezone="America/Sao_Paulo",
        ),
        credentials=CredentialsConfig(backend="file", path=tmp_path / "tokens"),
        readings=ReadingsConfig(path=readings_file),
        shortener=ShortenerConfig(enabled=False),
        recipients=RecipientsConfig(database_path=tmp_path / "recipients.db"),
    )


# =============================================================================
# Storage Fixtures
# =============================================================================


@pytest.fixture
def file_store(tmp_path: Path) -> FileCredentialStore:
    return FileCredentialStore(tmp_path / "tokens")


@pytest.fixture
async def database(tmp_path: Path) -> AsyncGenerator[Database, None]:
    db = Database(database_path=tmp_path / "test.db")
    await db.connect()
    yield db
    await db.disconnect()


# =============================================================================
# Fakes
# =============================================================================


class FakeSleep:
    """Records requested delays and returns immediately."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


@pytest.fixture
def fake_sleep() -> FakeSleep:
    return FakeSleep()


class FakeTransport(Transport):
    """Scriptable transport.

    By default connect() authenticates when credentials are present and
    emits a pairing code when they are empty.
    """

    def __init__(self) -> None:
        super().__init__()
        self.connect_calls: list[CredentialRecord] = []
        self.close_calls = 0
        self.sent: list[tuple[str, str]] = []
        self.send_result: bool = True
        self.refused: set[str] = set()
        self.send_error: Exception | None = None
        self.connect_error: Exception | None = None
        self.auto_authenticate = True
        self.keys: KeyStoreAdapter | None = None

    @property
    def name(self) -> str:
        return "fake"

    async def connect(self, credentials: CredentialRecord, keys: KeyStoreAdapter) -> None:
        self.connect_calls.append(credentials)
        self.keys = keys
        if self.connect_error is not None:
            error, self.connect_error = self.connect_error, None
            raise error
        if not self.auto_authenticate:
            return
        if credentials.is_empty:
            self.emit_pairing(f"code-{len(self.connect_calls)}")
        else:
            self.emit(Authenticated())

    async def send_text(self, destination: str, text: str) -> bool:
        self.sent.append((destination, text))
        if self.send_error is not None:
            raise self.send_error
        return self.send_result and destination not in self.refused

    async def close(self) -> None:
        self.close_calls += 1


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


# =============================================================================
# CLI Fixtures
# =============================================================================


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner(env={"NO_COLOR": "1"})
