"""Tests for the session state machine."""

import asyncio

import pytest

from devocional.credentials import CredentialRecord, FileCredentialStore, StoreUnavailable
from devocional.session import (
    Authenticated,
    ConnectionState,
    CredentialsRevoked,
    CredentialsUpdated,
    Disconnected,
    DisconnectReason,
    PairingArtifact,
    SessionManager,
    TransportDisconnected,
)

from tests.conftest import FakeSleep, FakeTransport

SESSION = "devocional-bot"


@pytest.fixture
async def paired_store(file_store: FileCredentialStore) -> FileCredentialStore:
    await file_store.save_credentials(SESSION, CredentialRecord({"me": {"id": "123"}}))
    return file_store


def make_manager(transport, store, sleep) -> tuple[SessionManager, list[tuple[str, str]]]:
    manager = SessionManager(transport, store, SESSION, sleep=sleep)
    transitions: list[tuple[str, str]] = []
    manager.on_state_change(lambda prev, cur: transitions.append((prev.value, cur.value)))
    return manager, transitions


class TestStartAndPairing:
    async def test_paired_session_opens(
        self, fake_transport: FakeTransport, paired_store, fake_sleep: FakeSleep
    ):
        manager, transitions = make_manager(fake_transport, paired_store, fake_sleep)

        await manager.start()
        await manager.drain()

        assert manager.state == ConnectionState.OPEN
        assert manager.status() == {"connected": True, "state": "open"}
        assert transitions == [("disconnected", "connecting"), ("connecting", "open")]
        assert fake_transport.connect_calls[0].data == {"me": {"id": "123"}}
        await manager.stop()

    async def test_unpaired_session_awaits_pairing(
        self, fake_transport: FakeTransport, file_store, fake_sleep: FakeSleep
    ):
        manager, transitions = make_manager(fake_transport, file_store, fake_sleep)
        artifacts: list[PairingArtifact] = []
        manager.on_pairing(artifacts.append)

        await manager.start()
        await manager.drain()

        assert manager.state == ConnectionState.AWAITING_PAIRING
        assert [a.code for a in artifacts] == ["code-1"]
        assert artifacts[0].generation == 1
        assert manager.pairing is artifacts[0]
        assert transitions[-1] == ("connecting", "awaiting_pairing")
        await manager.stop()

    async def test_pairing_completes_and_saves_credentials(
        self, fake_transport: FakeTransport, file_store, fake_sleep: FakeSleep
    ):
        manager, _ = make_manager(fake_transport, file_store, fake_sleep)
        await manager.start()
        await manager.drain()

        fake_transport.emit(CredentialsUpdated(CredentialRecord({"me": {"id": "9"}})))
        fake_transport.emit(Authenticated())
        await manager.drain()

        assert manager.state == ConnectionState.OPEN
        assert manager.pairing is None
        assert (await file_store.load_credentials(SESSION)).data == {"me": {"id": "9"}}
        await manager.stop()

    async def test_new_pairing_code_supersedes_old(
        self, fake_transport: FakeTransport, file_store, fake_sleep: FakeSleep
    ):
        manager, _ = make_manager(fake_transport, file_store, fake_sleep)
        await manager.start()
        fake_transport.emit_pairing("code-refresh")
        await manager.drain()

        assert manager.pairing is not None
        assert manager.pairing.code == "code-refresh"
        assert manager.pairing.generation == 2
        await manager.stop()

    async def test_pairing_ignored_while_open(
        self, fake_transport: FakeTransport, paired_store, fake_sleep: FakeSleep
    ):
        manager, _ = make_manager(fake_transport, paired_store, fake_sleep)
        artifacts: list[PairingArtifact] = []
        manager.on_pairing(artifacts.append)
        await manager.start()
        await manager.drain()

        fake_transport.emit_pairing("late-code")
        await manager.drain()

        assert manager.state == ConnectionState.OPEN
        assert artifacts == []
        assert manager.pairing is None
        await manager.stop()

    async def test_start_is_idempotent(
        self, fake_transport: FakeTransport, paired_store, fake_sleep: FakeSleep
    ):
        manager, _ = make_manager(fake_transport, paired_store, fake_sleep)

        await manager.start()
        await manager.drain()
        state = await manager.start()

        assert state == ConnectionState.OPEN
        assert len(fake_transport.connect_calls) == 1
        await manager.stop()

    async def test_store_unavailable_leaves_session_disconnected(
        self, fake_transport: FakeTransport, file_store, fake_sleep: FakeSleep, monkeypatch
    ):
        async def broken_load(session_id):
            raise StoreUnavailable("disk gone")

        monkeypatch.setattr(file_store, "load_credentials", broken_load)
        manager, transitions = make_manager(fake_transport, file_store, fake_sleep)

        state = await manager.start()
        await manager.drain()

        assert state == ConnectionState.DISCONNECTED
        assert fake_transport.connect_calls == []
        assert transitions == [
            ("disconnected", "connecting"),
            ("connecting", "disconnected"),
        ]
        assert fake_sleep.delays == []
        await manager.stop()


class TestSend:
    async def test_send_requires_open_session(
        self, fake_transport: FakeTransport, paired_store, fake_sleep: FakeSleep
    ):
        fake_transport.auto_authenticate = False
        manager, _ = make_manager(fake_transport, paired_store, fake_sleep)
        await manager.start()
        await manager.drain()
        assert manager.state == ConnectionState.CONNECTING

        assert await manager.send("grp1", "hello") is False
        assert fake_transport.sent == []
        await manager.stop()

    async def test_send_when_open(
        self, fake_transport: FakeTransport, paired_store, fake_sleep: FakeSleep
    ):
        manager, _ = make_manager(fake_transport, paired_store, fake_sleep)
        await manager.start()
        await manager.drain()

        assert await manager.send("grp1", "hello") is True
        assert fake_transport.sent == [("grp1", "hello")]
        await manager.stop()

    async def test_transport_exception_becomes_false(
        self, fake_transport: FakeTransport, paired_store, fake_sleep: FakeSleep
    ):
        manager, _ = make_manager(fake_transport, paired_store, fake_sleep)
        await manager.start()
        await manager.drain()
        fake_transport.send_error = RuntimeError("socket closed")

        assert await manager.send("grp1", "hello") is False
        await manager.stop()

    async def test_send_before_start_is_false(
        self, fake_transport: FakeTransport, file_store, fake_sleep: FakeSleep
    ):
        manager, _ = make_manager(fake_transport, file_store, fake_sleep)

        assert await manager.send("grp1", "hello") is False
        assert fake_transport.sent == []

    async def test_send_to_many_counts_results(
        self, fake_transport: FakeTransport, paired_store, fake_sleep: FakeSleep
    ):
        manager, _ = make_manager(fake_transport, paired_store, fake_sleep)
        await manager.start()
        await manager.drain()
        results = iter([True, False, True])

        async def flaky_send(destination, text):
            fake_transport.sent.append((destination, text))
            return next(results)

        fake_transport.send_text = flaky_send

        summary = await manager.send_to_many(["a", "b", "c"], "hi")

        assert (summary.success_count, summary.failure_count) == (2, 1)
        assert summary.delivered == ["a", "c"]
        assert not summary.all_succeeded
        assert [d for d, _ in fake_transport.sent] == ["a", "b", "c"]
        await manager.stop()


class TestDisconnects:
    async def test_soft_disconnect_reconnects_with_same_credentials(
        self, fake_transport: FakeTransport, paired_store, fake_sleep: FakeSleep
    ):
        manager, transitions = make_manager(fake_transport, paired_store, fake_sleep)
        await manager.start()
        await manager.drain()

        fake_transport.emit(Disconnected(DisconnectReason.CONNECTION_LOST))
        await manager.drain()

        assert manager.state == ConnectionState.OPEN
        assert fake_sleep.delays == [5.0]
        assert len(fake_transport.connect_calls) == 2
        assert fake_transport.connect_calls[1].data == {"me": {"id": "123"}}
        assert ("open", "connecting") in transitions
        assert not (await paired_store.load_credentials(SESSION)).is_empty
        await manager.stop()

    async def test_soft_disconnect_drops_stale_pairing_code(
        self, fake_transport: FakeTransport, file_store
    ):
        gate = asyncio.Event()

        async def held_sleep(delay: float) -> None:
            await gate.wait()

        manager, _ = make_manager(fake_transport, file_store, held_sleep)
        await manager.start()
        await manager.drain()
        assert manager.pairing is not None

        fake_transport.emit(Disconnected(DisconnectReason.CONNECTION_LOST))
        for _ in range(5):
            await asyncio.sleep(0)

        assert manager.state == ConnectionState.CONNECTING
        assert manager.pairing is None

        gate.set()
        await manager.drain()

        assert manager.state == ConnectionState.AWAITING_PAIRING
        assert manager.pairing.code == "code-2"
        await manager.stop()

    async def test_logged_out_forces_repairing(
        self, fake_transport: FakeTransport, paired_store, fake_sleep: FakeSleep
    ):
        manager, transitions = make_manager(fake_transport, paired_store, fake_sleep)
        await manager.start()
        await manager.drain()
        await paired_store.set_keys(SESSION, "pre-key", {"1": b"k"})
        transitions.clear()

        fake_transport.emit(Disconnected(DisconnectReason.LOGGED_OUT))
        await manager.drain()

        assert transitions[:2] == [
            ("open", "disconnected"),
            ("disconnected", "connecting"),
        ]
        assert manager.state == ConnectionState.AWAITING_PAIRING
        assert fake_sleep.delays == [2.0]
        # Cleared before the next connect
        assert fake_transport.connect_calls[1].is_empty
        assert (await paired_store.load_credentials(SESSION)).is_empty
        assert await paired_store.get_keys(SESSION, "pre-key", ["1"]) == {}
        assert fake_transport.close_calls >= 1
        await manager.stop()

    async def test_revoked_on_connect_forces_repairing(
        self, fake_transport: FakeTransport, paired_store, fake_sleep: FakeSleep
    ):
        fake_transport.connect_error = CredentialsRevoked("401")
        manager, _ = make_manager(fake_transport, paired_store, fake_sleep)

        await manager.start()
        await manager.drain()

        assert manager.state == ConnectionState.AWAITING_PAIRING
        assert fake_sleep.delays == [2.0]
        assert (await paired_store.load_credentials(SESSION)).is_empty
        await manager.stop()

    async def test_transient_connect_error_retries_softly(
        self, fake_transport: FakeTransport, paired_store, fake_sleep: FakeSleep
    ):
        fake_transport.connect_error = TransportDisconnected("reset by peer")
        manager, _ = make_manager(fake_transport, paired_store, fake_sleep)

        await manager.start()
        await manager.drain()

        assert manager.state == ConnectionState.OPEN
        assert fake_sleep.delays == [5.0]
        assert not (await paired_store.load_credentials(SESSION)).is_empty
        await manager.stop()

    async def test_force_reconnect_clears_credentials(
        self, fake_transport: FakeTransport, paired_store, fake_sleep: FakeSleep
    ):
        manager, _ = make_manager(fake_transport, paired_store, fake_sleep)
        await manager.start()
        await manager.drain()

        await manager.force_reconnect()
        await manager.drain()

        assert manager.state == ConnectionState.AWAITING_PAIRING
        assert (await paired_store.load_credentials(SESSION)).is_empty
        await manager.stop()


class TestStop:
    async def test_stop_cancels_pending_reconnect(
        self, fake_transport: FakeTransport, paired_store
    ):
        sleeping = asyncio.Event()

        async def blocking_sleep(delay: float) -> None:
            sleeping.set()
            await asyncio.Event().wait()

        manager, transitions = make_manager(fake_transport, paired_store, blocking_sleep)
        await manager.start()
        for _ in range(10):
            await asyncio.sleep(0)
        fake_transport.emit(Disconnected(DisconnectReason.TIMED_OUT))
        await asyncio.wait_for(sleeping.wait(), timeout=1)

        await manager.stop()

        assert manager.state == ConnectionState.DISCONNECTED
        assert len(fake_transport.connect_calls) == 1
        assert transitions[-2:] == [
            ("connecting", "closing"),
            ("closing", "disconnected"),
        ]

    async def test_events_after_stop_are_ignored(
        self, fake_transport: FakeTransport, paired_store, fake_sleep: FakeSleep
    ):
        manager, _ = make_manager(fake_transport, paired_store, fake_sleep)
        await manager.start()
        await manager.drain()
        await manager.stop()

        fake_transport.emit(Authenticated())
        await asyncio.sleep(0)

        assert manager.state == ConnectionState.DISCONNECTED

    async def test_stop_tolerates_close_errors(
        self, fake_transport: FakeTransport, paired_store, fake_sleep: FakeSleep
    ):
        async def broken_close() -> None:
            raise RuntimeError("already closed")

        fake_transport.close = broken_close
        manager, _ = make_manager(fake_transport, paired_store, fake_sleep)
        await manager.start()
        await manager.drain()

        await manager.stop()

        assert manager.state == ConnectionState.DISCONNECTED
