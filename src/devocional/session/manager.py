"""Session lifecycle manager.

Owns one logical transport connection and runs the connection state machine:

    disconnected -> connecting -> awaiting_pairing -> open -> closing

Transport callbacks only enqueue events. A single consumer task applies
them, and every transition happens under one lock, so transitions never
interleave. Events are tagged with the connection epoch they arrived in;
events from a connection that has since been torn down are dropped.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from typing import Any

from devocional.credentials.base import CredentialStore, KeyStoreAdapter
from devocional.credentials.types import StoreUnavailable
from devocional.session.transport import (
    Authenticated,
    CredentialsRevoked,
    CredentialsUpdated,
    Disconnected,
    DisconnectReason,
    Transport,
    TransportEvent,
)
from devocional.session.types import (
    ConnectionState,
    PairingArtifact,
    PairingObserver,
    SendSummary,
    StateObserver,
)

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[Any]]

DEFAULT_RECONNECT_DELAY = 5.0
DEFAULT_SETTLE_DELAY = 2.0

# States in which transport events are meaningful
_LIVE_STATES = frozenset(
    {
        ConnectionState.CONNECTING,
        ConnectionState.AWAITING_PAIRING,
        ConnectionState.OPEN,
    }
)


@dataclass(frozen=True)
class _PairingCode:
    code: str


@dataclass(frozen=True)
class _Queued:
    epoch: int
    event: TransportEvent | _PairingCode


class SessionManager:
    """Connection state machine over a Transport and a CredentialStore."""

    def __init__(
        self,
        transport: Transport,
        store: CredentialStore,
        session_id: str,
        *,
        reconnect_delay: float = DEFAULT_RECONNECT_DELAY,
        settle_delay: float = DEFAULT_SETTLE_DELAY,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self._transport = transport
        self._store = store
        self._session_id = session_id
        self._reconnect_delay = reconnect_delay
        self._settle_delay = settle_delay
        self._sleep = sleep

        self._state = ConnectionState.DISCONNECTED
        self._epoch = 0
        self._generation = 0
        self._pairing: PairingArtifact | None = None
        self._transport_live = False

        self._lock = asyncio.Lock()
        self._events: asyncio.Queue[_Queued] = asyncio.Queue()
        self._worker: asyncio.Task[None] | None = None
        self._reconnect_task: asyncio.Task[None] | None = None

        self._pairing_observer: PairingObserver | None = None
        self._state_observer: StateObserver | None = None

        transport.on_event(self._enqueue_event)
        transport.on_pairing(self._enqueue_pairing)

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def pairing(self) -> PairingArtifact | None:
        """The current pairing artifact, if the session is waiting for one."""
        return self._pairing

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def store(self) -> CredentialStore:
        return self._store

    def on_pairing(self, observer: PairingObserver | None) -> None:
        self._pairing_observer = observer

    def on_state_change(self, observer: StateObserver | None) -> None:
        self._state_observer = observer

    def status(self) -> dict[str, Any]:
        return {
            "connected": self._state == ConnectionState.OPEN,
            "state": self._state.value,
        }

    # -- lifecycle ---------------------------------------------------------

    async def start(self) -> ConnectionState:
        """Connect using stored credentials. Idempotent.

        Returns the state after the connect attempt was issued. Outcomes
        reported later by the transport arrive as events.
        """
        self._ensure_worker()
        async with self._lock:
            if self._state != ConnectionState.DISCONNECTED:
                return self._state
            await self._connect()
            return self._state

    async def stop(self) -> None:
        """Close the connection and cancel any pending reconnect."""
        await self._cancel_reconnect()
        async with self._lock:
            self._epoch += 1
            if self._state != ConnectionState.DISCONNECTED or self._transport_live:
                self._set_state(ConnectionState.CLOSING)
                await self._close_transport()
            self._pairing = None
            self._set_state(ConnectionState.DISCONNECTED)
        await self._stop_worker()
        logger.info("session_stopped", extra={"session.id": self._session_id})

    async def force_reconnect(self) -> None:
        """Discard stored credentials and start a fresh pairing."""
        self._ensure_worker()
        await self._cancel_reconnect()
        async with self._lock:
            logger.info("session_force_reconnect", extra={"session.id": self._session_id})
            await self._reset_identity()

    async def drain(self) -> None:
        """Wait until queued events and any pending reconnect have been applied."""
        while True:
            await self._events.join()
            task = self._reconnect_task
            if task is not None and not task.done():
                try:
                    await task
                except asyncio.CancelledError:
                    pass
                continue
            if self._events.empty():
                return

    # -- sending -----------------------------------------------------------

    async def send(self, destination: str, text: str) -> bool:
        """Send a text message. Never raises.

        Returns False without touching the transport unless the session is open.
        """
        if self._state != ConnectionState.OPEN:
            logger.warning(
                "send_rejected_not_open",
                extra={"messaging.chat_id": destination, "session.state": self._state.value},
            )
            return False
        try:
            sent = await self._transport.send_text(destination, text)
        except Exception as e:
            logger.error(
                "send_failed",
                extra={"messaging.chat_id": destination, "error.message": str(e)},
            )
            return False
        if not sent:
            logger.warning("send_refused", extra={"messaging.chat_id": destination})
            return False
        logger.info("message_sent", extra={"messaging.chat_id": destination})
        return True

    async def send_to_many(self, destinations: Iterable[str], text: str) -> SendSummary:
        """Send the same text to each destination, one after another."""
        summary = SendSummary()
        for destination in destinations:
            if await self.send(destination, text):
                summary.success_count += 1
                summary.delivered.append(destination)
            else:
                summary.failure_count += 1
        return summary

    # -- transport callbacks -------------------------------------------------

    def _enqueue_event(self, event: TransportEvent) -> None:
        self._events.put_nowait(_Queued(self._epoch, event))

    def _enqueue_pairing(self, code: str) -> None:
        self._events.put_nowait(_Queued(self._epoch, _PairingCode(code)))

    def _ensure_worker(self) -> None:
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._consume(), name="session-events")

    async def _stop_worker(self) -> None:
        worker, self._worker = self._worker, None
        if worker is None:
            return
        worker.cancel()
        try:
            await worker
        except asyncio.CancelledError:
            pass
        # Anything left belongs to a connection that no longer exists
        while not self._events.empty():
            self._events.get_nowait()
            self._events.task_done()

    async def _consume(self) -> None:
        while True:
            item = await self._events.get()
            try:
                async with self._lock:
                    await self._apply(item)
            except Exception:
                logger.exception("session_event_failed")
            finally:
                self._events.task_done()

    async def _apply(self, item: _Queued) -> None:
        if item.epoch != self._epoch or self._state not in _LIVE_STATES:
            logger.debug(
                "session_event_stale",
                extra={"session.event": type(item.event).__name__},
            )
            return

        event = item.event
        if isinstance(event, _PairingCode):
            self._handle_pairing(event.code)
        elif isinstance(event, Authenticated):
            self._handle_authenticated()
        elif isinstance(event, Disconnected):
            await self._handle_disconnected(event)
        elif isinstance(event, CredentialsUpdated):
            await self._handle_credentials_updated(event)

    def _handle_pairing(self, code: str) -> None:
        if self._state == ConnectionState.OPEN:
            logger.debug("pairing_ignored_while_open")
            return
        self._generation += 1
        self._pairing = PairingArtifact(code=code, generation=self._generation)
        self._set_state(ConnectionState.AWAITING_PAIRING)
        logger.info("pairing_required", extra={"pairing.generation": self._generation})
        if self._pairing_observer is not None:
            try:
                self._pairing_observer(self._pairing)
            except Exception:
                logger.exception("pairing_observer_failed")

    def _handle_authenticated(self) -> None:
        if self._state == ConnectionState.OPEN:
            return
        self._pairing = None
        self._set_state(ConnectionState.OPEN)
        logger.info("session_open", extra={"session.id": self._session_id})

    async def _handle_disconnected(self, event: Disconnected) -> None:
        logger.warning(
            "session_disconnected",
            extra={
                "session.id": self._session_id,
                "disconnect.reason": event.reason.value,
                "disconnect.detail": event.detail,
            },
        )
        if event.reason.revokes_credentials:
            await self._reset_identity()
            return
        self._epoch += 1
        self._pairing = None
        self._set_state(ConnectionState.CONNECTING)
        self._schedule_connect(self._reconnect_delay)

    async def _handle_credentials_updated(self, event: CredentialsUpdated) -> None:
        try:
            await self._store.save_credentials(self._session_id, event.record)
        except StoreUnavailable as e:
            logger.error(
                "credentials_save_failed",
                extra={"session.id": self._session_id, "error.message": str(e)},
            )

    # -- transitions (caller holds the lock) ---------------------------------

    async def _connect(self) -> None:
        self._epoch += 1
        self._set_state(ConnectionState.CONNECTING)
        try:
            credentials = await self._store.load_credentials(self._session_id)
        except StoreUnavailable as e:
            logger.error(
                "credentials_load_failed",
                extra={"session.id": self._session_id, "error.message": str(e)},
            )
            self._set_state(ConnectionState.DISCONNECTED)
            return

        logger.info(
            "session_connecting",
            extra={
                "session.id": self._session_id,
                "transport.name": self._transport.name,
                "credentials.present": not credentials.is_empty,
            },
        )
        self._transport_live = True
        try:
            await self._transport.connect(
                credentials, KeyStoreAdapter(self._store, self._session_id)
            )
        except CredentialsRevoked as e:
            self._enqueue_event(Disconnected(DisconnectReason.LOGGED_OUT, str(e)))
        except Exception as e:
            self._enqueue_event(Disconnected(DisconnectReason.CONNECTION_LOST, str(e)))

    async def _reset_identity(self) -> None:
        """Tear down, clear stored credentials, then reconnect after settling."""
        self._epoch += 1
        self._set_state(ConnectionState.DISCONNECTED)
        self._pairing = None
        await self._close_transport()
        try:
            await self._store.clear(self._session_id)
        except StoreUnavailable as e:
            logger.error(
                "credentials_clear_failed",
                extra={"session.id": self._session_id, "error.message": str(e)},
            )
            return
        self._schedule_connect(self._settle_delay)

    async def _close_transport(self) -> None:
        if not self._transport_live:
            return
        self._transport_live = False
        try:
            await self._transport.close()
        except Exception as e:
            logger.warning("transport_close_failed", extra={"error.message": str(e)})

    def _schedule_connect(self, delay: float) -> None:
        if self._reconnect_task is not None and not self._reconnect_task.done():
            self._reconnect_task.cancel()
        self._reconnect_task = asyncio.create_task(
            self._delayed_connect(delay, self._epoch), name="session-reconnect"
        )

    async def _delayed_connect(self, delay: float, epoch: int) -> None:
        await self._sleep(delay)
        async with self._lock:
            if epoch != self._epoch:
                return
            await self._close_transport()
            await self._connect()

    async def _cancel_reconnect(self) -> None:
        task, self._reconnect_task = self._reconnect_task, None
        if task is None or task.done() or task is asyncio.current_task():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    def _set_state(self, new_state: ConnectionState) -> None:
        previous = self._state
        if previous == new_state:
            return
        self._state = new_state
        logger.debug(
            "session_state_changed",
            extra={"session.from": previous.value, "session.to": new_state.value},
        )
        if self._state_observer is not None:
            try:
                self._state_observer(previous, new_state)
            except Exception:
                logger.exception("state_observer_failed")
