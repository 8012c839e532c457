"""Daily delivery scheduler with bounded retries.

The scheduler owns one timer task. When the configured local time arrives it
calls the delivery task; a False result or an exception is retried a fixed
number of times at a fixed spacing. Missed fire times are not caught up.

At most one retry loop is pending at a time. A manual trigger that succeeds
ends it, and the next daily firing replaces it.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta
from typing import Any

from devocional.scheduling.types import (
    AttemptOutcome,
    ScheduleDescriptor,
    SendAttempt,
)

logger = logging.getLogger(__name__)

DeliveryTask = Callable[[], Awaitable[bool]]
SleepFn = Callable[[float], Awaitable[Any]]
NowFn = Callable[[], datetime]

DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY = 300.0
HISTORY_LIMIT = 50


def utc_now() -> datetime:
    return datetime.now(UTC)


class DeliveryScheduler:
    """Fires a delivery task once per day at a local time.

    Example:
        scheduler = DeliveryScheduler(
            bot.send_todays_devotional,
            ScheduleDescriptor("07:00", "America/Sao_Paulo"),
        )
        await scheduler.start()
    """

    def __init__(
        self,
        task: DeliveryTask,
        descriptor: ScheduleDescriptor,
        *,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        sleep: SleepFn = asyncio.sleep,
        now: NowFn = utc_now,
    ):
        self._task = task
        self._descriptor = descriptor
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self._sleep = sleep
        self._now = now

        self._running = False
        self._timer: asyncio.Task[None] | None = None
        self._retry_task: asyncio.Task[bool] | None = None
        self._manual: asyncio.Task[bool] | None = None
        self._attempt_lock = asyncio.Lock()
        self._next_fire_time: datetime | None = None
        self._next_retry_at: datetime | None = None
        self._history: list[SendAttempt] = []

    @property
    def descriptor(self) -> ScheduleDescriptor:
        return self._descriptor

    @property
    def running(self) -> bool:
        return self._running

    @property
    def next_fire_time(self) -> datetime | None:
        """The pending retry if one is sooner, else the next daily occurrence."""
        if not self._running:
            return None
        retry_at, fire_at = self._next_retry_at, self._next_fire_time
        if retry_at is not None and (fire_at is None or retry_at < fire_at):
            return retry_at
        return fire_at

    @property
    def last_attempt(self) -> SendAttempt | None:
        return self._history[-1] if self._history else None

    @property
    def history(self) -> list[SendAttempt]:
        return list(self._history)

    async def start(self) -> None:
        """Arm the daily timer. Idempotent.

        Raises:
            InvalidSchedule: If the send time or timezone is invalid.
        """
        if self._running:
            return
        self._descriptor.validate()
        if not self._descriptor.enabled:
            logger.info("delivery_schedule_disabled")
            return
        self._running = True
        self._next_fire_time = self._descriptor.next_fire_time(self._now())
        self._timer = asyncio.create_task(self._timer_loop(), name="delivery-timer")
        logger.info(
            "delivery_scheduler_started",
            extra={
                "schedule.send_time": self._descriptor.send_time,
                "schedule.timezone": self._descriptor.timezone,
                "schedule.next_fire": self._next_fire_time.isoformat(),
            },
        )

    async def stop(self) -> None:
        """Cancel the timer and any retry in progress. Idempotent."""
        was_running = self._running
        self._running = False
        self._next_fire_time = None
        self._next_retry_at = None
        for task in (self._timer, self._retry_task, self._manual):
            if task is None or task.done() or task is asyncio.current_task():
                continue
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._timer = None
        self._retry_task = None
        self._manual = None
        if was_running:
            logger.info("delivery_scheduler_stopped")

    def status(self) -> dict[str, Any]:
        last = self.last_attempt
        return {
            "running": self._running,
            "next_execution": (
                self.next_fire_time.isoformat() if self.next_fire_time else None
            ),
            "send_time": self._descriptor.send_time,
            "timezone": self._descriptor.timezone,
            "last_attempt": last.to_dict() if last else None,
        }

    async def execute_now(self) -> bool:
        """Run one attempt immediately.

        Concurrent calls share a single attempt. A success ends any retry
        loop still pending for an earlier firing; a failure starts one unless
        a loop is already retrying. The return value reflects only this
        attempt.
        """
        if self._manual is None or self._manual.done():
            self._manual = asyncio.create_task(
                self._execute_manual(), name="delivery-manual"
            )
        return await asyncio.shield(self._manual)

    async def _execute_manual(self) -> bool:
        scheduled_for = self._now()
        if await self._attempt(scheduled_for, 1):
            self._end_retries()
            return True
        if self._max_retries > 0 and not self._retrying:
            self._begin_retries(scheduled_for, first_attempt=2)
        return False

    @property
    def _retrying(self) -> bool:
        return self._retry_task is not None and not self._retry_task.done()

    def _begin_retries(
        self, scheduled_for: datetime, first_attempt: int = 1
    ) -> asyncio.Task[bool]:
        """Start the retry loop for a firing, replacing any earlier one."""
        self._end_retries()
        self._retry_task = asyncio.create_task(
            self._run_with_retries(scheduled_for, first_attempt),
            name="delivery-retry",
        )
        return self._retry_task

    def _end_retries(self) -> None:
        if self._retrying:
            logger.info("delivery_retries_superseded")
            self._retry_task.cancel()
        self._next_retry_at = None

    async def _timer_loop(self) -> None:
        last_fire: datetime | None = None
        while self._running:
            now = self._now()
            # Strictly after the previous occurrence even if the clock lags
            base = max(now, last_fire) if last_fire else now
            fire_at = self._descriptor.next_fire_time(base)
            self._next_fire_time = fire_at
            delay = max(0.0, (fire_at - now).total_seconds())
            logger.debug("delivery_timer_armed", extra={"timer.delay_s": round(delay, 1)})
            await self._sleep(delay)
            if not self._running:
                return
            last_fire = fire_at
            self._next_fire_time = self._descriptor.next_fire_time(fire_at)
            # Waits without inheriting the loop's cancellation by execute_now
            await asyncio.wait([self._begin_retries(fire_at)])

    async def _run_with_retries(
        self, scheduled_for: datetime, first_attempt: int = 1
    ) -> bool:
        last_attempt = self._max_retries + 1
        try:
            for attempt in range(first_attempt, last_attempt + 1):
                if attempt > 1:
                    logger.info(
                        "delivery_retry_scheduled",
                        extra={
                            "delivery.attempt": attempt,
                            "delivery.max_attempts": last_attempt,
                            "retry_delay_s": self._retry_delay,
                        },
                    )
                    retry_in = timedelta(seconds=self._retry_delay)
                    self._next_retry_at = self._now() + retry_in
                    await self._sleep(self._retry_delay)
                    self._next_retry_at = None
                if await self._attempt(scheduled_for, attempt):
                    return True
        finally:
            if asyncio.current_task() is self._retry_task:
                self._next_retry_at = None

        logger.error(
            "delivery_retries_exhausted",
            extra={
                "delivery.scheduled_for": scheduled_for.isoformat(),
                "delivery.attempts": last_attempt,
            },
        )
        return False

    async def _attempt(self, scheduled_for: datetime, attempt: int) -> bool:
        async with self._attempt_lock:
            started = time.monotonic()
            error: str | None = None
            try:
                ok = bool(await self._task())
                outcome = AttemptOutcome.SUCCESS if ok else AttemptOutcome.FAILURE
            except Exception as e:
                ok = False
                outcome = AttemptOutcome.ERROR
                error = str(e)
                logger.exception(
                    "delivery_attempt_error",
                    extra={"delivery.attempt": attempt, "error.type": type(e).__name__},
                )

        record = SendAttempt(
            scheduled_for=scheduled_for,
            attempt=attempt,
            outcome=outcome,
            duration=time.monotonic() - started,
            error=error,
        )
        self._history.append(record)
        del self._history[:-HISTORY_LIMIT]
        logger.info(
            "delivery_attempt_finished",
            extra={"delivery.attempt": attempt, "delivery.outcome": outcome.value},
        )
        return ok
