"""Scheduling types: the daily send time and attempt records."""

import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from croniter import croniter

TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")


class InvalidSchedule(ValueError):
    """The configured send time or timezone cannot be scheduled."""

    pass


def parse_send_time(value: str) -> tuple[int, int]:
    """Parse "HH:MM" into (hour, minute).

    Raises:
        InvalidSchedule: If the value is malformed or out of range.
    """
    match = TIME_PATTERN.match(value.strip())
    if not match:
        raise InvalidSchedule(f"Invalid send time '{value}': expected HH:MM")
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise InvalidSchedule(f"Invalid send time '{value}': out of range")
    return hour, minute


def load_zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise InvalidSchedule(f"Unknown timezone '{name}'") from e


@dataclass(frozen=True)
class ScheduleDescriptor:
    """Daily fire time in a local timezone."""

    send_time: str
    timezone: str
    enabled: bool = True

    def validate(self) -> None:
        parse_send_time(self.send_time)
        load_zone(self.timezone)

    @property
    def cron(self) -> str:
        hour, minute = parse_send_time(self.send_time)
        return f"{minute} {hour} * * *"

    def next_fire_time(self, after: datetime) -> datetime:
        """Next occurrence strictly after ``after``, returned in UTC.

        Computed on the local wall clock so the send stays at the same local
        time across DST changes.
        """
        tz = load_zone(self.timezone)
        if after.tzinfo is None:
            after = after.replace(tzinfo=UTC)
        local = after.astimezone(tz)
        next_local = croniter(self.cron, local).get_next(datetime)
        return next_local.astimezone(UTC)


class AttemptOutcome(StrEnum):
    SUCCESS = "success"
    FAILURE = "failure"
    ERROR = "error"


@dataclass
class SendAttempt:
    """One call of the delivery task."""

    scheduled_for: datetime
    attempt: int
    outcome: AttemptOutcome
    duration: float
    error: str | None = None
    finished_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def succeeded(self) -> bool:
        return self.outcome == AttemptOutcome.SUCCESS

    def to_dict(self) -> dict[str, str | int | float | None]:
        return {
            "scheduled_for": self.scheduled_for.isoformat(),
            "attempt": self.attempt,
            "outcome": self.outcome.value,
            "duration": round(self.duration, 3),
            "error": self.error,
        }
