"""Daily delivery scheduling.

Public API:
- DeliveryScheduler: Timer plus bounded retry loop
- ScheduleDescriptor: Send time, timezone and enabled flag
- SendAttempt: Record of one delivery attempt
"""

from devocional.scheduling.scheduler import DeliveryScheduler
from devocional.scheduling.types import (
    AttemptOutcome,
    InvalidSchedule,
    ScheduleDescriptor,
    SendAttempt,
    parse_send_time,
)

__all__ = [
    "AttemptOutcome",
    "DeliveryScheduler",
    "InvalidSchedule",
    "ScheduleDescriptor",
    "SendAttempt",
    "parse_send_time",
]
