"""
Core Module - Clock.

============================================================
RESPONSIBILITY
============================================================
Time source for the ingestion pipeline.

- Snapshot recorded_at, run start/end and the scheduler's
  "now" all come from an injected clock
- MockClock makes snapshot ordering and schedule maths
  deterministic in tests

All values are timezone-aware UTC; conversion to a schedule
timezone happens only in the scheduler.

============================================================
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Optional


class ClockProtocol(ABC):
    """Anything that can tell the current UTC time."""

    @abstractmethod
    def now(self) -> datetime:
        ...


class SystemClock(ClockProtocol):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class MockClock(ClockProtocol):
    """
    Frozen clock for tests.

    With auto_advance set, every now() call returns the current
    value and then moves forward by that step, so consecutive
    snapshots of the same trend get strictly increasing times.
    """

    def __init__(
        self,
        initial_time: Optional[datetime] = None,
        auto_advance: Optional[timedelta] = None,
    ) -> None:
        start = initial_time or datetime.now(timezone.utc)
        self._time = _as_utc(start)
        self._auto_advance = auto_advance

    def now(self) -> datetime:
        current = self._time
        if self._auto_advance:
            self._time = current + self._auto_advance
        return current

    def advance(self, delta: timedelta) -> None:
        self._time = self._time + delta


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
