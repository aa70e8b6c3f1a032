"""
Clock -- injectable time source.

Milestone completion dates, communication timestamps and packing-list
generation times are all taken from a Clock handed to the service, never
from ``datetime.now()``.  SystemClock is the only place the kernel reads
the wall clock.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone

DEFAULT_TEST_INSTANT = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class Clock(ABC):
    """Source of timezone-aware UTC instants."""

    @abstractmethod
    def now(self) -> datetime:
        ...

    def epoch_millis(self) -> int:
        """Milliseconds since the Unix epoch; seeds generated invoice numbers."""
        return int(self.now().timestamp() * 1000)


class SystemClock(Clock):

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Clock frozen at one instant until a test moves it.

    Two milestone actions taken without ``advance()`` in between carry the
    same completion date.
    """

    def __init__(self, fixed_time: datetime | None = None):
        instant = fixed_time or DEFAULT_TEST_INSTANT
        if instant.tzinfo is None:
            raise ValueError("DeterministicClock needs a timezone-aware instant")
        self._instant = instant.astimezone(timezone.utc)

    def now(self) -> datetime:
        return self._instant

    def advance(self, seconds: float = 1) -> datetime:
        self._instant += timedelta(seconds=seconds)
        return self._instant

    def set_time(self, instant: datetime) -> None:
        self._instant = instant.astimezone(timezone.utc)
