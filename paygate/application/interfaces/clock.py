"""Clock port - abstracts system time so tests can pin it."""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone


class Clock(ABC):
    """
    Source of the current time.

    Gateways derive order ids, create/expire dates and webhook freshness
    from it, so tests inject a fixed implementation.
    """

    @abstractmethod
    def now(self) -> datetime:
        """
        Return the current time.

        Returns:
            timezone-aware datetime in UTC.
        """
        raise NotImplementedError

    def timestamp_ms(self) -> int:
        """Milliseconds since the epoch, as embedded in gateway order ids."""
        return int(self.now().timestamp() * 1000)


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FakeClock(Clock):
    """Fixed clock for deterministic tests."""

    def __init__(self, fixed_time: datetime | None = None):
        self._fixed_time = fixed_time or datetime.now(timezone.utc)

    def now(self) -> datetime:
        return self._fixed_time

    def set_time(self, new_time: datetime) -> None:
        self._fixed_time = new_time

    def advance(self, seconds: int = 0, minutes: int = 0, hours: int = 0) -> None:
        self._fixed_time = self._fixed_time + timedelta(
            seconds=seconds, minutes=minutes, hours=hours
        )
