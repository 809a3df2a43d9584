"""Clock implementations."""

from datetime import UTC, datetime, timedelta

from ..ports.clock import ClockPort


class SystemClock(ClockPort):
    """Default clock reading the system time in UTC."""

    def now(self) -> datetime:
        return datetime.now(UTC)


class ManualClock(ClockPort):
    """Clock that only moves when told to.

    Used by simulations and tests that walk subscriptions through billing
    periods without waiting for them.
    """

    def __init__(self, start: datetime | int = 0):
        if isinstance(start, int):
            start = datetime.fromtimestamp(start, UTC)
        if start.tzinfo is None:
            raise ValueError("ManualClock requires a timezone-aware start time")
        self._now = start

    def now(self) -> datetime:
        return self._now

    def set(self, timestamp: int) -> None:
        """Jump to the given Unix time."""
        self._now = datetime.fromtimestamp(timestamp, UTC)

    def advance(self, seconds: int | float = 0, **kwargs: float) -> None:
        """Move forward, e.g. ``advance(60)`` or ``advance(days=1)``."""
        self._now += timedelta(seconds=seconds, **kwargs)
