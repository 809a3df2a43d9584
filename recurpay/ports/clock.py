"""Clock port abstraction for time handling.

Billing records store integer Unix seconds, so besides ``now()`` the port
offers :meth:`ClockPort.timestamp`.
"""

from abc import ABC, abstractmethod
from datetime import datetime


class ClockPort(ABC):
    """Abstract clock interface for time operations."""

    @abstractmethod
    def now(self) -> datetime:
        """Get the current time as a timezone-aware datetime.

        Note:
            Implementations MUST return timezone-aware datetimes.
        """
        ...

    def timestamp(self) -> int:
        """Current time as whole Unix seconds."""
        return int(self.now().timestamp())
