"""Clock abstraction used by the timer and validation services.

All timestamps are naive datetimes in the firm's local time, which is what
the weekend and after-hours rules are defined against.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Optional


class Clock(ABC):
    """Source of the current time."""

    @abstractmethod
    def now(self) -> datetime:
        """Return the current local time."""
        pass


class SystemClock(Clock):
    """Clock backed by the machine's local time."""

    def now(self) -> datetime:
        return datetime.now()


class FixedClock(Clock):
    """Manually driven clock for tests and replays."""

    def __init__(self, current: Optional[datetime] = None):
        self.current = current or datetime(2024, 1, 2, 9, 0, 0)

    def now(self) -> datetime:
        return self.current

    def set(self, current: datetime) -> None:
        self.current = current

    def advance(self, seconds: float = 0, **kwargs) -> datetime:
        """Move the clock forward and return the new time.

        Accepts the same keyword arguments as ``timedelta``.
        """
        self.current = self.current + timedelta(seconds=seconds, **kwargs)
        return self.current
