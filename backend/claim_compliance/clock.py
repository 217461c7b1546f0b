"""
Time sources.

Validators and the monitoring layer never read the wall clock directly;
they receive a Clock so runs are deterministic and replayable.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone


class Clock(ABC):
    """Source of the current time (timezone-aware, UTC)."""

    @abstractmethod
    def now(self) -> datetime:
        pass

    def today(self):
        return self.now().date()


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock(Clock):
    """Clock frozen at a given instant. Naive datetimes are taken as UTC."""

    def __init__(self, at: datetime):
        if at.tzinfo is None:
            at = at.replace(tzinfo=timezone.utc)
        self._at = at

    def now(self) -> datetime:
        return self._at

    def advance(self, **delta) -> "FixedClock":
        return FixedClock(self._at + timedelta(**delta))
