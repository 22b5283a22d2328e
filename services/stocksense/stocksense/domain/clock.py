"""Timestamp sources. Services take a clock instead of reading the wall clock."""

from datetime import datetime, timedelta
from typing import Optional

from .models import utc_now


class Clock:
    def now(self) -> datetime:
        raise NotImplementedError


class SystemClock(Clock):
    def now(self) -> datetime:
        return utc_now()


class FixedClock(Clock):
    """Returns a controlled time; ``advance`` moves it forward."""

    def __init__(self, start: Optional[datetime] = None):
        self._now = start or datetime(2026, 1, 1, 9, 0, 0)

    def now(self) -> datetime:
        return self._now

    def set(self, value: datetime) -> None:
        self._now = value

    def advance(self, **kwargs) -> datetime:
        self._now = self._now + timedelta(**kwargs)
        return self._now
