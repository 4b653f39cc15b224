"""
Injectable time sources.

Every place that needs "now" (labor start, timer computation, default
measurement time) receives a clock instead of reading the wall clock.
Production code uses SystemClock; tests use FrozenClock and advance it
explicitly.
"""
from datetime import datetime, timedelta
from typing import Optional

from core.datetime_utils import utc_now, to_utc


class SystemClock:
    """Wall-clock UTC time."""

    def now(self) -> datetime:
        return utc_now()


class FrozenClock:
    """
    Clock that only moves when told to.

    Usage:
        clock = FrozenClock(datetime(2025, 3, 1, 8, 0, tzinfo=timezone.utc))
        clock.advance(minutes=31)
    """

    def __init__(self, start: Optional[datetime] = None):
        self._now = to_utc(start) if start is not None else utc_now().replace(microsecond=0)

    def now(self) -> datetime:
        return self._now

    def set(self, value: datetime) -> None:
        self._now = to_utc(value)

    def advance(self, seconds: float = 0, minutes: float = 0) -> datetime:
        self._now = self._now + timedelta(seconds=seconds, minutes=minutes)
        return self._now
