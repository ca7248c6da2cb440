"""
Injectable time sources.

Storage timestamps are naive UTC datetimes. Calendar decisions for the
deadline jobs are made in the department's local timezone.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Protocol
from zoneinfo import ZoneInfo


class Clock(Protocol):
    """Source of the current time."""

    def utcnow(self) -> datetime:
        ...

    def local_now(self) -> datetime:
        ...

    def local_today(self) -> date:
        ...


class SystemClock:
    """Wall clock in a fixed local timezone."""

    def __init__(self, tz_name: str = "UTC"):
        self.tz = ZoneInfo(tz_name)

    def utcnow(self) -> datetime:
        return datetime.now(timezone.utc).replace(tzinfo=None)

    def local_now(self) -> datetime:
        return datetime.now(self.tz)

    def local_today(self) -> date:
        return self.local_now().date()


class FixedClock:
    """
    Clock pinned to a given instant.

    Accepts either an aware datetime or a naive one interpreted in ``tz_name``.
    Used by tests and for replaying a job "as of" a given moment.
    """

    def __init__(self, at: datetime, tz_name: str = "UTC"):
        self.tz = ZoneInfo(tz_name)
        self.set(at)

    def set(self, at: datetime) -> None:
        if at.tzinfo is None:
            at = at.replace(tzinfo=self.tz)
        self._now = at

    def advance(self, **kwargs) -> None:
        self._now = self._now + timedelta(**kwargs)

    def utcnow(self) -> datetime:
        return self._now.astimezone(timezone.utc).replace(tzinfo=None)

    def local_now(self) -> datetime:
        return self._now.astimezone(self.tz)

    def local_today(self) -> date:
        return self.local_now().date()
