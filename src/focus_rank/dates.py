"""Calendar-day keys and day arithmetic for focus-rank.

Every day comparison in the engine goes through this module. Day keys are
YYYY-MM-DD strings in the owner's local day boundary; arithmetic is done on
calendar dates, never by subtracting timestamps, so DST transitions cannot
shift a session into the wrong day or make two days look 23 hours apart.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import date, datetime, time as dt_time, timedelta, tzinfo

MS_PER_SECOND = 1000


def _parse_date(key: str) -> date:
    """Parse a YYYY-MM-DD string to a date object."""
    return date.fromisoformat(key)


def day_key(timestamp_ms: int, tz: tzinfo | None = None) -> str:
    """Format an epoch-millis timestamp as the local calendar day it falls on.

    tz=None uses the machine's local zone.
    """
    moment = datetime.fromtimestamp(timestamp_ms / MS_PER_SECOND, tz=tz)
    return moment.date().isoformat()


def parse_day(key: str, tz: tzinfo | None = None) -> int:
    """Return epoch millis of local midnight at the start of the given day."""
    d = _parse_date(key)
    midnight = datetime.combine(d, dt_time(0, 0), tzinfo=tz)
    return int(midnight.timestamp() * MS_PER_SECOND)


def days_apart(key_a: str, key_b: str) -> int:
    """Signed number of calendar days from key_a to key_b (b - a)."""
    return (_parse_date(key_b) - _parse_date(key_a)).days


def add_days(key: str, days: int) -> str:
    return (_parse_date(key) + timedelta(days=days)).isoformat()


def week_start(key: str) -> str:
    """Day key of the ISO week's Monday. Sunday belongs to the week that ends on it."""
    d = _parse_date(key)
    return (d - timedelta(days=d.weekday())).isoformat()


def month_key(key: str) -> str:
    """YYYY-MM for a day key."""
    return key[:7]


def year_of(key: str) -> int:
    return _parse_date(key).year


def month_of(key: str) -> int:
    return _parse_date(key).month


@dataclass(frozen=True)
class Clock:
    """An explicit "now" plus the zone that defines the owner's day boundary."""

    now_ms: int
    tz: tzinfo | None = None

    def day_key(self, timestamp_ms: int) -> str:
        return day_key(timestamp_ms, self.tz)

    def today_key(self) -> str:
        return day_key(self.now_ms, self.tz)

    def yesterday_key(self) -> str:
        return add_days(self.today_key(), -1)

    @property
    def year(self) -> int:
        return year_of(self.today_key())

    @property
    def month(self) -> int:
        return month_of(self.today_key())

    @classmethod
    def at_day(cls, key: str, tz: tzinfo | None = None, hour: int = 12) -> "Clock":
        """Clock fixed at the given hour of a local day. Used for replays and tests."""
        start = parse_day(key, tz)
        return cls(now_ms=start + hour * 3600 * MS_PER_SECOND, tz=tz)


def system_clock(tz: tzinfo | None = None) -> Clock:
    """Clock reading the current wall time."""
    return Clock(now_ms=int(time.time() * MS_PER_SECOND), tz=tz)
