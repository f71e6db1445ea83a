# src/taskpulse/core/clock.py

from __future__ import annotations

import logging
from datetime import UTC, date, datetime, time, timedelta, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)


def resolve_timezone(name: str | None) -> tzinfo:
    """
    Resolve an IANA zone name. Empty name -> the host's local zone.
    Unknown names fall back to the local zone with a warning.
    """
    if name and name.strip():
        try:
            return ZoneInfo(name.strip())
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("Unknown timezone %r, using the system local zone", name)
    local = datetime.now().astimezone().tzinfo
    return local if local is not None else UTC


def zone_name(tz: tzinfo) -> str:
    key = getattr(tz, "key", None)
    if key:
        return str(key)
    return datetime.now(tz).tzname() or "UTC"


class SystemClock:
    def __init__(self, tz: tzinfo | None = None) -> None:
        self._tz = tz if tz is not None else resolve_timezone(None)

    @property
    def tz(self) -> tzinfo:
        return self._tz

    def now(self) -> datetime:
        return datetime.now(self._tz)


def start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def week_start(day: date) -> date:
    """Monday of the ISO week containing `day`."""
    return day - timedelta(days=day.weekday())


def iso_week_label(day: date) -> str:
    iso = day.isocalendar()
    return f"{iso.year}-W{iso.week:02d}"


def next_fire_time(now: datetime, at: time) -> datetime:
    """
    Next occurrence of the local wall-clock time `at` strictly after `now`.

    `now` must be timezone-aware; the result carries the same tzinfo.
    """
    tz = now.tzinfo
    candidate = datetime.combine(now.date(), at, tzinfo=tz)
    if candidate <= now:
        candidate = datetime.combine(now.date() + timedelta(days=1), at, tzinfo=tz)
    return candidate


def seconds_until(now: datetime, target: datetime) -> float:
    # Compare in UTC: same-tzinfo subtraction is wall-clock arithmetic and skips DST shifts.
    delta = target.astimezone(UTC) - now.astimezone(UTC)
    return max(0.0, delta.total_seconds())


def parse_hhmm(raw: str, default: time) -> time:
    try:
        hh, mm = raw.strip().split(":", 1)
        return time(hour=int(hh), minute=int(mm))
    except (ValueError, AttributeError):
        return default
