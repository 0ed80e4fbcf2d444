"""Time helpers shared by the ticket lifecycle and the statistics reports."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Callable

Clock = Callable[[], datetime]

_MINUTE = timedelta(minutes=1)


def utcnow() -> datetime:
    """Return a timezone aware UTC timestamp."""

    return datetime.now(timezone.utc)


def ensure_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def whole_minutes(start: datetime, end: datetime) -> int:
    """Minutes elapsed between two instants, fractional minutes truncated."""

    if end <= start:
        return 0
    return (end - start) // _MINUTE


def format_duration(minutes: int) -> str:
    hours, remaining = divmod(max(0, int(minutes)), 60)
    if hours:
        return f"{hours}h {remaining}m"
    return f"{remaining}m"


@dataclass(frozen=True, slots=True)
class Period:
    """Half-open reporting window ``[start, end)``."""

    start: datetime
    end: datetime

    def contains(self, moment: datetime | None) -> bool:
        if moment is None:
            return False
        return self.start <= ensure_aware(moment) < self.end


def _local_midnight(day: date, zone: tzinfo) -> datetime:
    return datetime.combine(day, time.min, tzinfo=zone).astimezone(timezone.utc)


def _local_date(moment: datetime, zone: tzinfo) -> date:
    return ensure_aware(moment).astimezone(zone).date()


def day_period(moment: datetime, zone: tzinfo = timezone.utc) -> Period:
    day = _local_date(moment, zone)
    return Period(_local_midnight(day, zone), _local_midnight(day + timedelta(days=1), zone))


def week_period(moment: datetime, zone: tzinfo = timezone.utc) -> Period:
    """Monday to Monday window containing ``moment``."""

    day = _local_date(moment, zone)
    monday = day - timedelta(days=day.weekday())
    return Period(_local_midnight(monday, zone), _local_midnight(monday + timedelta(days=7), zone))


def month_period(moment: datetime, zone: tzinfo = timezone.utc) -> Period:
    day = _local_date(moment, zone)
    first = day.replace(day=1)
    if first.month == 12:
        following = first.replace(year=first.year + 1, month=1)
    else:
        following = first.replace(month=first.month + 1)
    return Period(_local_midnight(first, zone), _local_midnight(following, zone))
