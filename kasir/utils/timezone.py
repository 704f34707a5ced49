"""
Day-boundary helpers.

Every "today" window in the service is computed here, in the configured
APP_TIMEZONE, and expressed as UTC instants. Stored timestamps without tzinfo
are UTC.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

from kasir.core.config import settings


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def app_timezone() -> ZoneInfo:
    return settings.timezone


def as_utc(value: datetime) -> datetime:
    """Naive datetimes are read as UTC; aware ones are converted."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def local_date(value: datetime, tz: Optional[ZoneInfo] = None) -> date:
    """Calendar date of an instant in the app timezone."""
    return as_utc(value).astimezone(tz or app_timezone()).date()


def day_window(day: date, tz: Optional[ZoneInfo] = None) -> Tuple[datetime, datetime]:
    """[start, end) of a calendar day in the app timezone, as UTC datetimes."""
    zone = tz or app_timezone()
    start = datetime.combine(day, time.min, tzinfo=zone)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=zone)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def today_window(now: Optional[datetime] = None, tz: Optional[ZoneInfo] = None) -> Tuple[datetime, datetime]:
    zone = tz or app_timezone()
    current = as_utc(now) if now is not None else utc_now()
    return day_window(local_date(current, zone), zone)


def in_window(value: Optional[datetime], start: datetime, end: datetime) -> bool:
    if value is None:
        return False
    instant = as_utc(value)
    return as_utc(start) <= instant < as_utc(end)
