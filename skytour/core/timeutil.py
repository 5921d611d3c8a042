"""
Local-time helpers.

Flight dates and times are stored as wall-clock values at the heliport; the
configured TIMEZONE turns them into aware datetimes for policy maths and
decides what "today" means for the scheduled jobs.
"""

from datetime import date, datetime, time, timezone

import pytz

from skytour.core.config import settings


def local_tz():
    return pytz.timezone(settings.TIMEZONE)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def local_today(now: datetime | None = None) -> date:
    """Today's date at the heliport."""
    now = now or utcnow()
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(local_tz()).date()


def parse_hhmm(value: str) -> time:
    hh, mm = value.split(":")
    return time(int(hh), int(mm))


def flight_datetime(flight_date: date, flight_time: str) -> datetime:
    """Aware UTC datetime of a flight departure."""
    naive = datetime.combine(flight_date, parse_hhmm(flight_time))
    return local_tz().localize(naive).astimezone(timezone.utc)


def as_aware(dt: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes for timezone-aware columns
    if dt is None or dt.tzinfo is not None:
        return dt
    return dt.replace(tzinfo=timezone.utc)
