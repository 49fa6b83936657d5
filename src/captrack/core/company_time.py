"""Company-timezone calendar helpers.

A "day" in captrack is midnight-to-midnight in the configured company timezone,
matching the dates the ingestion agent writes into session daily breakdowns.
"""

from datetime import date, datetime, time, timedelta

import pytz

from captrack.core.settings import settings


def _company_tz(tz_name: str | None = None):
    return pytz.timezone(tz_name or settings.timezone)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC, convert aware ones."""
    if value.tzinfo is None:
        return pytz.UTC.localize(value)
    return value.astimezone(pytz.UTC)


def local_date_string(value: datetime, tz_name: str | None = None) -> str:
    """Calendar date (YYYY-MM-DD) of an instant in the company timezone."""
    return as_utc(value).astimezone(_company_tz(tz_name)).strftime("%Y-%m-%d")


def day_bounds(date_str: str, tz_name: str | None = None) -> tuple[datetime, datetime]:
    """UTC start and end instants of a company-timezone calendar day.

    DST transitions are handled by localizing each boundary separately, so a
    23- or 25-hour day comes out with the right length.
    """
    tz = _company_tz(tz_name)
    day = date.fromisoformat(date_str)
    start_local = tz.localize(datetime.combine(day, time.min))
    next_start_local = tz.localize(datetime.combine(day + timedelta(days=1), time.min))
    start_utc = start_local.astimezone(pytz.UTC)
    end_utc = next_start_local.astimezone(pytz.UTC) - timedelta(microseconds=1)
    return start_utc, end_utc


def yesterday_string(now: datetime | None = None, tz_name: str | None = None) -> str:
    """The company-timezone date before `now`."""
    now = now or datetime.now(pytz.UTC)
    today = date.fromisoformat(local_date_string(now, tz_name))
    return (today - timedelta(days=1)).isoformat()


def previous_dates(reference: str, start_offset: int, end_offset: int) -> list[str]:
    """Dates `start_offset..end_offset` days before `reference` (inclusive), newest first."""
    ref = date.fromisoformat(reference)
    return [(ref - timedelta(days=offset)).isoformat() for offset in range(start_offset, end_offset + 1)]


def format_local_time(value: datetime, tz_name: str | None = None) -> str:
    """Human-readable local time, e.g. '8:12 AM'."""
    local = as_utc(value).astimezone(_company_tz(tz_name))
    hour = local.hour % 12 or 12
    return f"{hour}:{local.minute:02d} {'AM' if local.hour < 12 else 'PM'}"
