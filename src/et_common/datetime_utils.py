"""UTC datetime utilities."""

from datetime import date, datetime, timezone


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def today() -> date:
    return utc_now().date()


def month_start(day: date) -> date:
    """First day of the month containing `day`."""
    return day.replace(day=1)
