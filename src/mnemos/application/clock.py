"""
Calendar helpers.

The engine never reads the wall clock itself; callers obtain "now" here (or
supply their own) and pass it in explicitly.
"""

from datetime import date, datetime, timedelta, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def today(now: datetime | None = None) -> date:
    """Calendar date of `now` (defaults to the current UTC time)."""
    return (now or utc_now()).date()


def add_days(start: date, days: int) -> date:
    return start + timedelta(days=days)


def parse_date(value: str) -> date:
    """Parse a YYYY-MM-DD string."""
    return date.fromisoformat(value)


def parse_timestamp(value: str) -> datetime:
    """
    Parse an ISO-8601 timestamp.

    Naive timestamps are taken as UTC so comparisons never mix aware and
    naive values.
    """
    ts = datetime.fromisoformat(value)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts
