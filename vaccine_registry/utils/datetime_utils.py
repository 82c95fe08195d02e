"""
Date/time helpers.

All timestamps are stored as naive UTC datetimes: SQLite drops timezone
information, so comparisons against stored values must stay naive.
"""

from datetime import date, datetime, timezone


def utc_now() -> datetime:
    """Current UTC time as a naive datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def day_bounds(start_date: date, end_date: date) -> tuple[datetime, datetime]:
    return (
        datetime.combine(start_date, datetime.min.time()),
        datetime.combine(end_date, datetime.max.time()),
    )
