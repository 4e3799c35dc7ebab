"""
Date/time helpers.

Storage: all timestamps are stored in UTC. Some backends (SQLite) hand back
naive datetimes, so anything compared against "now" goes through as_utc().
"""

from datetime import datetime, timedelta, timezone


def as_utc(dt: datetime) -> datetime:
    """
    Convert dt to tz-aware UTC.
    If dt is naive, we treat it as UTC.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def utc_now() -> datetime:
    """Current datetime in UTC."""
    return datetime.now(timezone.utc)


def days_ago(days: int, now: datetime | None = None) -> datetime:
    """
    UTC cutoff `days` before `now` (defaults to the current time).

    Used by the request expiry sweep.
    """
    reference = as_utc(now) if now else utc_now()
    return reference - timedelta(days=days)
