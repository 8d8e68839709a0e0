"""
UTC clock helpers.

Session timestamps (started_at, last_seen_at, submitted_at, evaluated_at)
are always written from ``utc_now`` so tests can patch one clock.
"""
from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_timezone_aware(dt: Optional[datetime]) -> datetime:
    """
    Attach UTC to a naive datetime; aware values are returned unchanged.

    SQLite drops tzinfo on the way back out of a DateTime(timezone=True)
    column, so values read from the store are normalized here before any
    arithmetic. Raises ValueError for None.
    """
    if dt is None:
        raise ValueError("datetime cannot be None")
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=timezone.utc)


def elapsed_seconds(start: datetime, end: datetime) -> float:
    return (ensure_timezone_aware(end) - ensure_timezone_aware(start)).total_seconds()
