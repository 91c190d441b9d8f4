"""
Timestamp helpers for event emission and persistence.

Event timestamps are wall-clock UTC; ordering is carried by the event
sequence number, never by the timestamp.
"""

from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Get the current wall-clock time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def format_timestamp(ts: datetime) -> str:
    """
    Format a timestamp for event emission and storage.

    Args:
        ts: Timestamp to format; naive values are assumed to be UTC

    Returns:
        ISO8601 formatted string
    """
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.isoformat()


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO8601 timestamp produced by format_timestamp.

    Args:
        value: ISO8601 string or None

    Returns:
        Aware UTC datetime, or None if value is empty
    """
    if not value:
        return None

    ts = datetime.fromisoformat(value)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts
