"""Shared utility functions."""
from datetime import UTC, datetime


def utcnow() -> datetime:
    """Return current UTC time as a timezone-aware datetime."""
    return datetime.now(UTC)


def unix_seconds(dt: datetime) -> int:
    """Return the whole Unix timestamp of a datetime."""
    return int(dt.timestamp())
