"""
Core utility functions for the watcher.
Provides common functionality used across multiple modules.
"""
from datetime import datetime, timezone
from email.utils import format_datetime

UTC = timezone.utc


def get_utc_now() -> datetime:
    """
    Get current datetime in UTC.

    Use this for storage and webhook timestamps.
    """
    return datetime.now(UTC)


def parse_timestamp(value) -> datetime:
    """
    Parses a timestamp coming back from the database.

    Accepts datetimes and ISO-8601 strings (including a trailing 'Z').
    Naive values are assumed to be UTC.
    """
    if isinstance(value, datetime):
        dt = value
    else:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt


def format_rfc1123(dt: datetime) -> str:
    """Formats a datetime like 'Mon, 02 Jan 2006 15:04:05 UTC'."""
    dt = parse_timestamp(dt).astimezone(UTC)
    return format_datetime(dt, usegmt=True).replace("GMT", "UTC")


def format_duration(seconds: float) -> str:
    """Formats a duration in seconds for humans (e.g. '1.234s' or '350ms')."""
    if seconds < 1:
        return f"{seconds * 1000:.0f}ms"
    return f"{seconds:.3f}s"


def truncate_bytes(data: bytes, max_length: int) -> bytes:
    """Returns at most max_length bytes of data."""
    if len(data) <= max_length:
        return data
    return data[:max_length]


def truncate_text(text: str, max_length: int, suffix: str = "...") -> str:
    """
    Truncate text to max length with suffix.

    Args:
        text: Text to truncate
        max_length: Maximum allowed length including suffix
        suffix: Suffix to append when truncating

    Returns:
        Truncated text
    """
    if len(text) <= max_length:
        return text
    return text[:max_length - len(suffix)] + suffix
