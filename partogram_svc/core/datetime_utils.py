"""
UTC-first datetime utilities for the Partogram Service API.

- All datetimes are stored and processed in UTC
- Database storage: ISO 8601 strings with 'Z' suffix, second precision,
  so that lexicographic ORDER BY on the TEXT column is chronological
- API requests: accept any ISO 8601 offset, normalize to UTC
- Naive datetimes are treated as UTC

Usage:
    from core.datetime_utils import utc_now, to_utc, parse_datetime, format_iso

    iso_str = format_iso(utc_now())          # "2025-03-01T08:00:00Z"
    dt = parse_datetime("2025-03-01T11:00:00+03:00")  # 08:00 UTC
"""
import logging
from datetime import datetime, timezone
from typing import Optional, Union

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_utc(dt: datetime) -> datetime:
    """
    Convert a datetime to UTC.

    - Naive datetime: assumed to already be UTC
    - Aware datetime: converted to UTC
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def truncate_to_second(dt: datetime) -> datetime:
    """Drop sub-second precision; stored timestamps have second resolution."""
    return to_utc(dt).replace(microsecond=0)


def parse_datetime(value: Union[str, datetime]) -> datetime:
    """
    Parse an ISO 8601 string (or pass through a datetime) to an aware UTC datetime.

    Raises:
        ValueError: If the value cannot be parsed.
    """
    if isinstance(value, datetime):
        return to_utc(value)

    if not isinstance(value, str):
        raise ValueError(f"Expected datetime or string, got {type(value).__name__}")

    value = value.strip()
    if value.endswith('Z'):
        value = value[:-1] + '+00:00'

    try:
        return to_utc(datetime.fromisoformat(value))
    except ValueError:
        pass

    # SQLite CURRENT_TIMESTAMP format
    try:
        return datetime.strptime(value, "%Y-%m-%d %H:%M:%S").replace(tzinfo=timezone.utc)
    except ValueError:
        raise ValueError(f"Cannot parse datetime: '{value}'")


def parse_datetime_safe(value: Union[str, datetime, None]) -> Optional[datetime]:
    """Parse datetime, returning None (and logging) instead of raising."""
    if value is None:
        return None
    try:
        return parse_datetime(value)
    except ValueError as e:
        logger.warning(f"Failed to parse datetime '{value}': {e}")
        return None


def format_iso(dt: datetime) -> str:
    """
    Format datetime as ISO 8601 UTC with 'Z' suffix.

    Example:
        >>> format_iso(datetime(2025, 3, 1, 8, 0, tzinfo=timezone.utc))
        '2025-03-01T08:00:00Z'
    """
    return to_utc(dt).strftime("%Y-%m-%dT%H:%M:%SZ")


def format_iso_or_none(dt: Optional[datetime]) -> Optional[str]:
    return format_iso(dt) if dt is not None else None


def to_db_string(dt: datetime) -> str:
    """Convert datetime to the TEXT format stored in SQLite."""
    return format_iso(dt)


def from_db_string(value: Optional[str]) -> Optional[datetime]:
    """Parse a TEXT timestamp read from SQLite, or None."""
    return parse_datetime_safe(value)
