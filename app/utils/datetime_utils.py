"""
Date and time helpers for the reservation floor.

Storage convention: every timestamp is persisted as a naive datetime in
UTC. Caller input without an offset is read as restaurant-local time
(``Settings.TIMEZONE``).
"""

from datetime import datetime, timedelta
from typing import Optional, Tuple, Union

import pytz
from dateutil import parser

DEFAULT_DURATION_MINUTES = 60

TimestampLike = Union[datetime, str]


def _zone(timezone: str):
    return pytz.timezone(timezone)


def parse_timestamp(value: Optional[TimestampLike], timezone: str = 'UTC') -> Optional[datetime]:
    """
    Parse a timestamp into an aware UTC datetime.

    Naive values are interpreted in ``timezone``. Returns None for
    missing or unparseable input instead of raising.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            dt = parser.isoparse(text)
        except (ValueError, OverflowError):
            try:
                dt = parser.parse(text)
            except (ValueError, OverflowError, parser.ParserError):
                return None
    else:
        return None

    if dt.tzinfo is None:
        dt = _zone(timezone).localize(dt)
    return dt.astimezone(pytz.UTC)


def to_storage(dt: datetime) -> datetime:
    """Convert an aware datetime into the naive-UTC storage form."""
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(pytz.UTC).replace(tzinfo=None)


def from_storage(dt: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to a naive stored datetime."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return pytz.UTC.localize(dt)
    return dt.astimezone(pytz.UTC)


def isoformat_utc(dt: Optional[datetime]) -> Optional[str]:
    """Render a stored datetime as an ISO-8601 UTC string."""
    aware = from_storage(dt)
    return aware.isoformat() if aware else None


def utcnow() -> datetime:
    """Current time in the naive-UTC storage form."""
    return datetime.utcnow()


def local_midnight(moment: datetime, timezone: str = 'UTC') -> datetime:
    """Start of the restaurant-local calendar day containing ``moment`` (aware UTC)."""
    zone = _zone(timezone)
    local = from_storage(moment).astimezone(zone)
    midnight = datetime(local.year, local.month, local.day)
    return zone.localize(midnight).astimezone(pytz.UTC)


def day_bounds(moment: datetime, timezone: str = 'UTC') -> Tuple[datetime, datetime]:
    """
    Return ``[start, end)`` of the local calendar day containing ``moment``.

    Both bounds are aware UTC datetimes. The next midnight is localized on
    its own so days that cross a DST change are 23 or 25 hours long.
    """
    zone = _zone(timezone)
    local = from_storage(moment).astimezone(zone)
    start_local = datetime(local.year, local.month, local.day)
    end_local = start_local + timedelta(days=1)
    return (
        zone.localize(start_local).astimezone(pytz.UTC),
        zone.localize(end_local).astimezone(pytz.UTC),
    )


def coerce_duration(value, default: int = DEFAULT_DURATION_MINUTES) -> Optional[int]:
    """
    Read a duration in minutes; missing/zero falls back to ``default``.

    Returns None when the value is not numeric.
    """
    if value is None or value == '' or value == 0:
        return default
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def overlaps(
    target_start: Optional[TimestampLike],
    target_end: Optional[TimestampLike],
    candidate_start: Optional[TimestampLike],
    candidate_duration_minutes=None,
) -> bool:
    """
    Whether ``[target_start, target_end)`` intersects
    ``[candidate_start, candidate_start + duration)``.

    Half-open intervals: touching endpoints do not overlap. Any value that
    cannot be parsed yields False rather than an exception.
    """
    start_a = parse_timestamp(target_start)
    end_a = parse_timestamp(target_end)
    start_b = parse_timestamp(candidate_start)
    duration = coerce_duration(candidate_duration_minutes)
    if start_a is None or end_a is None or start_b is None or duration is None:
        return False
    end_b = start_b + timedelta(minutes=duration)
    return start_a < end_b and start_b < end_a


__all__ = [
    'DEFAULT_DURATION_MINUTES',
    'parse_timestamp',
    'to_storage',
    'from_storage',
    'isoformat_utc',
    'utcnow',
    'local_midnight',
    'day_bounds',
    'coerce_duration',
    'overlaps',
]
