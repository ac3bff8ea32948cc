"""
Time utilities for the spread guard.

This module provides timezone-aware utilities for:
- Resolving the configured guard timezone
- Converting timestamps into that timezone
- Building window boundaries on a calendar day
- Parsing HH:MM strings from the command line and environment

All times default to UTC, matching the broker server clock.
"""

import re
from datetime import datetime, date, time
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from spreadguard.lib.constants import DEFAULT_TIMEZONE_NAME

_TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")


def get_zone(name: Optional[str] = None) -> ZoneInfo:
    """
    Resolve a timezone name to a ZoneInfo.

    Args:
        name: IANA timezone name (default: UTC)

    Returns:
        ZoneInfo instance

    Raises:
        ValueError: If the timezone is unknown
    """
    name = name or DEFAULT_TIMEZONE_NAME
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone: {name!r}") from e


def get_now(tz: Optional[ZoneInfo] = None) -> datetime:
    """Get current time in the given timezone (UTC if None)."""
    return datetime.now(tz or get_zone())


def to_zone(dt: datetime, tz: ZoneInfo) -> datetime:
    """
    Convert a datetime to the given timezone.

    Handles both naive and aware datetimes:
    - Naive datetimes are assumed to already be in ``tz``
    - Aware datetimes are converted to ``tz``

    Args:
        dt: Datetime to convert
        tz: Target timezone

    Returns:
        Aware datetime in ``tz``
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=tz)
    return dt.astimezone(tz)


def combine(day: date, at: time, tz: ZoneInfo) -> datetime:
    """Build an aware datetime for ``at`` on ``day`` in ``tz``."""
    return datetime.combine(day, at).replace(tzinfo=tz)


def parse_time(time_str: str) -> time:
    """
    Parse time string (HH:MM) to time object.

    Args:
        time_str: Time in 24h HH:MM format (single digit hour allowed)

    Returns:
        time instance

    Raises:
        ValueError: If the format is wrong or the values are out of range
    """
    match = _TIME_PATTERN.match(time_str or "")
    if not match:
        raise ValueError(
            f"Invalid time format: {time_str!r}. Expected HH:MM (e.g., 21:00)"
        )

    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23:
        raise ValueError(f"Invalid hour {hour} in {time_str!r}: must be 0-23")
    if minute > 59:
        raise ValueError(f"Invalid minute {minute} in {time_str!r}: must be 0-59")

    return time(hour, minute)


def format_time(value: time) -> str:
    """Format a time as HH:MM."""
    return value.strftime("%H:%M")
