"""
Date and time-of-day utilities.

The engine works on calendar dates (datetime.date) and "HH:MM" time-of-day
strings. Weekdays follow the 0=Sunday ... 6=Saturday convention used by user
settings and commitments.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from studyplan.core.config import get_settings

# UTC timezone constant
UTC = timezone.utc


def local_now(user_timezone: Optional[str] = None) -> datetime:
    """Current wall-clock time as a naive datetime in the configured timezone."""
    tz = ZoneInfo(user_timezone or get_settings().TIMEZONE)
    return datetime.now(UTC).astimezone(tz).replace(tzinfo=None)


def weekday_index(day: date) -> int:
    """Return the weekday with Sunday as 0 and Saturday as 6."""
    return (day.weekday() + 1) % 7


def parse_time_to_minutes(value: Optional[str]) -> Optional[int]:
    """
    Convert "HH:MM" to minutes since midnight.

    Returns None for empty or malformed values (sessions without a slot carry
    empty start/end strings).
    """
    if not value:
        return None
    parts = value.split(":")
    if len(parts) != 2:
        return None
    try:
        hours = int(parts[0])
        minutes = int(parts[1])
    except ValueError:
        return None
    if hours < 0 or hours > 24 or minutes < 0 or minutes > 59:
        return None
    if hours == 24 and minutes != 0:
        return None
    return hours * 60 + minutes


def format_minutes(total_minutes: int) -> str:
    """Convert minutes since midnight to "HH:MM"."""
    hours, minutes = divmod(int(total_minutes), 60)
    return f"{hours:02d}:{minutes:02d}"


def hours_to_minutes(hours: float) -> int:
    """Round a duration in hours to whole minutes."""
    return int(round(hours * 60))


def minutes_to_hours(minutes: int) -> float:
    return minutes / 60


def daterange(start: date, end: date):
    """Yield every date from start through end (inclusive)."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def format_hours(hours: float) -> str:
    """
    Human-friendly duration.

    Example:
        >>> format_hours(2.5)
        '2h 30m'
        >>> format_hours(0.25)
        '15m'
    """
    total_minutes = hours_to_minutes(hours)
    h, m = divmod(total_minutes, 60)
    return f"{h}h {m}m" if h > 0 else f"{m}m"


def format_timer(seconds: float) -> str:
    """Compact timer label, e.g. "1h 5m", "1h" or "45m"."""
    total_seconds = max(0, int(round(seconds)))
    h = total_seconds // 3600
    m = (total_seconds % 3600) // 60
    if h > 0:
        return f"{h}h {m}m" if m > 0 else f"{h}h"
    return f"{m}m"
