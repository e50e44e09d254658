"""Time arithmetic and calendar helpers shared across the reservation engine.

Wall-clock times are ``HH:mm`` strings; calendar days are ``datetime.date``
values interpreted in the configured timezone.
"""

import re
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Optional, Union

from roombook.config import settings

TIME_PATTERN = re.compile(r"^([01]?[0-9]|2[0-3]):[0-5][0-9]$")
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

WEEKDAY_NAMES = (
    "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday",
)


def to_minutes(value: str) -> int:
    """Convert an ``HH:mm`` string to minutes since midnight.

    Examples:
        >>> to_minutes("09:30")
        570
        >>> to_minutes("0:05")
        5
    """
    hours, minutes = value.strip().split(":")
    return int(hours) * 60 + int(minutes)


def minutes_to_time(minutes: int) -> str:
    """Convert minutes since midnight to a zero-padded ``HH:mm`` string.

    Examples:
        >>> minutes_to_time(570)
        '09:30'
    """
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def is_valid_time_format(value: Optional[str]) -> bool:
    return bool(value) and TIME_PATTERN.match(value) is not None


def is_valid_email(value: Optional[str]) -> bool:
    return bool(value) and EMAIL_PATTERN.match(value.strip()) is not None


def duration_minutes(start_time: str, end_time: str) -> int:
    """Length of ``[start_time, end_time)`` in minutes (negative if reversed)."""
    return to_minutes(end_time) - to_minutes(start_time)


def intervals_overlap(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    """Half-open interval intersection; touching endpoints do not overlap."""
    return start_a < end_b and end_a > start_b


def step_times(start: int, end: int, interval: int) -> list[str]:
    """Times from ``start`` up to but excluding ``end`` every ``interval`` minutes."""
    if interval <= 0:
        raise ValueError(f"interval must be positive, got {interval}")
    return [minutes_to_time(m) for m in range(start, end, interval)]


def local_now(tz: Optional[tzinfo] = None) -> datetime:
    """Current aware datetime in the configured timezone."""
    return datetime.now(tz or settings.scheduling.tz)


def local_today(tz: Optional[tzinfo] = None) -> date:
    return local_now(tz).date()


def to_local_date(
    value: Union[date, datetime, str], tz: Optional[tzinfo] = None
) -> date:
    """Resolve a stored date value to a calendar day in the configured timezone.

    Naive datetimes are treated as UTC, which is how the document store
    serializes timestamps. ISO strings with a time part are parsed the
    same way; plain ``YYYY-MM-DD`` strings are taken as-is.
    """
    if isinstance(value, str):
        text = value.strip()
        if len(text) == 10:
            return date.fromisoformat(text)
        value = datetime.fromisoformat(text.replace("Z", "+00:00"))
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(tz or settings.scheduling.tz).date()
    return value


def weekday_name(day: date) -> str:
    """Lowercase English weekday name, independent of locale."""
    return WEEKDAY_NAMES[day.weekday()]


def combine_local(day: date, time_str: Optional[str], tz: Optional[tzinfo] = None) -> datetime:
    """Aware datetime for ``day`` at ``time_str`` (midnight if not a valid time)."""
    minutes = to_minutes(time_str) if is_valid_time_format(time_str) else 0
    midnight = datetime(day.year, day.month, day.day, tzinfo=tz or settings.scheduling.tz)
    return midnight + timedelta(minutes=minutes)


def format_display_date(day: date) -> str:
    """Human label like ``Tuesday, October 20``."""
    return f"{weekday_name(day).capitalize()}, {day.strftime('%B')} {day.day}"


def relative_day_label(day: date, today: date) -> str:
    delta = (day - today).days
    if delta == 0:
        return "Today"
    if delta == 1:
        return "Tomorrow"
    if delta == -1:
        return "Yesterday"
    if delta > 1:
        return f"In {delta} days"
    return f"{-delta} days ago"
