"""Minute-of-day arithmetic for daily windows that may wrap midnight.

Every window membership test in the integration goes through
``is_within_window``. A window whose start equals its end is zero-length: it
lasts 0 hours and contains no minute.
"""

from __future__ import annotations

from datetime import time
from typing import Any

from ..exceptions import ConfigurationError

MINUTES_PER_DAY = 1440


def to_minute_of_day(hour: int, minute: int) -> int:
    """Convert a wall-clock time to a minute offset in 0..1439.

    Raises:
        ConfigurationError: If hour or minute is out of range
    """
    if not 0 <= hour <= 23:
        raise ConfigurationError("hour", f"Invalid hour: {hour}")
    if not 0 <= minute <= 59:
        raise ConfigurationError("minute", f"Invalid minute: {minute}")
    return hour * 60 + minute


def from_minute_of_day(minute_of_day: int) -> tuple[int, int]:
    """Convert a minute offset back to (hour, minute)."""
    minute_of_day %= MINUTES_PER_DAY
    return divmod(minute_of_day, 60)


def format_minute_of_day(minute_of_day: int) -> str:
    """Format a minute offset as HH:MM."""
    hour, minute = from_minute_of_day(minute_of_day)
    return f"{hour:02d}:{minute:02d}"


def is_within_window(now_min: int, start_min: int, end_min: int) -> bool:
    """Check whether a minute falls inside [start, end).

    Overnight windows (start > end) contain every minute from start to
    midnight and from midnight up to, but excluding, end.
    """
    if start_min > end_min:
        return now_min >= start_min or now_min < end_min
    return start_min <= now_min < end_min


def window_duration_minutes(start_min: int, end_min: int) -> int:
    """Length of a window in minutes (0 for a zero-length window)."""
    return (end_min - start_min + MINUTES_PER_DAY) % MINUTES_PER_DAY


def window_duration_hours(start_min: int, end_min: int) -> float:
    """Length of a window in hours, always within [0, 24)."""
    return window_duration_minutes(start_min, end_min) / 60


def normalize_relative_to(time_min: int, reference_min: int) -> int:
    """Project a time onto the 24h timeline that ends at reference.

    Times later in the day than the reference are taken to be yesterday's,
    so the result is always <= reference_min.
    """
    if time_min > reference_min:
        return time_min - MINUTES_PER_DAY
    return time_min


def parse_time_of_day(value: Any) -> time:
    """Parse "HH:MM[:SS]", a {"hour", "minute"} dict or a time.

    Raises:
        ConfigurationError: If the value is not a valid time of day
    """
    if isinstance(value, time):
        return value
    if isinstance(value, dict):
        hour, minute = value.get("hour", 0), value.get("minute", 0)
    elif isinstance(value, str):
        parts = value.strip().split(":")
        if len(parts) < 2:
            raise ConfigurationError("time", f"Invalid time: {value!r}")
        hour, minute = parts[0], parts[1]
    else:
        raise ConfigurationError("time", f"Invalid time: {value!r}")

    try:
        hour, minute = int(hour), int(minute)
    except (TypeError, ValueError) as ex:
        raise ConfigurationError("time", f"Invalid time: {value!r}") from ex
    return time(*from_minute_of_day(to_minute_of_day(hour, minute)))


def minutes_until(target_min: int, now_min: int, allow_now: bool = True) -> int:
    """Minutes from now to the next occurrence of target.

    Args:
        target_min: Minute of day to reach
        now_min: Current minute of day
        allow_now: If False, a target equal to now is tomorrow's (1440)
    """
    delta = (target_min - now_min) % MINUTES_PER_DAY
    if delta == 0 and not allow_now:
        return MINUTES_PER_DAY
    return delta
