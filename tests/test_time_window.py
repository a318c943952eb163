"""Tests for minute-of-day window arithmetic."""
from datetime import time

import pytest

from custom_components.overnight_ev_charger.domain.time_window import (
    format_minute_of_day,
    from_minute_of_day,
    is_within_window,
    minutes_until,
    normalize_relative_to,
    parse_time_of_day,
    to_minute_of_day,
    window_duration_hours,
    window_duration_minutes,
)
from custom_components.overnight_ev_charger.exceptions import ConfigurationError

START = 23 * 60 + 30  # 23:30
END = 5 * 60 + 30  # 05:30


def test_to_minute_of_day():
    """Test conversion and range checks."""
    assert to_minute_of_day(0, 0) == 0
    assert to_minute_of_day(23, 59) == 1439

    with pytest.raises(ConfigurationError):
        to_minute_of_day(24, 0)
    with pytest.raises(ConfigurationError):
        to_minute_of_day(12, 60)


def test_from_and_format_minute_of_day():
    """Test the reverse conversion wraps past midnight."""
    assert from_minute_of_day(330) == (5, 30)
    assert from_minute_of_day(1440 + 90) == (1, 30)
    assert format_minute_of_day(-40) == "23:20"


def test_overnight_window_membership():
    """Test a window that wraps midnight."""
    assert is_within_window(START, START, END)
    assert is_within_window(23 * 60 + 59, START, END)
    assert is_within_window(0, START, END)
    assert is_within_window(END - 1, START, END)

    # End is exclusive
    assert not is_within_window(END, START, END)
    assert not is_within_window(12 * 60, START, END)
    assert not is_within_window(START - 1, START, END)


def test_same_day_window_membership():
    """Test a window inside one calendar day."""
    assert is_within_window(60, 60, 420)
    assert is_within_window(419, 60, 420)
    assert not is_within_window(420, 60, 420)
    assert not is_within_window(59, 60, 420)


def test_zero_length_window_contains_nothing():
    """A window with equal start and end never matches."""
    for minute in (0, 600, 1439):
        assert not is_within_window(minute, 600, 600)
    assert window_duration_minutes(600, 600) == 0


def test_window_duration():
    """Test durations across midnight."""
    assert window_duration_minutes(START, END) == 360
    assert window_duration_hours(START, END) == 6.0
    assert window_duration_hours(60, 420) == 6.0
    assert window_duration_hours(END, START) == 18.0


def test_normalize_relative_to():
    """Times later than the reference move to the previous day."""
    assert normalize_relative_to(START, END) == START - 1440
    assert normalize_relative_to(60, END) == 60
    assert normalize_relative_to(END, END) == END


def test_minutes_until():
    """Test distance to the next occurrence."""
    assert minutes_until(START, 20 * 60) == 210
    assert minutes_until(END, START) == 360
    assert minutes_until(START, START) == 0
    assert minutes_until(START, START, allow_now=False) == 1440


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("23:30:00", time(23, 30)),
        ("05:30", time(5, 30)),
        ({"hour": 7, "minute": 15}, time(7, 15)),
        (time(4, 0), time(4, 0)),
    ],
)
def test_parse_time_of_day(value, expected):
    """Test the accepted time formats."""
    assert parse_time_of_day(value) == expected


@pytest.mark.parametrize("value", ["25:00", "noon", "12", None, 1230])
def test_parse_time_of_day_invalid(value):
    """Test invalid values raise a configuration error."""
    with pytest.raises(ConfigurationError):
        parse_time_of_day(value)


def test_minute_of_day_round_trip():
    """Every valid hour and minute survives the conversion both ways."""
    for hour in range(24):
        for minute in range(60):
            assert from_minute_of_day(to_minute_of_day(hour, minute)) == (hour, minute)


def test_window_bounds_over_all_pairs():
    """Start is inside, end is outside, duration stays within a day."""
    sample = range(0, 1440, 15)
    for start in sample:
        for end in sample:
            hours = window_duration_hours(start, end)
            assert 0 <= hours <= 24
            if start == end:
                assert hours == 0
                continue
            assert is_within_window(start, start, end)
            assert not is_within_window(end, start, end)
