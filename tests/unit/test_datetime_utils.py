from datetime import date

from studyplan.utils.datetime_utils import (
    daterange,
    format_hours,
    format_minutes,
    format_timer,
    hours_to_minutes,
    parse_time_to_minutes,
    weekday_index,
)
from studyplan.utils.intervals import TimeInterval, merge_intervals, subtract_intervals, total_minutes


def test_parse_time_to_minutes():
    assert parse_time_to_minutes("09:30") == 570
    assert parse_time_to_minutes("24:00") == 1440
    assert parse_time_to_minutes("") is None
    assert parse_time_to_minutes("9am") is None
    assert parse_time_to_minutes("24:30") is None


def test_format_helpers():
    assert format_minutes(570) == "09:30"
    assert format_hours(2.5) == "2h 30m"
    assert format_hours(0.25) == "15m"
    assert format_timer(3900) == "1h 5m"
    assert format_timer(3600) == "1h"
    assert format_timer(2700) == "45m"
    assert hours_to_minutes(1.5) == 90


def test_weekday_index_starts_on_sunday():
    assert weekday_index(date(2025, 3, 9)) == 0
    assert weekday_index(date(2025, 3, 15)) == 6


def test_daterange_is_inclusive():
    days = list(daterange(date(2025, 3, 10), date(2025, 3, 12)))
    assert days == [date(2025, 3, 10), date(2025, 3, 11), date(2025, 3, 12)]


def test_interval_merge_and_subtract():
    merged = merge_intervals([TimeInterval(600, 660), TimeInterval(540, 600), TimeInterval(700, 720)])
    assert merged == [TimeInterval(540, 660), TimeInterval(700, 720)]

    free = subtract_intervals([TimeInterval(360, 1380)], merged)
    assert free[0] == TimeInterval(360, 540)
    assert total_minutes(free) == 1020 - 120 - 20
