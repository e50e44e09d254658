"""Tests for time arithmetic and calendar helpers."""

import datetime
from zoneinfo import ZoneInfo

import pytest

from roombook.utils import (
    combine_local,
    duration_minutes,
    format_display_date,
    intervals_overlap,
    is_valid_email,
    is_valid_time_format,
    minutes_to_time,
    relative_day_label,
    step_times,
    to_local_date,
    to_minutes,
    weekday_name,
)
from tests.conftest import TZ

MANILA = ZoneInfo("Asia/Manila")


class TestMinutes:
    def test_to_minutes(self):
        assert to_minutes("09:30") == 570

    def test_to_minutes_single_digit_hour(self):
        assert to_minutes("9:05") == 545

    def test_minutes_to_time_pads(self):
        assert minutes_to_time(65) == "01:05"

    def test_roundtrip_midnight(self):
        assert minutes_to_time(to_minutes("00:00")) == "00:00"

    def test_duration(self):
        assert duration_minutes("10:00", "11:30") == 90

    def test_duration_reversed_is_negative(self):
        assert duration_minutes("11:00", "10:00") == -60


class TestTimeFormat:
    @pytest.mark.parametrize("value", ["00:00", "9:30", "23:59", "12:00"])
    def test_valid(self, value):
        assert is_valid_time_format(value)

    @pytest.mark.parametrize("value", ["24:00", "12:60", "noon", "", None, "12:5"])
    def test_invalid(self, value):
        assert not is_valid_time_format(value)


class TestEmail:
    def test_valid(self):
        assert is_valid_email("ana@example.com")

    @pytest.mark.parametrize("value", ["", None, "ana", "ana@example", "a b@example.com"])
    def test_invalid(self, value):
        assert not is_valid_email(value)


class TestIntervalsOverlap:
    def test_partial_overlap(self):
        assert intervals_overlap(600, 660, 630, 690)

    def test_touching_endpoints_do_not_overlap(self):
        assert not intervals_overlap(600, 660, 660, 720)

    def test_symmetric(self):
        assert intervals_overlap(600, 660, 540, 610) == intervals_overlap(540, 610, 600, 660)

    def test_containment(self):
        assert intervals_overlap(540, 720, 600, 630)


class TestStepTimes:
    def test_end_exclusive(self):
        assert step_times(480, 600, 30) == ["08:00", "08:30", "09:00", "09:30"]

    def test_uneven_interval(self):
        assert step_times(480, 540, 45) == ["08:00", "08:45"]

    def test_non_positive_interval_raises(self):
        with pytest.raises(ValueError):
            step_times(480, 540, 0)


class TestCalendar:
    def test_weekday_name(self):
        assert weekday_name(datetime.date(2026, 10, 19)) == "monday"

    def test_format_display_date(self):
        assert format_display_date(datetime.date(2026, 10, 20)) == "Tuesday, October 20"

    def test_combine_local(self):
        combined = combine_local(datetime.date(2026, 10, 20), "09:30", TZ)
        assert combined == datetime.datetime(2026, 10, 20, 9, 30, tzinfo=TZ)

    def test_combine_local_invalid_time_is_midnight(self):
        combined = combine_local(datetime.date(2026, 10, 20), "bogus", TZ)
        assert combined.hour == 0 and combined.minute == 0

    def test_to_local_date_plain_string(self):
        assert to_local_date("2026-10-20") == datetime.date(2026, 10, 20)

    def test_to_local_date_utc_string_shifts_to_local_day(self):
        # 20:00 UTC is already the next morning in Manila
        assert to_local_date("2026-10-19T20:00:00Z", MANILA) == datetime.date(2026, 10, 20)

    def test_to_local_date_naive_datetime_is_utc(self):
        value = datetime.datetime(2026, 10, 19, 17, 0)
        assert to_local_date(value, MANILA) == datetime.date(2026, 10, 20)

    def test_to_local_date_passes_dates_through(self):
        day = datetime.date(2026, 10, 20)
        assert to_local_date(day) is day


class TestRelativeDayLabel:
    today = datetime.date(2026, 10, 19)

    @pytest.mark.parametrize(
        "offset, label",
        [(0, "Today"), (1, "Tomorrow"), (-1, "Yesterday"), (5, "In 5 days"), (-3, "3 days ago")],
    )
    def test_labels(self, offset, label):
        day = self.today + datetime.timedelta(days=offset)
        assert relative_day_label(day, self.today) == label
