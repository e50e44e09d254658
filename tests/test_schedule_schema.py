"""Tests for schedule and settings document parsing."""

import datetime

import pytest
from pydantic import ValidationError

from roombook.config import DEFAULT_MAX_DURATION, resolve_max_duration
from roombook.schemas.schedule_schema import (
    DaySchedule,
    Schedule,
    TimeInterval,
    default_schedule,
)
from roombook.schemas.settings_schema import EmailSettings, SystemSettings
from tests.conftest import MONDAY, SATURDAY, SCHEDULE_DOCUMENT, TUESDAY


class TestTimeInterval:
    def test_valid_interval(self):
        interval = TimeInterval(start="08:00", end="12:00")
        assert interval.span_minutes == 240

    def test_start_must_precede_end(self):
        with pytest.raises(ValidationError):
            TimeInterval(start="12:00", end="08:00")

    def test_rejects_bad_format(self):
        with pytest.raises(ValidationError):
            TimeInterval(start="8am", end="12:00")

    def test_contains_is_inclusive_of_bounds(self):
        interval = TimeInterval(start="08:00", end="12:00")
        assert interval.contains(480, 720)
        assert not interval.contains(470, 720)


class TestDayScheduleShapes:
    def test_time_slots_list(self):
        day = DaySchedule.model_validate(
            {"enabled": True, "timeSlots": [{"start": "13:00", "end": "17:00"}, {"start": "08:00", "end": "12:00"}]}
        )
        assert [i.start for i in day.intervals] == ["08:00", "13:00"]

    def test_single_time_slot(self):
        day = DaySchedule.model_validate({"enabled": True, "timeSlot": {"start": "09:00", "end": "17:00"}})
        assert len(day.intervals) == 1
        assert day.intervals[0].end == "17:00"

    def test_null_time_slot(self):
        day = DaySchedule.model_validate({"enabled": True, "timeSlot": None})
        assert day.intervals == []

    def test_overlapping_intervals_rejected(self):
        with pytest.raises(ValidationError):
            DaySchedule.model_validate(
                {"enabled": True, "timeSlots": [{"start": "08:00", "end": "12:00"}, {"start": "11:00", "end": "13:00"}]}
            )

    def test_containing_interval_requires_single_block(self):
        day = DaySchedule.model_validate(SCHEDULE_DOCUMENT["businessHours"]["monday"])
        # 11:00-14:00 spans the lunch gap
        assert day.containing_interval(660, 840) is None
        assert day.containing_interval(480, 720) is not None


class TestSchedule:
    def test_parses_camel_case_document(self):
        schedule = Schedule.model_validate(SCHEDULE_DOCUMENT)
        assert schedule.is_day_enabled(MONDAY)
        assert not schedule.is_day_enabled(SATURDAY)
        assert schedule.max_duration == 240
        assert schedule.time_slot_interval == 30

    def test_weekday_names_are_lowercased(self):
        schedule = Schedule.model_validate({"businessHours": {"Monday": {"enabled": True}}})
        assert schedule.day_schedule(MONDAY) is not None

    def test_unknown_weekday_rejected(self):
        with pytest.raises(ValidationError):
            Schedule.model_validate({"businessHours": {"funday": {"enabled": True}}})

    def test_blackout_lookup(self):
        schedule = Schedule.model_validate(
            {**SCHEDULE_DOCUMENT, "blackoutDates": [{"date": "2026-10-20", "reason": "Holiday"}]}
        )
        blackout = schedule.blackout_for(TUESDAY)
        assert blackout is not None
        assert blackout.reason == "Holiday"
        assert schedule.blackout_for(MONDAY) is None

    def test_blackout_timestamp_resolves_to_local_day(self):
        # Stored as midnight Manila time, i.e. 16:00 UTC the previous day
        schedule = Schedule.model_validate(
            {**SCHEDULE_DOCUMENT, "blackoutDates": [{"date": "2026-10-19T16:00:00Z"}]}
        )
        assert schedule.blackout_dates[0].date == datetime.date(2026, 10, 20)

    def test_zero_interval_rejected(self):
        with pytest.raises(ValidationError):
            Schedule.model_validate({**SCHEDULE_DOCUMENT, "timeSlotInterval": 0})

    def test_duration_options_bounded_by_longest_day(self):
        schedule = Schedule.model_validate(SCHEDULE_DOCUMENT)
        options = schedule.duration_options()
        assert options[0] == 30
        assert options[-1] == 240


class TestMaxDurationMigration:
    def test_default_max_duration_wins(self):
        data = {"defaultMaxDuration": 120, "maxDurationOptions": [60, 180], "maxDuration": 90}
        assert resolve_max_duration(data) == 120

    def test_largest_option_next(self):
        assert resolve_max_duration({"maxDurationOptions": [60, 180, 120], "maxDuration": 90}) == 180

    def test_legacy_max_duration(self):
        assert resolve_max_duration({"maxDuration": 90}) == 90

    def test_fallback(self):
        assert resolve_max_duration({}) == DEFAULT_MAX_DURATION

    def test_missing_fields_match_field_default(self):
        bare = {k: v for k, v in SCHEDULE_DOCUMENT.items() if k != "maxDuration"}
        assert Schedule.model_validate(bare).max_duration == DEFAULT_MAX_DURATION
        assert Schedule().max_duration == DEFAULT_MAX_DURATION
        assert default_schedule().max_duration == DEFAULT_MAX_DURATION == 240

    def test_schedule_migrates_legacy_fields(self):
        schedule = Schedule.model_validate({**SCHEDULE_DOCUMENT, "defaultMaxDuration": 150})
        assert schedule.max_duration == 150


class TestSettingsDefaults:
    def test_system_settings_defaults(self):
        system = SystemSettings()
        assert system.require_approval is True
        assert system.allow_overlapping is True
        assert system.max_overlapping_reservations == 2
        assert system.min_advance_booking_days == 0

    def test_system_settings_from_camel_case(self):
        system = SystemSettings.model_validate(
            {"allowOverlapping": False, "use12HourFormat": False, "maxOverlappingReservations": 3}
        )
        assert system.allow_overlapping is False
        assert system.use_12_hour_format is False
        assert system.max_overlapping_reservations == 3

    def test_email_toggles_default_off(self):
        email = EmailSettings()
        assert email.send_user_emails is False
        assert email.send_admin_emails is False
        assert "{name}" in email.templates.approval
