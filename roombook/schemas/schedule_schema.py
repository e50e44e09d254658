"""Business-hour schedule models (the ``timeSlotSettings`` document)."""

import datetime
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from roombook.config import DEFAULT_MAX_DURATION, resolve_max_duration
from roombook.utils import (
    WEEKDAY_NAMES,
    is_valid_time_format,
    to_local_date,
    to_minutes,
    weekday_name,
)

# Used by duration_options() when no day is enabled.
FALLBACK_DAY_SPAN = 540
DURATION_OPTION_STEP = 30


class _DocumentModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TimeInterval(_DocumentModel):
    """An open block of business hours, ``[start, end)``."""

    start: str
    end: str
    id: Optional[str] = None

    @field_validator("start", "end")
    @classmethod
    def _check_format(cls, value: str) -> str:
        if not is_valid_time_format(value):
            raise ValueError(f"invalid time {value!r}, expected HH:mm")
        return value

    @model_validator(mode="after")
    def _check_order(self) -> "TimeInterval":
        if self.start_minutes >= self.end_minutes:
            raise ValueError(f"interval start {self.start} must be before end {self.end}")
        return self

    @property
    def start_minutes(self) -> int:
        return to_minutes(self.start)

    @property
    def end_minutes(self) -> int:
        return to_minutes(self.end)

    @property
    def span_minutes(self) -> int:
        return self.end_minutes - self.start_minutes

    def contains(self, start_minutes: int, end_minutes: int) -> bool:
        return self.start_minutes <= start_minutes and end_minutes <= self.end_minutes


class DaySchedule(_DocumentModel):
    """Opening hours for one weekday.

    Stored documents come in two shapes: a ``timeSlots`` list (several
    blocks per day) or a single ``timeSlot`` (possibly null). Both are
    normalized into ``intervals`` here so the rest of the engine has one
    code path.
    """

    enabled: bool = False
    intervals: list[TimeInterval] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _normalize_shape(cls, data: Any) -> Any:
        if not isinstance(data, dict) or "intervals" in data:
            return data
        data = dict(data)
        if "timeSlots" in data or "time_slots" in data:
            data["intervals"] = data.pop("timeSlots", None) or data.pop("time_slots", None) or []
        elif "timeSlot" in data or "time_slot" in data:
            single = data.pop("timeSlot", None) or data.pop("time_slot", None)
            data["intervals"] = [single] if single else []
        return data

    @field_validator("intervals")
    @classmethod
    def _sorted_non_overlapping(cls, intervals: list[TimeInterval]) -> list[TimeInterval]:
        ordered = sorted(intervals, key=lambda i: i.start_minutes)
        for prev, nxt in zip(ordered, ordered[1:]):
            if nxt.start_minutes < prev.end_minutes:
                raise ValueError(
                    f"intervals {prev.start}-{prev.end} and {nxt.start}-{nxt.end} overlap"
                )
        return ordered

    @property
    def longest_span(self) -> int:
        return max((i.span_minutes for i in self.intervals), default=0)

    def containing_interval(self, start_minutes: int, end_minutes: int) -> Optional[TimeInterval]:
        for interval in self.intervals:
            if interval.contains(start_minutes, end_minutes):
                return interval
        return None


class BlackoutDate(_DocumentModel):
    """A calendar day closed to reservations."""

    date: datetime.date
    reason: str = ""
    id: Optional[str] = None

    @field_validator("date", mode="before")
    @classmethod
    def _to_calendar_day(cls, value: Union[datetime.date, datetime.datetime, str]) -> datetime.date:
        return to_local_date(value)


class Schedule(_DocumentModel):
    """Business hours, blackout days and duration bounds."""

    business_hours: dict[str, DaySchedule] = Field(default_factory=dict)
    blackout_dates: list[BlackoutDate] = Field(default_factory=list)
    min_duration: int = Field(default=30, ge=0)
    max_duration: int = Field(default=DEFAULT_MAX_DURATION, ge=1)
    time_slot_interval: int = Field(default=30, gt=0)

    @model_validator(mode="before")
    @classmethod
    def _migrate_legacy_fields(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        data["max_duration"] = resolve_max_duration(data)
        for legacy in ("maxDuration", "defaultMaxDuration", "default_max_duration",
                       "maxDurationOptions", "max_duration_options"):
            data.pop(legacy, None)
        return data

    @field_validator("business_hours")
    @classmethod
    def _lowercase_days(cls, hours: dict[str, DaySchedule]) -> dict[str, DaySchedule]:
        normalized = {name.lower(): schedule for name, schedule in hours.items()}
        unknown = set(normalized) - set(WEEKDAY_NAMES)
        if unknown:
            raise ValueError(f"unknown weekday names: {sorted(unknown)}")
        return normalized

    def day_schedule(self, day: datetime.date) -> Optional[DaySchedule]:
        return self.business_hours.get(weekday_name(day))

    def is_day_enabled(self, day: datetime.date) -> bool:
        schedule = self.day_schedule(day)
        return schedule is not None and schedule.enabled

    def blackout_for(self, day: datetime.date) -> Optional[BlackoutDate]:
        for blackout in self.blackout_dates:
            if blackout.date == day:
                return blackout
        return None

    def longest_day_span(self) -> int:
        """Longest single open interval across all enabled days, in minutes."""
        return max(
            (s.longest_span for s in self.business_hours.values() if s.enabled),
            default=0,
        )

    def duration_options(self, step: int = DURATION_OPTION_STEP) -> list[int]:
        """Selectable maximum durations, bounded by the longest enabled day."""
        ceiling = self.longest_day_span() or FALLBACK_DAY_SPAN
        options = list(range(self.min_duration, ceiling + 1, step)) if step > 0 else []
        if not options and ceiling >= self.min_duration:
            options = [self.min_duration]
        return options


def default_schedule() -> Schedule:
    """Weekdays 08:00-12:00 and 13:00-17:00, weekends closed."""
    weekday = {
        "enabled": True,
        "intervals": [
            {"start": "08:00", "end": "12:00"},
            {"start": "13:00", "end": "17:00"},
        ],
    }
    hours = {name: dict(weekday) for name in WEEKDAY_NAMES[:5]}
    hours.update(saturday={"enabled": False}, sunday={"enabled": False})
    return Schedule.model_validate(
        {
            "business_hours": hours,
            "blackout_dates": [],
            "min_duration": 30,
            "max_duration": DEFAULT_MAX_DURATION,
            "time_slot_interval": 30,
        }
    )
