"""
Candidate start-time generation from business hours.

A day yields no slots when its weekday is missing or disabled in the
schedule, or when it is a blackout day. Blackout matching is done on the
calendar day in the configured timezone; BlackoutDate values are already
normalized to that zone when the schedule is loaded.
"""

import datetime
import logging

from roombook.schemas.schedule_schema import Schedule
from roombook.utils import step_times, to_minutes, weekday_name

logger = logging.getLogger(__name__)


def generate_slots(day: datetime.date, schedule: Schedule) -> list[str]:
    """Return the ordered ``HH:mm`` start times bookable on ``day``."""
    day_schedule = schedule.day_schedule(day)
    if day_schedule is None or not day_schedule.enabled:
        logger.debug("No slots on %s: %s is disabled", day, weekday_name(day))
        return []

    blackout = schedule.blackout_for(day)
    if blackout is not None:
        logger.debug("No slots on %s: blackout (%s)", day, blackout.reason or "no reason")
        return []

    slots: set[str] = set()
    for interval in day_schedule.intervals:
        slots.update(
            step_times(interval.start_minutes, interval.end_minutes, schedule.time_slot_interval)
        )
    return sorted(slots, key=to_minutes)


def is_bookable_day(day: datetime.date, schedule: Schedule) -> bool:
    """True if the day is enabled, not blacked out, and has opening hours."""
    return bool(generate_slots(day, schedule))
