"""
Reservation request validation.

Runs every check in a fixed order and accumulates messages instead of
stopping at the first problem:

1. Required fields and attendee bounds
2. Date window (past, advance notice, blackout, weekday enabled)
3. Time format and ordering
4. Operational hours (a single open interval must contain the range)
5. Duration bounds and interval alignment
6. Slot conflicts against approved reservations

Errors block submission; warnings never do. The validator is pure: it
receives settings, the schedule, approved reservations and the current
time, and never touches a store. Any unexpected exception yields a
single generic error with ``unavailable`` status.
"""

import datetime
import logging
from datetime import timedelta, tzinfo
from typing import Iterable, Optional

from roombook.config import settings
from roombook.scheduling.conflict_resolver import resolve
from roombook.schemas.reservation_schema import Reservation, ReservationRequest
from roombook.schemas.schedule_schema import Schedule
from roombook.schemas.settings_schema import SystemSettings
from roombook.schemas.validation_schema import (
    AvailabilityStatus,
    DetailedConflictInfo,
    ValidationResult,
)
from roombook.utils import (
    combine_local,
    is_valid_email,
    is_valid_time_format,
    local_now,
    step_times,
    to_minutes,
    weekday_name,
)

logger = logging.getLogger(__name__)

MIN_ATTENDEES = 1
GENERIC_ERROR = "An error occurred while validating the reservation. Please try again."


def _validate_fields(request: ReservationRequest, errors: list[str]) -> None:
    if not request.name.strip():
        errors.append("Name is required")
    if not request.email.strip() or not is_valid_email(request.email):
        errors.append("Valid email address is required")
    if not request.purpose.strip():
        errors.append("Purpose is required")
    if not request.reservation_type.strip():
        errors.append("Reservation type is required")

    attendees = request.attendees
    max_attendees = settings.scheduling.max_attendees
    if isinstance(attendees, bool) or not isinstance(attendees, int):
        errors.append("Number of attendees must be a whole number")
    elif attendees < MIN_ATTENDEES:
        errors.append(f"Number of attendees must be at least {MIN_ATTENDEES}")
    elif attendees > max_attendees:
        errors.append(f"Number of attendees cannot exceed {max_attendees}")


def _validate_date(
    request: ReservationRequest,
    schedule: Schedule,
    system_settings: SystemSettings,
    now: datetime.datetime,
    tz: tzinfo,
    errors: list[str],
    warnings: list[str],
) -> None:
    day = request.date
    today = now.astimezone(tz).date()
    lead_days = system_settings.min_advance_booking_days

    if lead_days == 0:
        if day < today:
            errors.append("Reservation date cannot be in the past")
            return
    else:
        if combine_local(day, request.start_time, tz) < now:
            errors.append("Reservation date cannot be in the past")
            return
        if day < today + timedelta(days=lead_days):
            unit = "day" if lead_days == 1 else "days"
            errors.append(f"Reservations must be made at least {lead_days} {unit} in advance")
            return

    horizon = system_settings.max_advance_booking_days
    if horizon is not None and day > today + timedelta(days=horizon):
        errors.append(f"Reservations cannot be made more than {horizon} days in advance")
        return

    blackout = schedule.blackout_for(day)
    if blackout is not None:
        if blackout.reason:
            errors.append(f"Selected date is not available for reservations: {blackout.reason}")
        else:
            errors.append("Selected date is not available for reservations")
        return

    day_schedule = schedule.day_schedule(day)
    if day_schedule is None or not day_schedule.enabled:
        errors.append(
            f"Reservations are not available on {weekday_name(day).capitalize()}s"
        )
        return

    if not day_schedule.intervals:
        warnings.append(f"No time slot configured for {weekday_name(day)}")


def _validate_times(request: ReservationRequest, errors: list[str]) -> bool:
    """Check format and ordering; returns False when later checks are meaningless."""
    if not is_valid_time_format(request.start_time):
        errors.append("Invalid start time format")
        return False
    if not is_valid_time_format(request.end_time):
        errors.append("Invalid end time format")
        return False
    if to_minutes(request.end_time) <= to_minutes(request.start_time):
        errors.append("End time must be after start time")
        return False
    return True


def _validate_operational_hours(
    request: ReservationRequest, schedule: Schedule, errors: list[str]
) -> None:
    day_schedule = schedule.day_schedule(request.date)
    if day_schedule is None or not day_schedule.enabled:
        return  # reported by the date checks
    start, end = to_minutes(request.start_time), to_minutes(request.end_time)
    if day_schedule.containing_interval(start, end) is None:
        errors.append("Requested time is outside operational hours")


def _validate_duration(
    request: ReservationRequest,
    schedule: Schedule,
    errors: list[str],
    warnings: list[str],
) -> None:
    duration = to_minutes(request.end_time) - to_minutes(request.start_time)
    if duration < schedule.min_duration:
        errors.append(f"Minimum reservation duration is {schedule.min_duration} minutes")
    if duration > schedule.max_duration:
        errors.append(f"Maximum reservation duration is {schedule.max_duration} minutes")
    if duration % schedule.time_slot_interval != 0:
        warnings.append(
            f"Reservation duration should be in {schedule.time_slot_interval}-minute intervals"
        )


def affected_time_slots(start_time: str, end_time: str, interval: int) -> list[str]:
    """Slot labels covered by ``[start_time, end_time)`` at ``interval`` granularity."""
    return step_times(to_minutes(start_time), to_minutes(end_time), interval)


def validate_request(
    request: ReservationRequest,
    schedule: Schedule,
    system_settings: SystemSettings,
    approved_reservations: Iterable[Reservation],
    now: Optional[datetime.datetime] = None,
    tz: Optional[tzinfo] = None,
    exclude_reservation_id: Optional[str] = None,
) -> ValidationResult:
    """Validate a reservation request against schedule, policy and bookings."""
    errors: list[str] = []
    warnings: list[str] = []
    tz = tz or settings.scheduling.tz
    now = now or local_now(tz)
    if now.tzinfo is None:
        now = now.replace(tzinfo=tz)

    try:
        _validate_fields(request, errors)
        _validate_date(request, schedule, system_settings, now, tz, errors, warnings)
        if not _validate_times(request, errors):
            return ValidationResult(
                errors=errors,
                warnings=warnings,
                availability_status=AvailabilityStatus.UNAVAILABLE,
            )
        _validate_operational_hours(request, schedule, errors)
        _validate_duration(request, schedule, errors, warnings)

        report = resolve(
            request.date,
            request.start_time,
            request.end_time,
            approved_reservations,
            max_concurrency=system_settings.max_overlapping_reservations,
            allow_overlapping=system_settings.allow_overlapping,
            exclude_reservation_id=exclude_reservation_id,
        )
        errors.extend(report.errors)
        warnings.extend(report.warnings)

        return ValidationResult(
            errors=errors,
            warnings=warnings,
            availability_status=report.availability_status,
            conflicting_reservations=report.overlapping_reservations,
            max_concurrent_reservations=report.max_capacity,
            current_occupancy=report.worst_occupancy,
            detailed_conflict_info=DetailedConflictInfo(
                worst_slot_occupancy=report.worst_occupancy,
                total_conflicting_reservations=len(report.overlapping_reservations),
                affected_time_slots=affected_time_slots(
                    request.start_time, request.end_time, schedule.time_slot_interval
                ),
            ),
        )
    except Exception:
        logger.exception("Error validating reservation request for %s", request.date)
        return ValidationResult(
            errors=[GENERIC_ERROR],
            warnings=warnings,
            availability_status=AvailabilityStatus.UNAVAILABLE,
        )
