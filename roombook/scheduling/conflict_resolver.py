"""
Conflict detection for a proposed booking.

Given a proposed ``[start, end)`` on a date, finds the approved
reservations it intersects and computes the worst-case concurrency the
proposal would create with a sweep over interval endpoints. Staggered
overlaps are not simply summed: three bookings that never all coincide
do not make the proposal's worst instant four deep.

Usage:
    report = resolve(day, "10:00", "10:30", approved, max_concurrency=2,
                     allow_overlapping=True)
    if not report.is_bookable:
        ...
"""

import datetime
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional

from roombook.schemas.reservation_schema import Reservation, ReservationStatus
from roombook.schemas.validation_schema import AvailabilityStatus
from roombook.utils import intervals_overlap, to_minutes

logger = logging.getLogger(__name__)

# Severity thresholds on worst-case occupancy
LOW_SEVERITY_MAX = 2
MEDIUM_SEVERITY_MAX = 4

# Sweep event kinds; ends sort before starts at equal times
_END = 0
_START = 1


class ConflictSeverity(str, Enum):
    """Admin-facing contention level."""

    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


def classify_severity(worst_occupancy: int) -> ConflictSeverity:
    if worst_occupancy <= 1:
        return ConflictSeverity.NONE
    if worst_occupancy <= LOW_SEVERITY_MAX:
        return ConflictSeverity.LOW
    if worst_occupancy <= MEDIUM_SEVERITY_MAX:
        return ConflictSeverity.MEDIUM
    return ConflictSeverity.HIGH


@dataclass
class ConflictReport:
    """Outcome of checking a proposal against existing reservations."""

    overlapping_reservations: list[Reservation]
    worst_occupancy: int
    max_capacity: int
    is_bookable: bool
    allow_overlapping: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def severity(self) -> ConflictSeverity:
        return classify_severity(self.worst_occupancy)

    @property
    def availability_status(self) -> AvailabilityStatus:
        if not self.overlapping_reservations:
            return AvailabilityStatus.AVAILABLE
        if self.is_bookable:
            return AvailabilityStatus.LIMITED
        if self.allow_overlapping:
            return AvailabilityStatus.FULL
        return AvailabilityStatus.UNAVAILABLE


def find_overlapping(
    day: datetime.date,
    start_time: str,
    end_time: str,
    reservations: Iterable[Reservation],
    exclude_reservation_id: Optional[str] = None,
) -> list[Reservation]:
    """Approved reservations on ``day`` whose interval intersects the proposal."""
    start, end = to_minutes(start_time), to_minutes(end_time)
    return [
        r
        for r in reservations
        if r.status == ReservationStatus.APPROVED
        and r.date == day
        and r.id != exclude_reservation_id
        and intervals_overlap(start, end, to_minutes(r.start_time), to_minutes(r.end_time))
    ]


def worst_case_occupancy(
    start_time: str, end_time: str, overlapping: Iterable[Reservation]
) -> int:
    """Maximum simultaneous bookings inside the proposal, the proposal included.

    Each overlapping reservation is clipped to the proposal span, then
    start/end events are swept in time order with ends ahead of starts so
    that back-to-back intervals are never counted together.
    """
    start, end = to_minutes(start_time), to_minutes(end_time)
    events = [(start, _START), (end, _END)]
    for r in overlapping:
        events.append((max(start, to_minutes(r.start_time)), _START))
        events.append((min(end, to_minutes(r.end_time)), _END))
    events.sort()

    current = worst = 0
    for _, kind in events:
        current += 1 if kind == _START else -1
        worst = max(worst, current)
    return worst


def resolve(
    day: datetime.date,
    start_time: str,
    end_time: str,
    reservations: Iterable[Reservation],
    max_concurrency: int,
    allow_overlapping: bool,
    exclude_reservation_id: Optional[str] = None,
) -> ConflictReport:
    """Check a proposed booking against existing reservations."""
    overlapping = find_overlapping(
        day, start_time, end_time, reservations, exclude_reservation_id
    )
    worst = worst_case_occupancy(start_time, end_time, overlapping)

    if allow_overlapping:
        bookable = worst <= max_concurrency
    else:
        bookable = not overlapping

    report = ConflictReport(
        overlapping_reservations=overlapping,
        worst_occupancy=worst,
        max_capacity=max_concurrency,
        is_bookable=bookable,
        allow_overlapping=allow_overlapping,
    )

    if not overlapping:
        return report

    count = len(overlapping)
    noun = "reservation" if count == 1 else "reservations"
    if not allow_overlapping:
        report.errors.append(
            f"This time slot conflicts with {count} existing {noun}; "
            "overlapping reservations are not allowed"
        )
    elif not bookable:
        report.errors.append(
            f"This time slot is fully booked (maximum {max_concurrency} "
            "concurrent reservations)"
        )
    else:
        report.warnings.append(
            f"This time slot overlaps {count} existing {noun} "
            f"({worst} of {max_concurrency} concurrent spots will be used)"
        )

    logger.debug(
        "Conflict check %s %s-%s: %d overlapping, worst=%d, cap=%d, bookable=%s",
        day, start_time, end_time, count, worst, max_concurrency, bookable,
    )
    return report
