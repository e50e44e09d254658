"""
Per-slot occupancy for availability browsing.

A slot at time ``t`` is covered by reservation ``r`` when
``r.start <= t < r.end``. Status follows the concurrency cap:

    0 reservations        -> available
    >= cap                -> full
    between               -> limited (bookable only if overlapping is allowed)

``available`` on each slot is the bookability decision, not merely
``occupancy == 0``.
"""

import logging
from typing import Iterable

from roombook.schemas.reservation_schema import Reservation
from roombook.schemas.validation_schema import AvailabilityStatus, SlotAvailability
from roombook.utils import to_minutes

logger = logging.getLogger(__name__)


def slot_status(
    occupancy: int, max_concurrency: int, allow_overlapping: bool
) -> tuple[AvailabilityStatus, bool]:
    """Classify a single occupancy count as ``(status, bookable)``."""
    if occupancy == 0:
        return AvailabilityStatus.AVAILABLE, True
    if occupancy >= max_concurrency:
        return AvailabilityStatus.FULL, False
    return AvailabilityStatus.LIMITED, allow_overlapping


def compute_occupancy(
    slots: Iterable[str],
    reservations: Iterable[Reservation],
    max_concurrency: int,
    allow_overlapping: bool,
) -> list[SlotAvailability]:
    """Annotate each slot with occupancy, status and bookability.

    ``reservations`` should be the approved reservations on the slots' date.
    """
    spans = [
        (r.id, to_minutes(r.start_time), to_minutes(r.end_time)) for r in reservations
    ]
    result: list[SlotAvailability] = []
    for time in slots:
        minute = to_minutes(time)
        covering = [rid for rid, start, end in spans if start <= minute < end]
        status, available = slot_status(len(covering), max_concurrency, allow_overlapping)
        result.append(
            SlotAvailability(
                time=time,
                occupancy=len(covering),
                max_occupancy=max_concurrency,
                status=status,
                available=available,
                reservation_ids=covering,
            )
        )
    logger.debug(
        "Occupancy computed for %d slots against %d reservations", len(result), len(spans)
    )
    return result


def summarize_day(slots: list[SlotAvailability]) -> AvailabilityStatus:
    """Collapse slot statuses into one status for a date picker.

    Any bookable slot makes the day available; otherwise a day with
    partially occupied slots is limited; anything else is unavailable.
    """
    if any(s.available for s in slots):
        return AvailabilityStatus.AVAILABLE
    if any(s.status == AvailabilityStatus.LIMITED for s in slots):
        return AvailabilityStatus.LIMITED
    return AvailabilityStatus.UNAVAILABLE
