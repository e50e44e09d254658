"""Derived availability and validation results (never persisted)."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, computed_field

from roombook.schemas.reservation_schema import Reservation


class AvailabilityStatus(str, Enum):
    AVAILABLE = "available"
    LIMITED = "limited"
    FULL = "full"
    UNAVAILABLE = "unavailable"


class SlotAvailability(BaseModel):
    """Occupancy of a single candidate start time."""

    time: str
    occupancy: int = 0
    max_occupancy: int = 1
    status: AvailabilityStatus = AvailabilityStatus.AVAILABLE
    available: bool = True
    reservation_ids: list[str] = Field(default_factory=list)


class DetailedConflictInfo(BaseModel):
    worst_slot_occupancy: int = 0
    total_conflicting_reservations: int = 0
    affected_time_slots: list[str] = Field(default_factory=list)
    recommended_alternatives: list[str] = Field(default_factory=list)


class ValidationResult(BaseModel):
    """Outcome of validating one reservation request.

    ``errors`` block submission, ``warnings`` never do.
    """

    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    availability_status: AvailabilityStatus = AvailabilityStatus.UNAVAILABLE
    conflicting_reservations: list[Reservation] = Field(default_factory=list)
    max_concurrent_reservations: Optional[int] = None
    current_occupancy: Optional[int] = None
    detailed_conflict_info: Optional[DetailedConflictInfo] = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_valid(self) -> bool:
        return not self.errors


class AlternativeDate(BaseModel):
    """A nearby day on which the same time range would validate."""

    date: str
    display_date: str
    relative: Optional[str] = None
