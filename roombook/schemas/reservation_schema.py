"""Reservation request and record models."""

import datetime
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from roombook.utils import to_local_date


class ReservationStatus(str, Enum):
    """Lifecycle status of a reservation."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class ReservationRequest(BaseModel):
    """A booking request as submitted.

    Fields are deliberately loose: blank names, bad emails and attendee
    counts out of range are reported by the validator as messages rather
    than rejected at construction time.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    user_id: str = ""
    name: str = ""
    email: str = ""
    date: datetime.date
    start_time: str = ""
    end_time: str = ""
    purpose: str = ""
    attendees: Any = 0
    reservation_type: str = Field(default="", alias="type")
    notes: Optional[str] = None

    @field_validator("date", mode="before")
    @classmethod
    def _to_calendar_day(
        cls, value: Union[datetime.date, datetime.datetime, str]
    ) -> datetime.date:
        return to_local_date(value)


class Reservation(ReservationRequest):
    """A persisted reservation."""

    id: str
    status: ReservationStatus = ReservationStatus.PENDING
    created_at: datetime.datetime = Field(
        default_factory=lambda: datetime.datetime.now(datetime.timezone.utc)
    )
    updated_at: Optional[datetime.datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (ReservationStatus.REJECTED, ReservationStatus.CANCELLED)
