"""System-wide and email settings models.

Defaults here are the documented fallbacks used whenever a settings
document is missing or cannot be read. Email toggles default to off so
that an unreadable configuration never triggers mail.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class SystemSettings(BaseModel):
    """Admin-editable singleton governing booking policy."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    system_name: str = "Reservation System"
    organization_name: str = "Your Organization"
    contact_email: str = "admin@example.com"
    require_approval: bool = True
    allow_overlapping: bool = True
    max_overlapping_reservations: int = Field(default=2, ge=1)
    min_advance_booking_days: int = Field(default=0, ge=0)
    max_advance_booking_days: Optional[int] = Field(default=None, ge=1)
    public_calendar: bool = True
    reservation_types: list[str] = Field(
        default_factory=lambda: ["event", "training", "gym", "other"]
    )
    use_12_hour_format: bool = Field(default=True, alias="use12HourFormat")


class EmailTemplates(BaseModel):
    """Plain-text bodies with ``{placeholder}`` substitution."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    submission: str = (
        "Dear {name},\n\nWe have received your reservation request for {date} "
        "from {startTime} to {endTime}.\n\nPurpose: {purpose}\n\n"
        "You will be notified once it has been reviewed."
    )
    approval: str = (
        "Dear {name},\n\nYour reservation request for {date} from {startTime} "
        "to {endTime} has been approved.\n\nPurpose: {purpose}\n\nThank you!"
    )
    rejection: str = (
        "Dear {name},\n\nWe regret to inform you that your reservation request "
        "for {date} from {startTime} to {endTime} has been rejected.\n\n"
        "Purpose: {purpose}\n\nPlease contact us if you have any questions."
    )
    notification: str = (
        "New reservation request:\n\nName: {name}\nEmail: {email}\nDate: {date}\n"
        "Time: {startTime} - {endTime}\nPurpose: {purpose}\nAttendees: {attendees}"
    )
    cancellation: str = (
        "Dear {name},\n\nYour reservation for {date} from {startTime} to "
        "{endTime} has been cancelled.\n\nPurpose: {purpose}"
    )
    confirmation_subject: Optional[str] = None


class EmailSettings(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    send_user_emails: bool = False
    send_admin_emails: bool = False
    notification_recipients: list[str] = Field(default_factory=list)
    templates: EmailTemplates = Field(default_factory=EmailTemplates)
