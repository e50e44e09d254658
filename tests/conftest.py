"""Shared test fixtures and helpers."""

import datetime
from typing import Optional

import pytest

from roombook.config import settings
from roombook.reservation_service import ReservationService
from roombook.schemas.reservation_schema import (
    Reservation,
    ReservationRequest,
    ReservationStatus,
)
from roombook.schemas.schedule_schema import Schedule, default_schedule
from roombook.schemas.settings_schema import SystemSettings
from roombook.scheduling.alternatives import TTLCache
from roombook.scheduling.state_machine import ReservationStateMachine
from roombook.tools.notifications import (
    LoggingNotificationSender,
    NotificationDispatcher,
    NotificationQueue,
)
from roombook.tools.reservation_store import InMemoryReservationStore
from roombook.tools.settings_store import InMemorySettingsStore

TZ = settings.scheduling.tz

# Monday 19 October 2026, 08:00 local time
NOW = datetime.datetime(2026, 10, 19, 8, 0, tzinfo=TZ)
TODAY = NOW.date()
MONDAY = TODAY
TUESDAY = datetime.date(2026, 10, 20)
WEDNESDAY = datetime.date(2026, 10, 21)
SATURDAY = datetime.date(2026, 10, 24)
SUNDAY = datetime.date(2026, 10, 25)

WEEKDAY_HOURS = {
    "enabled": True,
    "timeSlots": [
        {"start": "08:00", "end": "12:00"},
        {"start": "13:00", "end": "17:00"},
    ],
}

SCHEDULE_DOCUMENT = {
    "businessHours": {
        **{name: dict(WEEKDAY_HOURS) for name in ("monday", "tuesday", "wednesday", "thursday", "friday")},
        "saturday": {"enabled": False, "timeSlots": []},
        "sunday": {"enabled": False, "timeSlots": []},
    },
    "blackoutDates": [],
    "minDuration": 30,
    "maxDuration": 240,
    "timeSlotInterval": 30,
}


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ManualScheduler:
    """Collects queue wake-ups so a test decides when they run."""

    def __init__(self) -> None:
        self.pending = []

    def __call__(self, delay, callback) -> None:
        self.pending.append((delay, callback))

    def run_pending(self) -> None:
        pending, self.pending = self.pending, []
        for _, callback in pending:
            callback()


def make_request(
    day: datetime.date = TUESDAY,
    start_time: str = "09:00",
    end_time: str = "10:00",
    **overrides,
) -> ReservationRequest:
    """Helper to create a well-formed ReservationRequest."""
    data = {
        "name": "Ana Cruz",
        "email": "ana.cruz@example.com",
        "date": day,
        "start_time": start_time,
        "end_time": end_time,
        "purpose": "Quarterly planning",
        "attendees": 10,
        "reservation_type": "event",
    }
    data.update(overrides)
    return ReservationRequest(**data)


def make_reservation(
    reservation_id: str,
    start_time: str,
    end_time: str,
    day: datetime.date = TUESDAY,
    status: ReservationStatus = ReservationStatus.APPROVED,
    **overrides,
) -> Reservation:
    """Helper to create a stored Reservation with sensible defaults."""
    data = {
        "id": reservation_id,
        "user_id": "someone@example.com",
        "name": "Existing Booking",
        "email": "someone@example.com",
        "date": day,
        "start_time": start_time,
        "end_time": end_time,
        "purpose": "Existing booking",
        "attendees": 5,
        "reservation_type": "training",
        "status": status,
    }
    data.update(overrides)
    return Reservation(**data)


@pytest.fixture
def schedule() -> Schedule:
    return default_schedule()


@pytest.fixture
def system_settings() -> SystemSettings:
    return SystemSettings()


@pytest.fixture
def state_machine():
    return ReservationStateMachine()


@pytest.fixture
def reservation_store():
    return InMemoryReservationStore()


@pytest.fixture
def settings_store():
    return InMemorySettingsStore(
        system={
            "requireApproval": True,
            "allowOverlapping": True,
            "maxOverlappingReservations": 2,
            "contactEmail": "facilities@example.com",
        },
        time_slots=SCHEDULE_DOCUMENT,
        email={"sendUserEmails": True, "sendAdminEmails": True},
    )


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def sender():
    return LoggingNotificationSender()


@pytest.fixture
def manual_scheduler():
    return ManualScheduler()


@pytest.fixture
def notification_queue(sender, fake_clock, manual_scheduler):
    return NotificationQueue(
        sender, retry_delay_sec=5, clock=fake_clock, scheduler=manual_scheduler
    )


@pytest.fixture
def dispatcher(notification_queue):
    return NotificationDispatcher(notification_queue)


@pytest.fixture
def service(reservation_store, settings_store, dispatcher):
    svc = ReservationService(
        reservation_store,
        settings_store,
        dispatcher=dispatcher,
        clock=lambda: NOW,
    )
    svc.finder.cache.clear()
    return svc


@pytest.fixture
def ttl_cache(fake_clock):
    return TTLCache(60, clock=fake_clock)
