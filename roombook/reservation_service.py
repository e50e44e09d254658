"""
Reservation service: the one place where stores, the scheduling engine and
notifications meet.

Every public method tags its log records with a fresh correlation id.
Mutations never raise for expected failures; they return an
OperationResult carrying a user-facing message, mirroring how the admin
and booking screens consume them. Notifications are emitted only after
the store accepted the change, and their failures never undo it.
"""

import datetime
import threading
from collections import Counter
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Callable, Optional

from roombook.config import settings
from roombook.logging_context import get_request_logger, new_request_id
from roombook.scheduling.alternatives import AlternativeDateFinder
from roombook.scheduling.conflict_resolver import resolve
from roombook.scheduling.occupancy import compute_occupancy, summarize_day
from roombook.scheduling.slot_generator import generate_slots, is_bookable_day
from roombook.scheduling.state_machine import (
    Actor,
    InvalidTransitionError,
    NotificationKind,
    ReservationStateMachine,
    TransitionTrigger,
)
from roombook.scheduling.validator import validate_request
from roombook.schemas.reservation_schema import (
    Reservation,
    ReservationRequest,
    ReservationStatus,
)
from roombook.schemas.validation_schema import (
    AlternativeDate,
    AvailabilityStatus,
    SlotAvailability,
    ValidationResult,
)
from roombook.tools.notifications import (
    LoggingNotificationSender,
    NotificationDispatcher,
    NotificationEvent,
    NotificationQueue,
)
from roombook.tools.reservation_store import ReservationStore
from roombook.tools.settings_store import (
    SettingsStore,
    load_email_settings,
    load_schedule,
    load_system_settings,
)
from roombook.utils import duration_minutes, local_now

logger = get_request_logger(__name__)

AVAILABILITY_CHECK_NAME = "Availability Check"
AVAILABILITY_CHECK_EMAIL = "availability-check@example.com"
NOT_FOUND_MESSAGE = "Reservation not found"


@dataclass
class OperationResult:
    """Outcome of a service mutation."""

    success: bool
    message: str
    reservation_id: Optional[str] = None
    status: Optional[ReservationStatus] = None
    validation: Optional[ValidationResult] = None


@dataclass
class PublicAvailability:
    """Per-day availability over a date range, for the public calendar."""

    days: dict[datetime.date, AvailabilityStatus] = field(default_factory=dict)

    @property
    def available_dates(self) -> list[datetime.date]:
        return [
            day for day, status in sorted(self.days.items())
            if status != AvailabilityStatus.UNAVAILABLE
        ]


@dataclass
class ReservationStats:
    total_reservations: int = 0
    total_attendees: int = 0
    pending_count: int = 0
    approved_count: int = 0
    rejected_count: int = 0
    cancelled_count: int = 0
    approval_rate: float = 0.0
    type_distribution: dict[str, int] = field(default_factory=dict)
    popular_time_slots: list[tuple[str, int]] = field(default_factory=list)


@dataclass
class UserStats:
    total_reservations: int = 0
    approved_reservations: int = 0
    pending_reservations: int = 0
    rejected_reservations: int = 0
    cancelled_reservations: int = 0
    total_hours: float = 0.0


class ReservationService:
    """Availability queries, validation and the reservation lifecycle."""

    def __init__(
        self,
        reservation_store: ReservationStore,
        settings_store: SettingsStore,
        dispatcher: Optional[NotificationDispatcher] = None,
        finder: Optional[AlternativeDateFinder] = None,
        clock: Optional[Callable[[], datetime.datetime]] = None,
    ) -> None:
        self._tz = settings.scheduling.tz
        self._reservations = reservation_store
        self._settings = settings_store
        self._dispatcher = dispatcher or NotificationDispatcher(
            NotificationQueue(LoggingNotificationSender())
        )
        self._clock = clock or (lambda: local_now(self._tz))
        self._finder = finder or AlternativeDateFinder(
            self.check_availability, today=self._today
        )
        self._date_locks: dict[datetime.date, threading.Lock] = {}
        self._date_locks_guard = threading.Lock()

    @property
    def dispatcher(self) -> NotificationDispatcher:
        return self._dispatcher

    @property
    def finder(self) -> AlternativeDateFinder:
        return self._finder

    def _now(self) -> datetime.datetime:
        return self._clock()

    def _today(self) -> datetime.date:
        return self._now().astimezone(self._tz).date()

    def _lock_for(self, day: datetime.date) -> threading.Lock:
        with self._date_locks_guard:
            return self._date_locks.setdefault(day, threading.Lock())

    # -- availability -------------------------------------------------------

    def get_available_slots(self, day: datetime.date) -> list[SlotAvailability]:
        """Occupancy of every candidate start time on ``day``."""
        schedule = load_schedule(self._settings)
        system = load_system_settings(self._settings)
        slots = generate_slots(day, schedule)
        if not slots:
            return []
        approved = self._reservations.get_reservations_for_date(day)
        return compute_occupancy(
            slots,
            approved,
            max_concurrency=system.max_overlapping_reservations,
            allow_overlapping=system.allow_overlapping,
        )

    def get_public_availability(
        self, start: datetime.date, end: datetime.date
    ) -> PublicAvailability:
        """Summarize each day in ``[start, end]`` as available, limited or unavailable."""
        new_request_id("PUB")
        schedule = load_schedule(self._settings)
        result = PublicAvailability()
        day = start
        while day <= end:
            if is_bookable_day(day, schedule):
                result.days[day] = summarize_day(self.get_available_slots(day))
            else:
                result.days[day] = AvailabilityStatus.UNAVAILABLE
            day += timedelta(days=1)
        logger.info(
            "Public availability %s..%s: %d bookable day(s)",
            start, end, len(result.available_dates),
        )
        return result

    def check_availability(
        self, day: datetime.date, start_time: str, end_time: str
    ) -> ValidationResult:
        """Validate a bare time range with a placeholder requester."""
        system = load_system_settings(self._settings)
        placeholder = ReservationRequest(
            name=AVAILABILITY_CHECK_NAME,
            email=AVAILABILITY_CHECK_EMAIL,
            date=day,
            start_time=start_time,
            end_time=end_time,
            purpose="Availability check",
            attendees=1,
            reservation_type=system.reservation_types[0] if system.reservation_types else "other",
        )
        return validate_request(
            placeholder,
            load_schedule(self._settings),
            system,
            self._reservations.get_reservations_for_date(day),
            now=self._now(),
            tz=self._tz,
        )

    def find_alternatives(
        self,
        day: datetime.date,
        start_time: str,
        end_time: str,
        max_suggestions: Optional[int] = None,
    ) -> list[AlternativeDate]:
        return self._finder.find_alternatives(day, start_time, end_time, max_suggestions)

    # -- validation and submission -----------------------------------------

    def _validate(
        self,
        request: ReservationRequest,
        exclude_reservation_id: Optional[str] = None,
    ) -> ValidationResult:
        return validate_request(
            request,
            load_schedule(self._settings),
            load_system_settings(self._settings),
            self._reservations.get_reservations_for_date(request.date),
            now=self._now(),
            tz=self._tz,
            exclude_reservation_id=exclude_reservation_id,
        )

    def validate(self, request: ReservationRequest) -> ValidationResult:
        """Validate ``request``; conflicting requests get alternative dates attached."""
        new_request_id("VAL")
        result = self._validate(request)
        if (
            not result.is_valid
            and result.conflicting_reservations
            and result.detailed_conflict_info is not None
        ):
            alternatives = self.find_alternatives(
                request.date, request.start_time, request.end_time
            )
            result.detailed_conflict_info.recommended_alternatives = [
                alt.date for alt in alternatives
            ]
        return result

    def submit_reservation(self, request: ReservationRequest) -> OperationResult:
        """Validate and persist a request, serialized per calendar date."""
        new_request_id("SUB")
        system = load_system_settings(self._settings)

        with self._lock_for(request.date):
            validation = self._validate(request)
            if not validation.is_valid:
                logger.info(
                    "Rejected submission for %s: %s", request.date, "; ".join(validation.errors)
                )
                return OperationResult(
                    success=False,
                    message=validation.errors[0],
                    validation=validation,
                )
            status = (
                ReservationStatus.PENDING if system.require_approval else ReservationStatus.APPROVED
            )
            try:
                reservation_id = self._reservations.create_reservation(request, status=status)
            except Exception:
                logger.exception("Failed to store reservation for %s", request.date)
                return OperationResult(
                    success=False,
                    message="Failed to submit reservation. Please try again.",
                    validation=validation,
                )

        reservation = self._reservations.get_reservation_by_id(reservation_id)
        if reservation is not None:
            self._notify(NotificationEvent(NotificationKind.SUBMISSION, reservation))
            self._notify(NotificationEvent(NotificationKind.ADMIN_NOTIFICATION, reservation))

        message = (
            "Reservation submitted and awaiting approval"
            if system.require_approval
            else "Reservation confirmed"
        )
        logger.info("Reservation %s submitted (%s)", reservation_id, status.value)
        return OperationResult(
            success=True,
            message=message,
            reservation_id=reservation_id,
            status=status,
            validation=validation,
        )

    # -- lifecycle ---------------------------------------------------------

    def _capacity_problem(self, reservation: Reservation) -> Optional[str]:
        """Re-run the conflict check for a pending reservation about to be approved."""
        system = load_system_settings(self._settings)
        report = resolve(
            reservation.date,
            reservation.start_time,
            reservation.end_time,
            self._reservations.get_reservations_for_date(reservation.date),
            max_concurrency=system.max_overlapping_reservations,
            allow_overlapping=system.allow_overlapping,
            exclude_reservation_id=reservation.id,
        )
        if report.is_bookable:
            return None
        return report.errors[0] if report.errors else "Time slot is no longer available"

    def _apply(
        self,
        reservation_id: str,
        trigger: TransitionTrigger,
        actor: Actor,
        reason: Optional[str] = None,
    ) -> OperationResult:
        located = self._reservations.get_reservation_by_id(reservation_id)
        if located is None:
            return OperationResult(success=False, message=NOT_FOUND_MESSAGE)

        # The date never changes, so it picks the lock; the status is read
        # again under it so concurrent decisions see each other's writes.
        with self._lock_for(located.date):
            reservation = self._reservations.get_reservation_by_id(reservation_id)
            if reservation is None:
                return OperationResult(success=False, message=NOT_FOUND_MESSAGE)

            machine = ReservationStateMachine(reservation.status)
            try:
                machine.find_transition(trigger)
            except InvalidTransitionError as exc:
                logger.info("Refused %s on %s: %s", trigger.value, reservation_id, exc)
                return OperationResult(
                    success=False,
                    message=str(exc),
                    reservation_id=reservation_id,
                    status=reservation.status,
                )

            if trigger == TransitionTrigger.APPROVE:
                problem = self._capacity_problem(reservation)
                if problem is not None:
                    logger.info("Cannot approve %s: %s", reservation_id, problem)
                    return OperationResult(
                        success=False,
                        message=f"Cannot approve reservation: {problem}",
                        reservation_id=reservation_id,
                        status=reservation.status,
                    )
            transition = machine.transition(trigger, actor=actor)
            try:
                self._reservations.update_reservation_status(reservation_id, transition.to_state)
            except Exception:
                logger.exception("Failed to %s reservation %s", trigger.value, reservation_id)
                return OperationResult(
                    success=False,
                    message=f"Failed to {trigger.value} reservation",
                    reservation_id=reservation_id,
                    status=reservation.status,
                )

        updated = reservation.model_copy(update={"status": transition.to_state})
        self._notify(
            NotificationEvent(transition.notification, updated, actor=actor, reason=reason)
        )
        logger.info(
            "Reservation %s %s by %s",
            reservation_id, " -> ".join(machine.get_state_trace()), actor.value,
        )
        return OperationResult(
            success=True,
            message=f"Reservation {transition.to_state.value}",
            reservation_id=reservation_id,
            status=transition.to_state,
        )

    def approve(self, reservation_id: str) -> OperationResult:
        new_request_id("APR")
        return self._apply(reservation_id, TransitionTrigger.APPROVE, Actor.ADMIN)

    def reject(self, reservation_id: str, reason: Optional[str] = None) -> OperationResult:
        new_request_id("REJ")
        return self._apply(reservation_id, TransitionTrigger.REJECT, Actor.ADMIN, reason)

    def cancel(
        self,
        reservation_id: str,
        actor: Actor = Actor.USER,
        reason: Optional[str] = None,
    ) -> OperationResult:
        new_request_id("CAN")
        return self._apply(reservation_id, TransitionTrigger.CANCEL, actor, reason)

    def delete_reservation(self, reservation_id: str) -> OperationResult:
        """Administrative hard delete; sends no notification."""
        new_request_id("DEL")
        try:
            self._reservations.delete_reservation(reservation_id)
        except LookupError:
            return OperationResult(success=False, message=NOT_FOUND_MESSAGE)
        except Exception:
            logger.exception("Failed to delete reservation %s", reservation_id)
            return OperationResult(success=False, message="Failed to delete reservation")
        return OperationResult(
            success=True, message="Reservation deleted", reservation_id=reservation_id
        )

    # -- notifications -----------------------------------------------------

    def _notify(self, event: NotificationEvent) -> None:
        queued = self._dispatcher.emit(
            event,
            load_email_settings(self._settings),
            load_system_settings(self._settings),
        )
        if queued:
            self._dispatcher.queue.drain()

    # -- statistics --------------------------------------------------------

    def reservation_stats(
        self, since: Optional[datetime.datetime] = None
    ) -> ReservationStats:
        """Totals, approval rate, type mix and the busiest approved start times."""
        reservations = [
            r for r in self._reservations.list_reservations()
            if since is None or r.created_at >= since
        ]
        by_status = Counter(r.status for r in reservations)
        total = len(reservations)
        approved = [r for r in reservations if r.status == ReservationStatus.APPROVED]
        popular = Counter(r.start_time for r in approved).most_common(5)
        return ReservationStats(
            total_reservations=total,
            total_attendees=sum(r.attendees for r in reservations if isinstance(r.attendees, int)),
            pending_count=by_status[ReservationStatus.PENDING],
            approved_count=by_status[ReservationStatus.APPROVED],
            rejected_count=by_status[ReservationStatus.REJECTED],
            cancelled_count=by_status[ReservationStatus.CANCELLED],
            approval_rate=(len(approved) / total * 100) if total else 0.0,
            type_distribution=dict(Counter(r.reservation_type for r in reservations)),
            popular_time_slots=popular,
        )

    def user_stats(self, user_id: str) -> UserStats:
        reservations = self._reservations.list_reservations(user_id=user_id)
        by_status = Counter(r.status for r in reservations)
        approved_minutes = sum(
            duration_minutes(r.start_time, r.end_time)
            for r in reservations
            if r.status == ReservationStatus.APPROVED
        )
        return UserStats(
            total_reservations=len(reservations),
            approved_reservations=by_status[ReservationStatus.APPROVED],
            pending_reservations=by_status[ReservationStatus.PENDING],
            rejected_reservations=by_status[ReservationStatus.REJECTED],
            cancelled_reservations=by_status[ReservationStatus.CANCELLED],
            total_hours=approved_minutes / 60,
        )
