"""
Reservation persistence interface and an in-memory implementation.

In production, this would be backed by a document store; the engine only
ever talks to the ReservationStore protocol.
"""

import datetime
import logging
import threading
import uuid
from typing import Optional, Protocol

from roombook.schemas.reservation_schema import (
    Reservation,
    ReservationRequest,
    ReservationStatus,
)

logger = logging.getLogger(__name__)


class ReservationNotFoundError(LookupError):
    """Raised when a reservation id does not exist."""


class ReservationStore(Protocol):
    """Narrow persistence interface consumed by the reservation service."""

    def get_reservations_for_date(self, day: datetime.date) -> list[Reservation]:
        """Approved reservations on ``day``."""
        ...

    def create_reservation(
        self,
        request: ReservationRequest,
        status: ReservationStatus = ReservationStatus.PENDING,
    ) -> str:
        """Persist a new reservation in ``status`` and return its id."""
        ...

    def update_reservation_status(self, reservation_id: str, status: ReservationStatus) -> None:
        ...

    def get_reservation_by_id(self, reservation_id: str) -> Optional[Reservation]:
        ...

    def list_reservations(
        self,
        status: Optional[ReservationStatus] = None,
        user_id: Optional[str] = None,
    ) -> list[Reservation]:
        ...

    def delete_reservation(self, reservation_id: str) -> None:
        ...


class InMemoryReservationStore:
    """Thread-safe dict-backed store. Used by tests and the console demo."""

    def __init__(self) -> None:
        self._reservations: dict[str, Reservation] = {}
        self._lock = threading.Lock()

    def create_reservation(
        self,
        request: ReservationRequest,
        status: ReservationStatus = ReservationStatus.PENDING,
    ) -> str:
        ref = f"RSV-{uuid.uuid4().hex[:8].upper()}"
        data = request.model_dump()
        # The requester email doubles as the owner id when none is given.
        data["user_id"] = request.user_id or request.email
        reservation = Reservation(id=ref, status=status, **data)
        with self._lock:
            self._reservations[ref] = reservation
        logger.info(
            "Reservation created: %s (%s) for %s on %s %s-%s",
            ref, status.value, request.name, request.date, request.start_time, request.end_time,
        )
        return ref

    def add(self, reservation: Reservation) -> None:
        """Insert a fully formed reservation (fixtures, imports)."""
        with self._lock:
            self._reservations[reservation.id] = reservation

    def get_reservation_by_id(self, reservation_id: str) -> Optional[Reservation]:
        with self._lock:
            found = self._reservations.get(reservation_id)
        return found.model_copy() if found else None

    def update_reservation_status(self, reservation_id: str, status: ReservationStatus) -> None:
        with self._lock:
            current = self._reservations.get(reservation_id)
            if current is None:
                raise ReservationNotFoundError(f"Reservation {reservation_id} not found")
            self._reservations[reservation_id] = current.model_copy(
                update={
                    "status": status,
                    "updated_at": datetime.datetime.now(datetime.timezone.utc),
                }
            )
        logger.info("Reservation %s status -> %s", reservation_id, status.value)

    def get_reservations_for_date(self, day: datetime.date) -> list[Reservation]:
        with self._lock:
            return [
                r.model_copy()
                for r in self._reservations.values()
                if r.date == day and r.status == ReservationStatus.APPROVED
            ]

    def list_reservations(
        self,
        status: Optional[ReservationStatus] = None,
        user_id: Optional[str] = None,
    ) -> list[Reservation]:
        """All reservations, newest first, optionally filtered."""
        with self._lock:
            found = [
                r.model_copy()
                for r in self._reservations.values()
                if (status is None or r.status == status)
                and (user_id is None or r.user_id == user_id)
            ]
        return sorted(found, key=lambda r: r.created_at, reverse=True)

    def delete_reservation(self, reservation_id: str) -> None:
        with self._lock:
            if self._reservations.pop(reservation_id, None) is None:
                raise ReservationNotFoundError(f"Reservation {reservation_id} not found")
        logger.info("Reservation deleted: %s", reservation_id)

    def reset(self) -> None:
        """Clear all reservations. Used by test fixtures for isolation."""
        with self._lock:
            self._reservations.clear()
