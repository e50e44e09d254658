"""
Finite state machine for reservation status transitions.

    pending  --approve-->  approved  --cancel-->  cancelled
    pending  --reject--->  rejected

``rejected`` and ``cancelled`` are terminal. Each transition names the
notification it should fire; who cancelled (user or admin) only changes
notification wording, never the graph.

Usage:
    sm = ReservationStateMachine(ReservationStatus.PENDING)
    sm.transition(TransitionTrigger.APPROVE)
    assert sm.current_state == ReservationStatus.APPROVED
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from roombook.schemas.reservation_schema import ReservationStatus

logger = logging.getLogger(__name__)


class TransitionTrigger(str, Enum):
    """Admin or user decisions that move a reservation."""
    APPROVE = "approve"
    REJECT = "reject"
    CANCEL = "cancel"


class Actor(str, Enum):
    USER = "user"
    ADMIN = "admin"


class NotificationKind(str, Enum):
    """Which message a state change (or creation) should send."""
    SUBMISSION = "submission"
    ADMIN_NOTIFICATION = "admin_notification"
    APPROVAL = "approval"
    REJECTION = "rejection"
    CANCELLATION = "cancellation"


@dataclass(frozen=True)
class Transition:
    """A single valid status transition."""
    from_state: ReservationStatus
    to_state: ReservationStatus
    trigger: TransitionTrigger
    notification: NotificationKind


@dataclass
class StateEntry:
    """Recorded history entry for a status change."""
    state: ReservationStatus
    entered_at: datetime
    trigger: Optional[TransitionTrigger] = None
    actor: Optional[Actor] = None


class InvalidTransitionError(Exception):
    """Raised when a transition is not valid from the current state."""


TERMINAL_STATES = frozenset({ReservationStatus.REJECTED, ReservationStatus.CANCELLED})


class ReservationStateMachine:
    """
    Deterministic status machine for one reservation.

    Every transition must be explicitly listed; anything else is refused
    with an error naming the triggers valid from the current state.
    """

    TRANSITIONS: list[Transition] = [
        Transition(ReservationStatus.PENDING, ReservationStatus.APPROVED,
                   TransitionTrigger.APPROVE, NotificationKind.APPROVAL),
        Transition(ReservationStatus.PENDING, ReservationStatus.REJECTED,
                   TransitionTrigger.REJECT, NotificationKind.REJECTION),
        Transition(ReservationStatus.APPROVED, ReservationStatus.CANCELLED,
                   TransitionTrigger.CANCEL, NotificationKind.CANCELLATION),
    ]

    def __init__(self, initial: ReservationStatus = ReservationStatus.PENDING) -> None:
        self._current_state = initial
        self._history: list[StateEntry] = [
            StateEntry(state=initial, entered_at=datetime.now(timezone.utc))
        ]

    @property
    def current_state(self) -> ReservationStatus:
        return self._current_state

    def find_transition(self, trigger: TransitionTrigger) -> Transition:
        """Return the transition for ``trigger`` without applying it.

        Raises:
            InvalidTransitionError: If no valid transition exists.
        """
        for t in self.TRANSITIONS:
            if t.from_state == self._current_state and t.trigger == trigger:
                return t
        valid = [t.value for t in self.get_valid_triggers()]
        raise InvalidTransitionError(
            f"Cannot {trigger.value} a reservation that is "
            f"'{self._current_state.value}'. Valid actions: {valid}"
        )

    def transition(
        self, trigger: TransitionTrigger, actor: Optional[Actor] = None
    ) -> Transition:
        """
        Apply a status transition.

        Returns:
            The Transition taken, including the notification to fire.

        Raises:
            InvalidTransitionError: If no valid transition exists.
        """
        t = self.find_transition(trigger)
        old_state = self._current_state
        self._current_state = t.to_state
        self._history.append(StateEntry(
            state=self._current_state,
            entered_at=datetime.now(timezone.utc),
            trigger=trigger,
            actor=actor,
        ))
        logger.debug(
            "Status transition: %s -> %s (trigger: %s)",
            old_state.value, self._current_state.value, trigger.value,
        )
        return t

    def get_valid_triggers(self) -> list[TransitionTrigger]:
        """Return all triggers valid from the current state."""
        return [t.trigger for t in self.TRANSITIONS if t.from_state == self._current_state]

    def get_history(self) -> list[StateEntry]:
        return list(self._history)

    def get_state_trace(self) -> list[str]:
        """Return ordered list of status names visited."""
        return [entry.state.value for entry in self._history]

    def is_terminal(self) -> bool:
        return self._current_state in TERMINAL_STATES
