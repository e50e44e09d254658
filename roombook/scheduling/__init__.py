from roombook.scheduling.alternatives import AlternativeDateFinder, TTLCache
from roombook.scheduling.conflict_resolver import ConflictReport, ConflictSeverity, resolve
from roombook.scheduling.occupancy import compute_occupancy
from roombook.scheduling.slot_generator import generate_slots
from roombook.scheduling.state_machine import (
    InvalidTransitionError,
    ReservationStateMachine,
    TransitionTrigger,
)
from roombook.scheduling.validator import validate_request

__all__ = [
    "generate_slots",
    "compute_occupancy",
    "resolve",
    "ConflictReport",
    "ConflictSeverity",
    "validate_request",
    "AlternativeDateFinder",
    "TTLCache",
    "ReservationStateMachine",
    "TransitionTrigger",
    "InvalidTransitionError",
]
