"""
Trip status state machine.
"""
from trip_service.exceptions import InvalidTransition
from trip_service.models.trip import TripStatus

VALID_TRANSITIONS: dict[TripStatus, set[TripStatus]] = {
    TripStatus.REQUESTED: {TripStatus.ACCEPTED, TripStatus.CANCELLED},
    TripStatus.ACCEPTED: {TripStatus.COMPLETE, TripStatus.UNPAID, TripStatus.CANCELLED},
    TripStatus.COMPLETE: set(),
    TripStatus.UNPAID: set(),
    TripStatus.CANCELLED: set(),
}


def is_valid_transition(current: str, next_state: str) -> bool:
    return TripStatus(next_state) in VALID_TRANSITIONS.get(TripStatus(current), set())


def ensure_transition(trip_id: str, current: str, next_state: str) -> None:
    if not is_valid_transition(current, next_state):
        raise InvalidTransition(trip_id, current, next_state)
