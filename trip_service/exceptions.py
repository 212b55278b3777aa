"""Domain errors raised by the trip service.

Routers never catch these; ``main.py`` maps each class to an HTTP status.
``CollaboratorUnavailable`` is the exception: clients raise it internally and
the lifecycle layer always absorbs it into a degraded outcome.
"""


class TripServiceError(Exception):
    """Base class for every trip service error."""

    status_code = 500


class ValidationError(TripServiceError):
    """Raised when command input is missing or malformed."""

    status_code = 400


class TripNotFound(TripServiceError):
    """Raised when a trip id does not exist."""

    status_code = 404

    def __init__(self, trip_id: str):
        super().__init__("Trip not found")
        self.trip_id = trip_id


class InvalidTransition(TripServiceError):
    """Raised when a trip is not in a state that allows the operation."""

    status_code = 409

    def __init__(self, trip_id: str, current: str, target: str):
        current = getattr(current, "value", current)
        target = getattr(target, "value", target)
        super().__init__(f"Trip is {current}; cannot move to {target}")
        self.trip_id = trip_id
        self.current = current
        self.target = target


class TripBusy(TripServiceError):
    """Raised when another command currently holds the trip's lock."""

    status_code = 409

    def __init__(self, trip_id: str):
        super().__init__("Trip is being modified by another request")
        self.trip_id = trip_id


class StorageError(TripServiceError):
    """Raised when the trip store cannot complete a read or write."""

    status_code = 500


class DuplicateKey(StorageError):
    """Raised when inserting a trip whose id already exists."""


class CollaboratorUnavailable(TripServiceError):
    """Raised by remote-service clients when a call fails."""

    status_code = 503
