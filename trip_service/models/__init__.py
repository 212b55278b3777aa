from trip_service.models.trip import Trip, TripStatus

__all__ = ["Trip", "TripStatus"]
