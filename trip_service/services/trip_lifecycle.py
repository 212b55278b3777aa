"""
Trip lifecycle operations: create, complete, cancel, get.

This is the only writer of the trip store. Collaborator failures never abort a
command here; they degrade into domain outcomes (no driver, UNPAID). Only
validation, missing trips, illegal transitions, lock contention and storage
failures propagate to the caller.
"""
import logging
import math
import uuid
from dataclasses import dataclass

import redis.asyncio as aioredis

from trip_service.config import Settings
from trip_service.exceptions import CollaboratorUnavailable, InvalidTransition, ValidationError
from trip_service.models.trip import Trip, TripStatus
from trip_service.redis_client import trip_lock
from trip_service.services.driver_directory import DriverDirectoryClient
from trip_service.services.negotiation import negotiate
from trip_service.services.payment import ChargeResult, PaymentClient
from trip_service.services.pricing import MAX_DISTANCE_KM, calculate_fare, quantize_distance
from trip_service.services.state_machine import ensure_transition
from trip_service.store import TripStore

logger = logging.getLogger(__name__)

MSG_DRIVER_ASSIGNED = "Trip created and driver assigned"
MSG_NO_DRIVER_ACCEPTED = "Trip created but no drivers accepted"
MSG_NO_DRIVERS_AVAILABLE = "Trip created but no drivers available"
MSG_DIRECTORY_UNREACHABLE = "Trip created but could not reach driver service"
MSG_CANCELLED_DURING_ASSIGNMENT = "Trip created but was cancelled before a driver was assigned"
MSG_COMPLETED = "Trip completed successfully"
MSG_COMPLETED_UNPAID = "Trip completed but payment failed"
MSG_CANCELLED = "Trip cancelled successfully"


@dataclass
class CreateTripResult:
    trip: Trip
    status: str
    message: str

    @property
    def driver_id(self) -> str | None:
        return self.trip.driver_id


@dataclass
class CompleteTripResult:
    trip: Trip
    payment: ChargeResult
    message: str


@dataclass
class CancelTripResult:
    trip: Trip
    message: str


class TripLifecycle:
    def __init__(
        self,
        store: TripStore,
        directory: DriverDirectoryClient,
        payments: PaymentClient,
        redis: aioredis.Redis,
        settings: Settings,
    ):
        self.store = store
        self.directory = directory
        self.payments = payments
        self.redis = redis
        self.settings = settings

    async def get_trip(self, trip_id: str) -> Trip:
        return await self.store.get(trip_id)

    async def create_trip(self, rider_id: str, pickup: str, drop: str) -> CreateTripResult:
        """
        Persist a REQUESTED trip, then negotiate a driver for it.

        Never fails because the driver directory is empty, slow or down; the
        trip simply stays REQUESTED without a driver.
        """
        missing = [
            name for name, value in (("rider_id", rider_id), ("pickup", pickup), ("drop", drop))
            if not value
        ]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

        trip_id = str(uuid.uuid4())
        logger.info("Generating trip id: %s", trip_id)
        trip = await self.store.create(trip_id, rider_id, pickup, drop)

        listing = await self.directory.fetch_available()
        if not listing.reachable:
            return self._created(trip, MSG_DIRECTORY_UNREACHABLE)
        if not listing.drivers:
            return self._created(trip, MSG_NO_DRIVERS_AVAILABLE)

        driver_id = await negotiate(
            trip_id,
            listing.drivers,
            self.directory,
            timeout_ms=self.settings.acceptance_timeout_ms,
        )
        if driver_id is None:
            return self._created(trip, MSG_NO_DRIVER_ACCEPTED)

        try:
            trip = await self.store.update(
                trip_id,
                expected_status=TripStatus.REQUESTED,
                driver_id=driver_id,
                status=TripStatus.ACCEPTED,
            )
        except InvalidTransition as exc:
            logger.warning("Trip %s left REQUESTED during negotiation: %s", trip_id, exc)
            await self._release_driver(driver_id)
            return self._created(await self.store.get(trip_id), MSG_CANCELLED_DURING_ASSIGNMENT)

        logger.info("Trip %s assigned to driver %s", trip_id, driver_id)
        return self._created(trip, MSG_DRIVER_ASSIGNED)

    async def complete_trip(self, trip_id: str, distance: float | None) -> CompleteTripResult:
        """
        Price the trip, charge it, and record the outcome.

        Fare and distance are stored whether or not the charge succeeds; the
        status becomes COMPLETE or UNPAID accordingly.
        """
        if distance is None:
            raise ValidationError("Missing required field: distance")
        try:
            distance_f = float(distance)
        except (TypeError, ValueError):
            raise ValidationError("distance must be a number")
        if not math.isfinite(distance_f) or distance_f < 0:
            raise ValidationError("distance must be a non-negative number")
        # The charged fare and the stored distance must come from the same value.
        distance_km = quantize_distance(distance_f)
        if distance_km > MAX_DISTANCE_KM:
            raise ValidationError(f"distance must not exceed {MAX_DISTANCE_KM}")

        async with trip_lock(self.redis, trip_id, self.settings.trip_lock_ttl_seconds):
            trip = await self.store.get(trip_id)
            ensure_transition(trip_id, trip.status, TripStatus.COMPLETE)

            fare = calculate_fare(distance_km)
            payment = await self.payments.charge(trip_id, fare, str(uuid.uuid4()))
            status = TripStatus.COMPLETE if payment.succeeded else TripStatus.UNPAID

            trip = await self.store.update(
                trip_id,
                expected_status=TripStatus.ACCEPTED,
                status=status,
                fare=fare,
                distance=distance_km,
            )

        logger.info("Trip %s completed: status=%s fare=%s", trip_id, trip.status, fare)

        if trip.driver_id:
            await self._release_driver(trip.driver_id)

        message = MSG_COMPLETED if payment.succeeded else MSG_COMPLETED_UNPAID
        return CompleteTripResult(trip=trip, payment=payment, message=message)

    async def cancel_trip(self, trip_id: str) -> CancelTripResult:
        async with trip_lock(self.redis, trip_id, self.settings.trip_lock_ttl_seconds):
            trip = await self.store.get(trip_id)
            if trip.status == TripStatus.CANCELLED.value:
                return CancelTripResult(trip=trip, message=MSG_CANCELLED)

            ensure_transition(trip_id, trip.status, TripStatus.CANCELLED)
            trip = await self.store.update(
                trip_id,
                expected_status=trip.status,
                status=TripStatus.CANCELLED,
            )

        logger.info("Trip %s cancelled", trip_id)

        if self.settings.release_driver_on_cancel and trip.driver_id:
            await self._release_driver(trip.driver_id)

        return CancelTripResult(trip=trip, message=MSG_CANCELLED)

    # ---------------------------------------------------------------------------
    # Helpers
    # ---------------------------------------------------------------------------

    def _created(self, trip: Trip, message: str) -> CreateTripResult:
        status = TripStatus.REQUESTED.value if self.settings.legacy_create_status else trip.status
        return CreateTripResult(trip=trip, status=status, message=message)

    async def _release_driver(self, driver_id: str) -> None:
        """Best-effort: mark the driver active again; failures are only logged."""
        try:
            await self.directory.set_active(driver_id, True)
        except CollaboratorUnavailable as exc:
            logger.error("Error updating driver status: %s", exc)
