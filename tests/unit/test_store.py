"""
Unit tests for the trip store against in-memory SQLite.
"""
import asyncio
from decimal import Decimal

import pytest

from trip_service.exceptions import DuplicateKey, InvalidTransition, TripNotFound
from trip_service.models.trip import TripStatus
from trip_service.store import TripStore


async def _create(store, trip_id="trip-1"):
    return await store.create(trip_id, "rider-1", "A", "B")


@pytest.mark.asyncio
class TestTripStore:
    async def test_create_starts_requested(self, store):
        trip = await _create(store)
        assert trip.trip_id == "trip-1"
        assert trip.status == "REQUESTED"
        assert trip.driver_id is None
        assert trip.fare is None and trip.distance is None
        assert trip.created_at == trip.updated_at

    async def test_duplicate_key(self, store, database):
        await _create(store)
        async with database.session() as other:
            with pytest.raises(DuplicateKey):
                await TripStore(other).create("trip-1", "rider-2", "C", "D")

    async def test_get_missing(self, store):
        with pytest.raises(TripNotFound):
            await store.get("nope")

    async def test_update_fields(self, store):
        await _create(store)
        trip = await store.update("trip-1", driver_id="d1", status=TripStatus.ACCEPTED)
        assert trip.driver_id == "d1"
        assert trip.status == "ACCEPTED"

    async def test_update_refreshes_updated_at(self, store):
        created = await _create(store)
        created_at, first_updated_at = created.created_at, created.updated_at
        await asyncio.sleep(0.01)
        trip = await store.update("trip-1", status=TripStatus.CANCELLED)
        assert trip.updated_at > first_updated_at
        assert trip.created_at == created_at

    async def test_update_fare_and_distance(self, store):
        await _create(store)
        trip = await store.update("trip-1", fare=Decimal("17.75"), distance=Decimal("10.5"))
        assert trip.fare == Decimal("17.75")
        assert trip.distance == Decimal("10.5")

    async def test_update_missing(self, store):
        with pytest.raises(TripNotFound):
            await store.update("nope", status=TripStatus.CANCELLED)

    async def test_conditional_update_applies(self, store):
        await _create(store)
        trip = await store.update(
            "trip-1", expected_status=TripStatus.REQUESTED, status=TripStatus.ACCEPTED, driver_id="d1"
        )
        assert trip.status == "ACCEPTED"

    async def test_conditional_update_rejects_stale_status(self, store):
        await _create(store)
        await store.update("trip-1", status=TripStatus.CANCELLED)
        with pytest.raises(InvalidTransition) as exc_info:
            await store.update(
                "trip-1", expected_status=TripStatus.REQUESTED, status=TripStatus.ACCEPTED, driver_id="d1"
            )
        assert exc_info.value.current == "CANCELLED"
        trip = await store.get("trip-1")
        assert trip.status == "CANCELLED"
        assert trip.driver_id is None

    async def test_immutable_fields_rejected(self, store):
        await _create(store)
        with pytest.raises(ValueError):
            await store.update("trip-1", rider_id="someone-else")
