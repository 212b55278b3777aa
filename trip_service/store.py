"""
Trip store: the only code that reads and writes the ``trips`` table.

Every write commits immediately. ``update`` can be made conditional on the
status the caller last saw, which turns a lost race into ``InvalidTransition``
instead of a silent overwrite.
"""
import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from trip_service.exceptions import DuplicateKey, InvalidTransition, StorageError, TripNotFound
from trip_service.models.trip import Trip, TripStatus

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset({"driver_id", "status", "fare", "distance"})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TripStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(
        self,
        trip_id: str,
        rider_id: str,
        pickup_location: str,
        drop_location: str,
    ) -> Trip:
        """Insert a new trip in REQUESTED state."""
        now = _utcnow()
        try:
            await self.db.execute(
                insert(Trip).values(
                    trip_id=trip_id,
                    rider_id=rider_id,
                    pickup_location=pickup_location,
                    drop_location=drop_location,
                    status=TripStatus.REQUESTED.value,
                    created_at=now,
                    updated_at=now,
                )
            )
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            raise DuplicateKey(f"Trip {trip_id} already exists") from exc
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.error("Failed to insert trip %s: %s", trip_id, exc)
            raise StorageError("Could not create trip") from exc

        return await self.get(trip_id)

    async def get(self, trip_id: str) -> Trip:
        try:
            result = await self.db.execute(
                select(Trip)
                .where(Trip.trip_id == trip_id)
                .execution_options(populate_existing=True)
            )
            trip = result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            logger.error("Failed to read trip %s: %s", trip_id, exc)
            raise StorageError("Could not read trip") from exc

        if trip is None:
            raise TripNotFound(trip_id)
        return trip

    async def update(
        self,
        trip_id: str,
        expected_status: TripStatus | None = None,
        **fields: Any,
    ) -> Trip:
        """
        Apply a field-level update and refresh ``updated_at``.

        With ``expected_status`` the row is only written if its status still
        matches; otherwise ``InvalidTransition`` is raised and nothing changes.
        """
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update trip fields: {sorted(unknown)}")
        if "status" in fields:
            fields["status"] = TripStatus(fields["status"]).value

        stmt = update(Trip).where(Trip.trip_id == trip_id)
        if expected_status is not None:
            stmt = stmt.where(Trip.status == TripStatus(expected_status).value)
        stmt = stmt.values(**fields, updated_at=_utcnow())

        try:
            result = await self.db.execute(stmt)
            await self.db.commit()
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.error("Failed to update trip %s: %s", trip_id, exc)
            raise StorageError("Could not update trip") from exc

        if result.rowcount == 0:
            # Either the trip is gone or its status moved on under us.
            current = await self.get(trip_id)
            raise InvalidTransition(trip_id, current.status, fields.get("status", current.status))

        return await self.get(trip_id)
