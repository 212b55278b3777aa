"""
Trips router: GET /v1/trips/{id}, POST /v1/trips,
              PUT /v1/trips/{id}/complete, PUT|GET /v1/trips/{id}/cancel
"""
import logging

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from trip_service.database import get_db
from trip_service.redis_client import get_redis
from trip_service.schemas.schemas import (
    TripCancelResponse,
    TripCompleteRequest,
    TripCompleteResponse,
    TripCreateRequest,
    TripCreateResponse,
    TripResponse,
)
from trip_service.services.trip_lifecycle import TripLifecycle
from trip_service.store import TripStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/v1/trips", tags=["Trips"])


def get_trip_lifecycle(
    request: Request,
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
) -> TripLifecycle:
    state = request.app.state
    return TripLifecycle(
        store=TripStore(db),
        directory=state.directory,
        payments=state.payments,
        redis=redis,
        settings=state.settings,
    )


@router.get("/{trip_id}", response_model=TripResponse)
async def get_trip(
    trip_id: str,
    lifecycle: TripLifecycle = Depends(get_trip_lifecycle),
):
    trip = await lifecycle.get_trip(trip_id)
    return TripResponse.model_validate(trip)


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=TripCreateResponse,
    response_model_exclude_none=True,
)
async def create_trip(
    payload: TripCreateRequest,
    lifecycle: TripLifecycle = Depends(get_trip_lifecycle),
):
    """
    Create a trip and try to assign a driver:
      1. Persist the trip as REQUESTED
      2. Fetch available drivers from the driver service
      3. Ping them one by one; the first to accept is assigned
    Returns 201 even when no driver could be assigned.
    """
    result = await lifecycle.create_trip(payload.rider_id, payload.pickup, payload.drop)
    return TripCreateResponse(
        trip_id=result.trip.trip_id,
        status=result.status,
        driver_id=result.driver_id,
        message=result.message,
    )


@router.put("/{trip_id}/complete", response_model=TripCompleteResponse)
async def complete_trip(
    trip_id: str,
    payload: TripCompleteRequest,
    lifecycle: TripLifecycle = Depends(get_trip_lifecycle),
):
    """
    Complete a trip: compute the fare, charge it, and mark the trip
    COMPLETE or UNPAID depending on the payment outcome.
    """
    result = await lifecycle.complete_trip(trip_id, payload.distance)
    trip = result.trip
    return TripCompleteResponse(
        trip_id=trip.trip_id,
        status=trip.status,
        fare=float(trip.fare),
        distance=float(trip.distance),
        payment_status=result.payment.status,
        message=result.message,
    )


@router.api_route("/{trip_id}/cancel", methods=["PUT", "GET"], response_model=TripCancelResponse)
async def cancel_trip(
    trip_id: str,
    lifecycle: TripLifecycle = Depends(get_trip_lifecycle),
):
    result = await lifecycle.cancel_trip(trip_id)
    return TripCancelResponse(
        trip_id=result.trip.trip_id,
        status=result.trip.status,
        message=result.message,
    )
