from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from trip_service.models.trip import TripStatus
from trip_service.services.pricing import MAX_DISTANCE_KM


# ---------------------------------------------------------------------------
# Trip schemas
# ---------------------------------------------------------------------------

class TripResponse(BaseModel):
    trip_id: str
    rider_id: str
    driver_id: Optional[str] = None
    pickup_location: str
    drop_location: str
    status: TripStatus
    fare: Optional[float] = None
    distance: Optional[float] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class TripCreateRequest(BaseModel):
    rider_id: str = Field(..., min_length=1)
    pickup: str = Field(..., min_length=1)
    drop: str = Field(..., min_length=1)


class TripCreateResponse(BaseModel):
    trip_id: str
    status: TripStatus
    driver_id: Optional[str] = None
    message: str


class TripCompleteRequest(BaseModel):
    distance: float = Field(..., ge=0, le=float(MAX_DISTANCE_KM), allow_inf_nan=False)


class TripCompleteResponse(BaseModel):
    trip_id: str
    status: TripStatus
    fare: float
    distance: float
    payment_status: str
    message: str


class TripCancelResponse(BaseModel):
    trip_id: str
    status: TripStatus
    message: str
