import enum
from datetime import datetime
from decimal import Decimal

from sqlalchemy import String, Text, Numeric, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from trip_service.database import Base


class TripStatus(str, enum.Enum):
    REQUESTED = "REQUESTED"
    ACCEPTED = "ACCEPTED"
    COMPLETE = "COMPLETE"
    UNPAID = "UNPAID"
    CANCELLED = "CANCELLED"


class Trip(Base):
    __tablename__ = "trips"

    trip_id: Mapped[str] = mapped_column(String, primary_key=True)
    rider_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    driver_id: Mapped[str | None] = mapped_column(String, nullable=True)

    pickup_location: Mapped[str] = mapped_column(Text, nullable=False)
    drop_location: Mapped[str] = mapped_column(Text, nullable=False)

    # REQUESTED | ACCEPTED | COMPLETE | UNPAID | CANCELLED
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TripStatus.REQUESTED.value, index=True
    )
    fare: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    distance: Mapped[Decimal | None] = mapped_column(Numeric(10, 3), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
