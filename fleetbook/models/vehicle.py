"""Vehicle database model."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from fleetbook.database import Base


class Vehicle(Base):
    """Fleet vehicle model."""

    __tablename__ = "vehicles"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    plate_number: Mapped[str] = mapped_column(String(20), unique=True, nullable=False, index=True)
    vehicle_type: Mapped[str] = mapped_column(
        String(20), nullable=False
    )  # sedan, suv, van, truck, motorcycle, other
    make: Mapped[str | None] = mapped_column(String(50))
    model: Mapped[str | None] = mapped_column(String(50))
    year: Mapped[int | None] = mapped_column(Integer)
    color: Mapped[str | None] = mapped_column(String(30))
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    location: Mapped[str | None] = mapped_column(String(100))
    fuel_type: Mapped[str | None] = mapped_column(String(20))
    vehicle_group: Mapped[str | None] = mapped_column(String(50))
    cost_center: Mapped[str | None] = mapped_column(String(50))

    # Status
    status: Mapped[str] = mapped_column(
        String(20), default="available", index=True
    )  # available, booked, in_use, maintenance, out_of_service
    available_for_booking: Mapped[bool] = mapped_column(Boolean, default=True)

    # Maintenance
    last_maintenance: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    next_maintenance: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), index=True)
    mileage: Mapped[float] = mapped_column(Float, default=0.0)

    deleted: Mapped[bool] = mapped_column(Boolean, default=False, index=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
