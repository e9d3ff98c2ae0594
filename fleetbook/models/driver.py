"""Driver database model."""

from __future__ import annotations

import uuid
from datetime import date, datetime

from sqlalchemy import Boolean, Date, DateTime, Float, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from fleetbook.database import Base


class Driver(Base):
    """Driver model. ``user_id`` references the account in the identity system."""

    __tablename__ = "drivers"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)

    # License
    license_type: Mapped[str] = mapped_column(
        String(20), nullable=False
    )  # class_1, class_2, class_3, motorcycle, commercial
    license_number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    license_expiry_date: Mapped[date | None] = mapped_column(Date, index=True)
    last_health_check: Mapped[date | None] = mapped_column(Date)

    # Status
    status: Mapped[str] = mapped_column(
        String(20), default="available", index=True
    )  # available, assigned, on_duty, unavailable, on_leave, sick
    available_for_booking: Mapped[bool] = mapped_column(Boolean, default=True)

    # Profile
    phone_number: Mapped[str | None] = mapped_column(String(30))
    department: Mapped[str | None] = mapped_column(String(100))
    cost_center: Mapped[str | None] = mapped_column(String(50))
    shift: Mapped[str | None] = mapped_column(String(30))
    notes: Mapped[str | None] = mapped_column(Text)
    years_of_experience: Mapped[int] = mapped_column(Integer, default=0)

    # Trip statistics
    total_trips_completed: Mapped[int] = mapped_column(Integer, default=0)
    total_miles_driven: Mapped[float] = mapped_column(Float, default=0.0)

    deleted: Mapped[bool] = mapped_column(Boolean, default=False, index=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
