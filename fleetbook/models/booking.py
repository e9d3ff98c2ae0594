"""Booking-related database models."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from fleetbook.database import Base


class Booking(Base):
    """Vehicle booking model."""

    __tablename__ = "bookings"
    __table_args__ = (
        CheckConstraint("start_time < end_time", name="ck_bookings_time_range"),
        CheckConstraint("estimated_passengers > 0", name="ck_bookings_passengers"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    booking_reference: Mapped[str] = mapped_column(
        String(64), unique=True, nullable=False, index=True
    )  # BKG-<millis>-<hex>
    vehicle_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("vehicles.id"), nullable=False, index=True
    )
    driver_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("drivers.id"), index=True
    )  # null for self-drive
    requester_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    approver_id: Mapped[uuid.UUID | None] = mapped_column(Uuid)

    booking_type: Mapped[str] = mapped_column(
        String(30), default="business_trip"
    )  # business_trip, meeting, delivery, maintenance_trip, training, other
    status: Mapped[str] = mapped_column(
        String(20), default="pending", index=True
    )  # pending, approved, rejected, confirmed, active, completed, cancelled, no_show

    # Schedule
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    actual_start_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    actual_end_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Trip details
    pickup_location: Mapped[str] = mapped_column(String(255), nullable=False)
    destination: Mapped[str] = mapped_column(String(255), nullable=False)
    return_location: Mapped[str | None] = mapped_column(String(255))
    purpose: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    estimated_passengers: Mapped[int] = mapped_column(Integer, default=1)
    cost_center: Mapped[str | None] = mapped_column(String(50))
    manager_name: Mapped[str | None] = mapped_column(String(100))
    additional_requirements: Mapped[str | None] = mapped_column(Text)

    # Approval
    approval_comment: Mapped[str | None] = mapped_column(Text)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    rejected_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    rejection_reason: Mapped[str | None] = mapped_column(Text)

    # Cancellation
    cancellation_reason: Mapped[str | None] = mapped_column(Text)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Post-trip
    feedback: Mapped[str | None] = mapped_column(Text)
    actual_mileage: Mapped[float | None] = mapped_column(Float)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    events: Mapped[list["BookingEventEntry"]] = relationship(
        "BookingEventEntry",
        back_populates="booking",
        order_by="BookingEventEntry.sequence",
        lazy="selectin",
        cascade="save-update, merge",
    )


class BookingEventEntry(Base):
    """Append-only booking history row."""

    __tablename__ = "booking_events"
    __table_args__ = (
        UniqueConstraint("booking_id", "sequence", name="uq_booking_events_sequence"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    booking_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("bookings.id"), nullable=False, index=True
    )
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    booking_reference: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    event_type: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    caused_by: Mapped[str] = mapped_column(String(64), nullable=False)  # "system" or user id
    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # Relationships
    booking: Mapped["Booking"] = relationship("Booking", back_populates="events")
