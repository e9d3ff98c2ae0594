"""Booking-related Pydantic schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from fleetbook.domain.entities import BookingRequest
from fleetbook.domain.enums import BookingStatus, BookingType
from fleetbook.utils.validators import enum_value


class BookingCreate(BaseModel):
    """Schema for requesting a booking.

    Business rules (blank purpose, passenger capacity, durations) are enforced
    by the booking validator so they are reported in a fixed order; this
    schema only checks shape.
    """

    vehicle_id: UUID
    driver_id: UUID | None = None
    start_time: datetime
    end_time: datetime
    booking_type: BookingType = BookingType.BUSINESS_TRIP
    purpose: str | None = Field(None, max_length=2000)
    pickup_location: str | None = Field(None, max_length=255)
    destination: str | None = Field(None, max_length=255)
    return_location: str | None = Field(None, max_length=255)
    description: str | None = Field(None, max_length=2000)
    estimated_passengers: int = 1
    cost_center: str | None = None
    manager_name: str | None = Field(None, max_length=100)
    additional_requirements: str | None = Field(None, max_length=2000)

    @field_validator("booking_type", mode="before")
    @classmethod
    def parse_booking_type(cls, v):
        return enum_value(BookingType, v)

    def to_request(self) -> BookingRequest:
        return BookingRequest(**self.model_dump())


class BookingApprove(BaseModel):
    comment: str | None = Field(None, max_length=1000)


class BookingReject(BaseModel):
    reason: str = Field(..., min_length=1, max_length=1000)


class BookingCancel(BaseModel):
    reason: str = Field(..., min_length=1, max_length=1000)


class BookingComplete(BaseModel):
    feedback: str | None = Field(None, max_length=2000)
    actual_mileage: float | None = Field(None, ge=0)


class BookingEventResponse(BaseModel):
    """Schema for a booking history entry."""

    model_config = ConfigDict(from_attributes=True)

    event_type: str
    description: str
    caused_by: str
    occurred_at: datetime


class BookingResponse(BaseModel):
    """Schema for booking response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    booking_reference: str
    vehicle_id: UUID
    driver_id: UUID | None
    requester_id: UUID
    approver_id: UUID | None

    booking_type: BookingType
    status: BookingStatus
    display_status: str

    # Schedule
    start_time: datetime
    end_time: datetime
    duration_hours: float
    actual_start_time: datetime | None
    actual_end_time: datetime | None

    # Trip details
    purpose: str
    pickup_location: str
    destination: str
    return_location: str | None
    description: str | None
    estimated_passengers: int
    cost_center: str | None
    manager_name: str | None
    additional_requirements: str | None

    # Approval and cancellation
    approval_comment: str | None
    approved_at: datetime | None
    rejected_at: datetime | None
    rejection_reason: str | None
    cancellation_reason: str | None
    cancelled_at: datetime | None

    # Post-trip
    feedback: str | None
    actual_mileage: float | None

    event_history: list[BookingEventResponse]
    created_at: datetime
    updated_at: datetime


class AvailabilityResponse(BaseModel):
    vehicle_id: UUID
    driver_id: UUID | None
    start_time: datetime
    end_time: datetime
    available: bool
