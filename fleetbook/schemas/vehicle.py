"""Vehicle-related Pydantic schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from fleetbook.domain.enums import VehicleStatus, VehicleType
from fleetbook.utils.validators import enum_value, normalize_plate_number, validate_plate_number


class VehicleCreate(BaseModel):
    """Schema for registering a vehicle."""

    plate_number: str = Field(..., min_length=2, max_length=20)
    vehicle_type: VehicleType
    capacity: int = Field(..., ge=1, le=100)
    make: str | None = Field(None, max_length=50)
    model: str | None = Field(None, max_length=50)
    year: int | None = Field(None, ge=1900, le=2100)
    color: str | None = Field(None, max_length=30)
    description: str | None = None
    location: str | None = Field(None, max_length=100)
    fuel_type: str | None = Field(None, max_length=20)
    vehicle_group: str | None = Field(None, max_length=50)
    cost_center: str | None = Field(None, max_length=50)
    last_maintenance: datetime | None = None
    next_maintenance: datetime | None = None
    mileage: float = Field(default=0.0, ge=0)

    @field_validator("plate_number")
    @classmethod
    def validate_plate(cls, v: str) -> str:
        plate = normalize_plate_number(v)
        if not validate_plate_number(plate):
            raise ValueError("Invalid plate number")
        return plate

    @field_validator("vehicle_type", mode="before")
    @classmethod
    def parse_vehicle_type(cls, v):
        return enum_value(VehicleType, v)


class VehicleStatusUpdate(BaseModel):
    status: VehicleStatus

    @field_validator("status", mode="before")
    @classmethod
    def parse_status(cls, v):
        return enum_value(VehicleStatus, v)


class VehicleResponse(BaseModel):
    """Schema for vehicle response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    plate_number: str
    display_name: str
    vehicle_type: VehicleType
    capacity: int
    make: str | None
    model: str | None
    year: int | None
    color: str | None
    description: str | None
    location: str | None
    fuel_type: str | None
    vehicle_group: str | None
    cost_center: str | None
    status: VehicleStatus
    available_for_booking: bool
    last_maintenance: datetime | None
    next_maintenance: datetime | None
    mileage: float
    created_at: datetime
    updated_at: datetime


class VehicleUsageResponse(BaseModel):
    vehicle_id: UUID
    period_start: datetime
    period_end: datetime
    completed_trips: int
    average_mileage: float | None
