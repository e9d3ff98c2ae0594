"""Driver-related Pydantic schemas."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from fleetbook.domain.enums import DriverStatus, LicenseType
from fleetbook.utils.validators import enum_value


class DriverCreate(BaseModel):
    """Schema for registering a driver."""

    user_id: UUID
    license_type: LicenseType
    license_number: str = Field(..., min_length=1, max_length=50)
    license_expiry_date: date | None = None
    last_health_check: date | None = None
    phone_number: str | None = Field(None, max_length=30)
    department: str | None = Field(None, max_length=100)
    cost_center: str | None = Field(None, max_length=50)
    shift: str | None = Field(None, max_length=30)
    notes: str | None = None
    years_of_experience: int = Field(default=0, ge=0)

    @field_validator("license_type", mode="before")
    @classmethod
    def parse_license_type(cls, v):
        return enum_value(LicenseType, v)


class DriverStatusUpdate(BaseModel):
    status: DriverStatus

    @field_validator("status", mode="before")
    @classmethod
    def parse_status(cls, v):
        return enum_value(DriverStatus, v)


class DriverResponse(BaseModel):
    """Schema for driver response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    license_type: LicenseType
    license_number: str
    license_expiry_date: date | None
    last_health_check: date | None
    status: DriverStatus
    available_for_booking: bool
    phone_number: str | None
    department: str | None
    cost_center: str | None
    shift: str | None
    notes: str | None
    years_of_experience: int
    total_trips_completed: int
    total_miles_driven: float
    created_at: datetime
    updated_at: datetime
