"""Pydantic schemas for API validation."""

from fleetbook.schemas.booking import (
    AvailabilityResponse,
    BookingApprove,
    BookingCancel,
    BookingComplete,
    BookingCreate,
    BookingEventResponse,
    BookingReject,
    BookingResponse,
)
from fleetbook.schemas.driver import DriverCreate, DriverResponse, DriverStatusUpdate
from fleetbook.schemas.vehicle import (
    VehicleCreate,
    VehicleResponse,
    VehicleStatusUpdate,
    VehicleUsageResponse,
)

__all__ = [
    # Booking
    "BookingCreate",
    "BookingApprove",
    "BookingReject",
    "BookingCancel",
    "BookingComplete",
    "BookingEventResponse",
    "BookingResponse",
    "AvailabilityResponse",
    # Vehicle
    "VehicleCreate",
    "VehicleStatusUpdate",
    "VehicleResponse",
    "VehicleUsageResponse",
    # Driver
    "DriverCreate",
    "DriverStatusUpdate",
    "DriverResponse",
]
