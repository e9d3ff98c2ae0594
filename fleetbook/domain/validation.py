"""
Booking Validation

Composes eligibility rules and conflict detection to accept or reject a
booking request. Checks run in a fixed order and stop at the first failure,
so a request breaking several rules always reports the same one:

1. Vehicle: bookable, not due for maintenance, not already booked
2. Driver (when requested): available, licensed, healthy, free, qualified
3. Time window: future start, positive length, 1h..7d, at most 90 days ahead
4. Business rules: purpose, pickup, destination, passengers, cost center

Validation never mutates its inputs.
"""

from collections.abc import Iterable
from datetime import UTC, datetime, timedelta

from fleetbook.core.exceptions import BookingValidationError
from fleetbook.domain.conflicts import ScheduledBooking, has_conflict
from fleetbook.domain.entities import BookingRequest, Driver, Vehicle, as_utc

MIN_BOOKING_DURATION = timedelta(hours=1)
MAX_BOOKING_DURATION = timedelta(hours=168)
MAX_ADVANCE_BOOKING = timedelta(days=90)
MAX_COST_CENTER_LENGTH = 50


def validate_booking_request(
    request: BookingRequest,
    vehicle: Vehicle,
    driver: Driver | None = None,
    *,
    vehicle_bookings: Iterable[ScheduledBooking] = (),
    driver_bookings: Iterable[ScheduledBooking] = (),
    now: datetime | None = None,
) -> None:
    """Raise BookingValidationError for the first rule the request breaks.

    ``vehicle_bookings`` and ``driver_bookings`` are the candidate bookings
    already held against the vehicle and driver, as returned by the
    repository's conflict queries.
    """
    now = as_utc(now) if now else datetime.now(UTC)
    start = as_utc(request.start_time)
    end = as_utc(request.end_time)

    _check_vehicle(vehicle, start, end, vehicle_bookings, now)
    if driver is not None:
        _check_driver(driver, start, end, driver_bookings, now)
        _check_driver_qualified(driver, vehicle)
    _check_time_window(start, end, now)
    _check_business_rules(request, vehicle)


def _check_vehicle(
    vehicle: Vehicle,
    start: datetime,
    end: datetime,
    bookings: Iterable[ScheduledBooking],
    now: datetime,
) -> None:
    if not vehicle.can_be_booked(now):
        raise BookingValidationError(
            "vehicle_unavailable",
            f"Vehicle is not available for booking. Status: {vehicle.status.value}",
        )
    if vehicle.needs_maintenance(now):
        raise BookingValidationError(
            "vehicle_maintenance", "Vehicle requires maintenance before booking"
        )
    if has_conflict(vehicle.id, start, end, bookings):
        raise BookingValidationError(
            "vehicle_conflict", "Vehicle is already booked for the requested time period"
        )


def _check_driver(
    driver: Driver,
    start: datetime,
    end: datetime,
    bookings: Iterable[ScheduledBooking],
    now: datetime,
) -> None:
    today = now.date()
    if not driver.is_available():
        raise BookingValidationError(
            "driver_unavailable", f"Driver is not available. Status: {driver.status.value}"
        )
    if not driver.is_license_valid(today):
        raise BookingValidationError(
            "driver_license_invalid", "Driver's license has expired or is invalid"
        )
    if driver.needs_license_renewal(today):
        raise BookingValidationError(
            "driver_license_renewal", "Driver's license needs renewal within 30 days"
        )
    if not driver.is_health_check_valid(today):
        raise BookingValidationError(
            "driver_health_check", "Driver requires health check before booking"
        )
    if has_conflict(driver.id, start, end, bookings):
        raise BookingValidationError(
            "driver_conflict", "Driver is already assigned to another booking during this time"
        )


def _check_driver_qualified(driver: Driver, vehicle: Vehicle) -> None:
    if not driver.can_drive(vehicle.vehicle_type):
        raise BookingValidationError(
            "driver_license_type",
            "Driver does not have the required license type for this vehicle. "
            f"Required: {vehicle.vehicle_type.value}, Driver has: {driver.license_type.value}",
        )


def _check_time_window(start: datetime, end: datetime, now: datetime) -> None:
    if start < now:
        raise BookingValidationError("start_in_past", "Start time cannot be in the past")
    if end <= start:
        raise BookingValidationError("time_range", "End time must be after start time")

    duration = end - start
    if duration < MIN_BOOKING_DURATION:
        raise BookingValidationError("duration_too_short", "Minimum booking duration is 1 hour")
    if duration > MAX_BOOKING_DURATION:
        raise BookingValidationError("duration_too_long", "Maximum booking duration is 7 days")
    if start - now > MAX_ADVANCE_BOOKING:
        raise BookingValidationError(
            "advance_limit", "Bookings cannot be made more than 3 months in advance"
        )


def _is_blank(value: str | None) -> bool:
    return value is None or not value.strip()


def _check_business_rules(request: BookingRequest, vehicle: Vehicle) -> None:
    if _is_blank(request.purpose):
        raise BookingValidationError("purpose_required", "Purpose of travel is required")
    if _is_blank(request.pickup_location):
        raise BookingValidationError("pickup_required", "Pickup location is required")
    if _is_blank(request.destination):
        raise BookingValidationError("destination_required", "Destination is required")
    if not 1 <= request.estimated_passengers <= vehicle.capacity:
        raise BookingValidationError(
            "passenger_capacity",
            f"Estimated passengers must be between 1 and {vehicle.capacity}",
        )
    if request.cost_center is not None and len(request.cost_center.strip()) > MAX_COST_CENTER_LENGTH:
        raise BookingValidationError(
            "cost_center_length", "Cost center cannot exceed 50 characters"
        )
