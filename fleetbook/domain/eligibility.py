"""Vehicle and driver eligibility rules.

Rules:
- A vehicle is bookable only when available and more than 7 days away from
  its next scheduled maintenance. A vehicle with no maintenance scheduled is
  never bookable.
- A driver license must be unexpired, and is flagged for renewal within 30
  days of expiry.
- A driver health check is valid for one year.
"""

from datetime import date, datetime, timedelta
from typing import Protocol

from fleetbook.domain.enums import DriverStatus, LicenseType, VehicleStatus, VehicleType

MAINTENANCE_BUFFER = timedelta(days=7)
LICENSE_RENEWAL_WINDOW = timedelta(days=30)
MAINTENANCE_INTERVAL_MONTHS = 6

# Vehicle types each license class may drive; anything else needs COMMERCIAL
LICENSE_VEHICLE_TYPES: dict[LicenseType, frozenset[VehicleType]] = {
    LicenseType.CLASS_1: frozenset({VehicleType.SEDAN, VehicleType.SUV}),
    LicenseType.CLASS_2: frozenset({VehicleType.VAN, VehicleType.TRUCK}),
    LicenseType.CLASS_3: frozenset({VehicleType.VAN, VehicleType.TRUCK}),
    LicenseType.MOTORCYCLE: frozenset({VehicleType.MOTORCYCLE}),
}
_CLASSED_VEHICLE_TYPES = frozenset().union(*LICENSE_VEHICLE_TYPES.values())


class VehicleSnapshot(Protocol):
    status: VehicleStatus
    available_for_booking: bool
    next_maintenance: datetime | None


class DriverSnapshot(Protocol):
    status: DriverStatus
    available_for_booking: bool
    license_type: LicenseType
    license_expiry_date: date | None
    last_health_check: date | None


def vehicle_is_available(vehicle: VehicleSnapshot) -> bool:
    return vehicle.status == VehicleStatus.AVAILABLE and vehicle.available_for_booking


def vehicle_can_be_booked(vehicle: VehicleSnapshot, now: datetime) -> bool:
    return (
        vehicle_is_available(vehicle)
        and vehicle.next_maintenance is not None
        and now < vehicle.next_maintenance - MAINTENANCE_BUFFER
    )


def vehicle_needs_maintenance(vehicle: VehicleSnapshot, now: datetime) -> bool:
    if vehicle.next_maintenance is None:
        return True
    return now >= vehicle.next_maintenance - MAINTENANCE_BUFFER


def driver_is_available(driver: DriverSnapshot) -> bool:
    return driver.status == DriverStatus.AVAILABLE and driver.available_for_booking


def driver_license_valid(driver: DriverSnapshot, today: date) -> bool:
    return driver.license_expiry_date is not None and today < driver.license_expiry_date


def driver_needs_license_renewal(driver: DriverSnapshot, today: date) -> bool:
    if driver.license_expiry_date is None:
        return True
    return today > driver.license_expiry_date - LICENSE_RENEWAL_WINDOW


def driver_health_check_valid(driver: DriverSnapshot, today: date) -> bool:
    if driver.last_health_check is None:
        return False
    return today < add_years(driver.last_health_check, 1)


def license_permits(license_type: LicenseType, vehicle_type: VehicleType) -> bool:
    if vehicle_type in _CLASSED_VEHICLE_TYPES:
        return vehicle_type in LICENSE_VEHICLE_TYPES.get(license_type, frozenset())
    return license_type == LicenseType.COMMERCIAL


def add_years(value: date, years: int) -> date:
    """Shift a date by whole years, mapping Feb 29 to Feb 28."""
    try:
        return value.replace(year=value.year + years)
    except ValueError:
        return value.replace(year=value.year + years, day=28)


def add_months(value: datetime, months: int) -> datetime:
    """Shift a datetime by whole months, clamping the day to the target month."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = value.day
    while day > 28:
        try:
            return value.replace(year=year, month=month, day=day)
        except ValueError:
            day -= 1
    return value.replace(year=year, month=month, day=day)
