"""Vehicle and driver eligibility rules."""

from datetime import UTC, date, datetime, timedelta

import pytest

from fleetbook.domain.eligibility import add_months, add_years, license_permits
from fleetbook.domain.enums import DriverStatus, LicenseType, VehicleStatus, VehicleType
from tests.factories import make_driver, make_vehicle

NOW = datetime(2031, 1, 15, 12, 0, tzinfo=UTC)
TODAY = NOW.date()


class TestVehicleEligibility:
    def test_available_vehicle_can_be_booked(self):
        vehicle = make_vehicle(now=NOW)
        assert vehicle.is_available()
        assert vehicle.can_be_booked(NOW)
        assert not vehicle.needs_maintenance(NOW)

    def test_maintenance_within_a_week_blocks_booking(self):
        vehicle = make_vehicle(now=NOW, next_maintenance=NOW + timedelta(days=6))
        assert vehicle.is_available()
        assert vehicle.needs_maintenance(NOW)
        assert not vehicle.can_be_booked(NOW)

    def test_maintenance_exactly_a_week_away_blocks_booking(self):
        vehicle = make_vehicle(now=NOW, next_maintenance=NOW + timedelta(days=7))
        assert vehicle.needs_maintenance(NOW)
        assert not vehicle.can_be_booked(NOW)

    def test_unscheduled_maintenance_is_never_bookable(self):
        vehicle = make_vehicle(now=NOW, next_maintenance=None)
        assert vehicle.needs_maintenance(NOW)
        assert not vehicle.can_be_booked(NOW)

    @pytest.mark.parametrize(
        "status",
        [
            VehicleStatus.BOOKED,
            VehicleStatus.IN_USE,
            VehicleStatus.MAINTENANCE,
            VehicleStatus.OUT_OF_SERVICE,
        ],
    )
    def test_unavailable_statuses(self, status):
        vehicle = make_vehicle(now=NOW)
        vehicle.change_status(status)
        assert not vehicle.available_for_booking
        assert not vehicle.can_be_booked(NOW)

    def test_flag_off_blocks_booking(self):
        vehicle = make_vehicle(now=NOW, available_for_booking=False)
        assert not vehicle.is_available()


class TestDriverEligibility:
    def test_licensed_healthy_driver(self):
        driver = make_driver(today=TODAY)
        assert driver.is_available()
        assert driver.is_license_valid(TODAY)
        assert not driver.needs_license_renewal(TODAY)
        assert driver.is_health_check_valid(TODAY)

    def test_license_expiring_in_ten_days_needs_renewal(self):
        driver = make_driver(today=TODAY, license_expiry_date=TODAY + timedelta(days=10))
        assert driver.is_license_valid(TODAY)
        assert driver.needs_license_renewal(TODAY)

    def test_expired_license(self):
        driver = make_driver(today=TODAY, license_expiry_date=TODAY)
        assert not driver.is_license_valid(TODAY)

    def test_missing_license_expiry(self):
        driver = make_driver(today=TODAY, license_expiry_date=None)
        assert not driver.is_license_valid(TODAY)
        assert driver.needs_license_renewal(TODAY)

    def test_health_check_valid_for_one_year(self):
        driver = make_driver(today=TODAY, last_health_check=TODAY - timedelta(days=364))
        assert driver.is_health_check_valid(TODAY)
        stale = make_driver(today=TODAY, last_health_check=date(2030, 1, 15))
        assert not stale.is_health_check_valid(TODAY)

    def test_missing_health_check(self):
        driver = make_driver(today=TODAY, last_health_check=None)
        assert not driver.is_health_check_valid(TODAY)

    def test_sick_driver_is_not_available(self):
        driver = make_driver(today=TODAY)
        driver.change_status(DriverStatus.SICK)
        assert not driver.is_available()
        assert not driver.available_for_booking


class TestLicensePermits:
    @pytest.mark.parametrize(
        "license_type,vehicle_type,allowed",
        [
            (LicenseType.CLASS_1, VehicleType.SEDAN, True),
            (LicenseType.CLASS_1, VehicleType.SUV, True),
            (LicenseType.CLASS_1, VehicleType.VAN, False),
            (LicenseType.CLASS_2, VehicleType.VAN, True),
            (LicenseType.CLASS_2, VehicleType.TRUCK, True),
            (LicenseType.CLASS_3, VehicleType.TRUCK, True),
            (LicenseType.CLASS_3, VehicleType.SEDAN, False),
            (LicenseType.MOTORCYCLE, VehicleType.MOTORCYCLE, True),
            (LicenseType.MOTORCYCLE, VehicleType.SEDAN, False),
            (LicenseType.COMMERCIAL, VehicleType.OTHER, True),
            (LicenseType.COMMERCIAL, VehicleType.SEDAN, False),
            (LicenseType.CLASS_1, VehicleType.OTHER, False),
        ],
    )
    def test_matrix(self, license_type, vehicle_type, allowed):
        assert license_permits(license_type, vehicle_type) is allowed


class TestCalendarArithmetic:
    def test_add_years_leap_day(self):
        assert add_years(date(2028, 2, 29), 1) == date(2029, 2, 28)
        assert add_years(date(2029, 6, 1), 1) == date(2030, 6, 1)

    def test_add_months_clamps_day(self):
        assert add_months(datetime(2031, 8, 31, tzinfo=UTC), 6) == datetime(2032, 2, 29, tzinfo=UTC)
        assert add_months(datetime(2031, 3, 31, tzinfo=UTC), 6) == datetime(2031, 9, 30, tzinfo=UTC)

    def test_add_months_crosses_year(self):
        assert add_months(datetime(2031, 11, 5, tzinfo=UTC), 6) == datetime(2032, 5, 5, tzinfo=UTC)
