"""Vehicle and driver administration."""

import logging
from datetime import UTC, date, datetime
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from fleetbook.core.exceptions import ConflictError, NotFoundError
from fleetbook.domain.eligibility import LICENSE_RENEWAL_WINDOW, MAINTENANCE_BUFFER
from fleetbook.domain.entities import Driver, Vehicle
from fleetbook.domain.enums import BookingStatus, DriverStatus, VehicleStatus
from fleetbook.repositories.fleet_repository import FleetRepository

logger = logging.getLogger(__name__)

# Bookings that still expect their vehicle or driver to exist
_OPEN_BOOKING_STATUSES = frozenset(
    {
        BookingStatus.PENDING,
        BookingStatus.APPROVED,
        BookingStatus.CONFIRMED,
        BookingStatus.ACTIVE,
    }
)


class FleetService:
    """Service for registering and maintaining vehicles and drivers."""

    def __init__(self, db: AsyncSession, repository: FleetRepository | None = None):
        self.db = db
        self.repository = repository or FleetRepository(db)

    # ==================== VEHICLES ====================

    async def register_vehicle(self, vehicle: Vehicle) -> Vehicle:
        try:
            await self.repository.save_vehicle(vehicle)
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            raise ConflictError(
                f"Vehicle with plate number '{vehicle.plate_number}' already exists"
            ) from exc
        logger.info(f"Vehicle {vehicle.plate_number} registered ({vehicle.id})")
        return vehicle

    async def get_vehicle(self, vehicle_id: UUID) -> Vehicle:
        vehicle = await self.repository.find_vehicle_by_id(vehicle_id)
        if vehicle is None:
            raise NotFoundError("Vehicle", str(vehicle_id))
        return vehicle

    async def change_vehicle_status(self, vehicle_id: UUID, status: VehicleStatus) -> Vehicle:
        vehicle = await self._lock_vehicle(vehicle_id)
        previous = vehicle.status
        vehicle.change_status(status)
        await self.repository.save_vehicle(vehicle)
        await self.db.commit()
        logger.info(f"Vehicle {vehicle.plate_number} status {previous.value} -> {status.value}")
        return vehicle

    async def record_maintenance(self, vehicle_id: UUID, now: datetime | None = None) -> Vehicle:
        """Mark maintenance done now and schedule the next one."""
        vehicle = await self._lock_vehicle(vehicle_id)
        vehicle.schedule_maintenance(now)
        if vehicle.status == VehicleStatus.MAINTENANCE:
            vehicle.set_available()
        await self.repository.save_vehicle(vehicle)
        await self.db.commit()
        logger.info(
            f"Vehicle {vehicle.plate_number} maintained, next due {vehicle.next_maintenance:%Y-%m-%d}"
        )
        return vehicle

    async def retire_vehicle(self, vehicle_id: UUID, now: datetime | None = None) -> Vehicle:
        """Soft-delete a vehicle that no open booking still needs."""
        now = now or datetime.now(UTC)
        vehicle = await self._lock_vehicle(vehicle_id)
        bookings = await self.repository.find_bookings_by_vehicle(vehicle_id)
        if any(b.status in _OPEN_BOOKING_STATUSES and b.end_time > now for b in bookings):
            raise ConflictError("Vehicle has open bookings and cannot be removed")
        vehicle.set_out_of_service()
        vehicle.deleted = True
        await self.repository.save_vehicle(vehicle)
        await self.db.commit()
        logger.info(f"Vehicle {vehicle.plate_number} retired")
        return vehicle

    async def vehicles_requiring_maintenance(self, now: datetime | None = None) -> list[Vehicle]:
        now = now or datetime.now(UTC)
        return await self.repository.find_vehicles_requiring_maintenance(now + MAINTENANCE_BUFFER)

    async def vehicle_usage(
        self, vehicle_id: UUID, start: datetime, end: datetime
    ) -> tuple[int, float | None]:
        """Completed trip count and average trip mileage for the period."""
        await self.get_vehicle(vehicle_id)
        trips = await self.repository.count_completed_trips(vehicle_id, start, end)
        average = await self.repository.average_trip_mileage(vehicle_id, start, end)
        return trips, average

    # ==================== DRIVERS ====================

    async def register_driver(self, driver: Driver) -> Driver:
        try:
            await self.repository.save_driver(driver)
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            raise ConflictError(
                f"Driver with license number '{driver.license_number}' already exists"
            ) from exc
        logger.info(f"Driver {driver.license_number} registered ({driver.id})")
        return driver

    async def get_driver(self, driver_id: UUID) -> Driver:
        driver = await self.repository.find_driver_by_id(driver_id)
        if driver is None:
            raise NotFoundError("Driver", str(driver_id))
        return driver

    async def change_driver_status(self, driver_id: UUID, status: DriverStatus) -> Driver:
        driver = await self._lock_driver(driver_id)
        previous = driver.status
        driver.change_status(status)
        await self.repository.save_driver(driver)
        await self.db.commit()
        logger.info(f"Driver {driver.license_number} status {previous.value} -> {status.value}")
        return driver

    async def retire_driver(self, driver_id: UUID, now: datetime | None = None) -> Driver:
        """Soft-delete a driver that no open booking still needs."""
        now = now or datetime.now(UTC)
        driver = await self._lock_driver(driver_id)
        bookings = await self.repository.find_bookings_by_driver(driver_id)
        if any(b.status in _OPEN_BOOKING_STATUSES and b.end_time > now for b in bookings):
            raise ConflictError("Driver has open bookings and cannot be removed")
        driver.change_status(DriverStatus.UNAVAILABLE)
        driver.deleted = True
        await self.repository.save_driver(driver)
        await self.db.commit()
        logger.info(f"Driver {driver.license_number} retired")
        return driver

    async def drivers_requiring_license_renewal(self, today: date | None = None) -> list[Driver]:
        today = today or datetime.now(UTC).date()
        return await self.repository.find_drivers_requiring_license_renewal(
            today + LICENSE_RENEWAL_WINDOW
        )

    # ==================== INTERNALS ====================

    async def _lock_vehicle(self, vehicle_id: UUID) -> Vehicle:
        vehicle = await self.repository.lock_vehicle(vehicle_id)
        if vehicle is None:
            raise NotFoundError("Vehicle", str(vehicle_id))
        return vehicle

    async def _lock_driver(self, driver_id: UUID) -> Driver:
        driver = await self.repository.lock_driver(driver_id)
        if driver is None:
            raise NotFoundError("Driver", str(driver_id))
        return driver
