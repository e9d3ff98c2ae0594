"""
Fleet Repository

Persistence collaborator for the booking core. Maps domain entities to ORM
rows and back, and answers the conflict and dashboard queries.

Conflict queries only return bookings that occupy a resource
(APPROVED, CONFIRMED, ACTIVE) and overlap the half-open interval
``[start, end)``. All timestamps are normalised to UTC before they reach the
database and when they come back from it.
"""

import logging
from collections.abc import Sequence
from datetime import date, datetime
from uuid import UUID

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from fleetbook import models
from fleetbook.domain.conflicts import OCCUPYING_STATUSES
from fleetbook.domain.entities import Booking, BookingEvent, Driver, Vehicle, as_utc
from fleetbook.domain.enums import (
    BookingStatus,
    BookingType,
    DriverStatus,
    LicenseType,
    VehicleStatus,
    VehicleType,
    parse_enum,
)

logger = logging.getLogger(__name__)

_OCCUPYING_VALUES = [status.value for status in OCCUPYING_STATUSES]

_VEHICLE_FIELDS = (
    "plate_number",
    "capacity",
    "make",
    "model",
    "year",
    "color",
    "description",
    "location",
    "fuel_type",
    "vehicle_group",
    "cost_center",
    "available_for_booking",
    "last_maintenance",
    "next_maintenance",
    "mileage",
    "deleted",
    "created_at",
    "updated_at",
)

_DRIVER_FIELDS = (
    "user_id",
    "license_number",
    "license_expiry_date",
    "last_health_check",
    "available_for_booking",
    "phone_number",
    "department",
    "cost_center",
    "shift",
    "notes",
    "years_of_experience",
    "total_trips_completed",
    "total_miles_driven",
    "deleted",
    "created_at",
    "updated_at",
)

_BOOKING_FIELDS = (
    "booking_reference",
    "vehicle_id",
    "driver_id",
    "requester_id",
    "approver_id",
    "start_time",
    "end_time",
    "actual_start_time",
    "actual_end_time",
    "pickup_location",
    "destination",
    "return_location",
    "purpose",
    "description",
    "estimated_passengers",
    "cost_center",
    "manager_name",
    "additional_requirements",
    "approval_comment",
    "approved_at",
    "rejected_at",
    "rejection_reason",
    "cancellation_reason",
    "cancelled_at",
    "feedback",
    "actual_mileage",
    "created_at",
    "updated_at",
)

_BOOKING_TIMESTAMPS = frozenset(
    {
        "start_time",
        "end_time",
        "actual_start_time",
        "actual_end_time",
        "approved_at",
        "rejected_at",
        "cancelled_at",
        "created_at",
        "updated_at",
    }
)


class FleetRepository:
    """Async data access for vehicles, drivers and bookings."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ==================== VEHICLES ====================

    async def find_vehicle_by_id(self, vehicle_id: UUID) -> Vehicle | None:
        row = await self._vehicle_row(vehicle_id)
        return _vehicle_to_domain(row) if row else None

    async def lock_vehicle(self, vehicle_id: UUID) -> Vehicle | None:
        """Load a vehicle holding a row lock until the transaction ends."""
        row = await self._vehicle_row(vehicle_id, for_update=True)
        return _vehicle_to_domain(row) if row else None

    async def save_vehicle(self, vehicle: Vehicle) -> Vehicle:
        row = await self.db.get(models.Vehicle, vehicle.id)
        if row is None:
            row = models.Vehicle(id=vehicle.id)
            self.db.add(row)
        row.vehicle_type = vehicle.vehicle_type.value
        row.status = vehicle.status.value
        for name in _VEHICLE_FIELDS:
            setattr(row, name, getattr(vehicle, name))
        row.last_maintenance = as_utc(vehicle.last_maintenance)
        row.next_maintenance = as_utc(vehicle.next_maintenance)
        await self.db.flush()
        return vehicle

    async def list_vehicles(self) -> list[Vehicle]:
        query = select(models.Vehicle).where(models.Vehicle.deleted.is_(False))
        return await self._vehicles(query.order_by(models.Vehicle.plate_number))

    async def find_available_vehicles(self) -> list[Vehicle]:
        query = select(models.Vehicle).where(
            models.Vehicle.deleted.is_(False),
            models.Vehicle.status == VehicleStatus.AVAILABLE.value,
            models.Vehicle.available_for_booking.is_(True),
        )
        return await self._vehicles(query.order_by(models.Vehicle.plate_number))

    async def find_vehicles_requiring_maintenance(self, before: datetime) -> list[Vehicle]:
        """Vehicles whose next maintenance falls before ``before``."""
        query = select(models.Vehicle).where(
            models.Vehicle.deleted.is_(False),
            models.Vehicle.next_maintenance.is_not(None),
            models.Vehicle.next_maintenance < as_utc(before),
        )
        return await self._vehicles(query.order_by(models.Vehicle.next_maintenance))

    async def count_completed_trips(self, vehicle_id: UUID, start: datetime, end: datetime) -> int:
        query = select(func.count(models.Booking.id)).where(
            models.Booking.vehicle_id == vehicle_id,
            models.Booking.status == BookingStatus.COMPLETED.value,
            models.Booking.actual_start_time >= as_utc(start),
            models.Booking.actual_start_time <= as_utc(end),
        )
        return (await self.db.execute(query)).scalar_one()

    async def average_trip_mileage(
        self, vehicle_id: UUID, start: datetime, end: datetime
    ) -> float | None:
        query = select(func.avg(models.Booking.actual_mileage)).where(
            models.Booking.vehicle_id == vehicle_id,
            models.Booking.status == BookingStatus.COMPLETED.value,
            models.Booking.actual_start_time >= as_utc(start),
            models.Booking.actual_start_time <= as_utc(end),
            models.Booking.actual_mileage > 0,
        )
        average = (await self.db.execute(query)).scalar_one_or_none()
        return float(average) if average is not None else None

    # ==================== DRIVERS ====================

    async def find_driver_by_id(self, driver_id: UUID) -> Driver | None:
        row = await self._driver_row(driver_id)
        return _driver_to_domain(row) if row else None

    async def lock_driver(self, driver_id: UUID) -> Driver | None:
        """Load a driver holding a row lock until the transaction ends."""
        row = await self._driver_row(driver_id, for_update=True)
        return _driver_to_domain(row) if row else None

    async def save_driver(self, driver: Driver) -> Driver:
        row = await self.db.get(models.Driver, driver.id)
        if row is None:
            row = models.Driver(id=driver.id)
            self.db.add(row)
        row.license_type = driver.license_type.value
        row.status = driver.status.value
        for name in _DRIVER_FIELDS:
            setattr(row, name, getattr(driver, name))
        await self.db.flush()
        return driver

    async def list_drivers(self) -> list[Driver]:
        query = select(models.Driver).where(models.Driver.deleted.is_(False))
        return await self._drivers(query.order_by(models.Driver.license_number))

    async def find_available_drivers(self) -> list[Driver]:
        query = select(models.Driver).where(
            models.Driver.deleted.is_(False),
            models.Driver.status == DriverStatus.AVAILABLE.value,
            models.Driver.available_for_booking.is_(True),
        )
        return await self._drivers(query.order_by(models.Driver.license_number))

    async def find_drivers_requiring_license_renewal(self, before: date) -> list[Driver]:
        """Drivers whose license expires before ``before``."""
        query = select(models.Driver).where(
            models.Driver.deleted.is_(False),
            models.Driver.license_expiry_date.is_not(None),
            models.Driver.license_expiry_date < before,
        )
        return await self._drivers(query.order_by(models.Driver.license_expiry_date))

    # ==================== BOOKINGS ====================

    async def save_booking(self, booking: Booking) -> Booking:
        """Insert or update a booking and append any history entries not yet stored."""
        row = await self.db.get(models.Booking, booking.id)
        if row is None:
            row = models.Booking(id=booking.id, events=[])
            self.db.add(row)
        elif row.booking_reference != booking.booking_reference:
            raise ValueError("Booking reference cannot change once stored")

        row.booking_type = booking.booking_type.value
        row.status = booking.status.value
        for name in _BOOKING_FIELDS:
            value = getattr(booking, name)
            setattr(row, name, as_utc(value) if name in _BOOKING_TIMESTAMPS else value)

        stored = len(row.events)
        for sequence, event in enumerate(booking.event_history[stored:], start=stored):
            row.events.append(
                models.BookingEventEntry(
                    booking_id=booking.id,
                    sequence=sequence,
                    booking_reference=event.booking_reference,
                    event_type=event.event_type,
                    description=event.description,
                    caused_by=event.caused_by,
                    occurred_at=as_utc(event.occurred_at),
                )
            )

        await self.db.flush()
        return booking

    async def find_booking_by_id(self, booking_id: UUID, for_update: bool = False) -> Booking | None:
        query = select(models.Booking).where(models.Booking.id == booking_id)
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)
        row = (await self.db.execute(query)).scalar_one_or_none()
        return _booking_to_domain(row) if row else None

    async def find_booking_by_reference(self, reference: str) -> Booking | None:
        query = select(models.Booking).where(models.Booking.booking_reference == reference)
        row = (await self.db.execute(query)).scalar_one_or_none()
        return _booking_to_domain(row) if row else None

    async def find_conflicting_bookings(
        self,
        vehicle_id: UUID,
        start: datetime,
        end: datetime,
        exclude_booking_id: UUID | None = None,
    ) -> list[Booking]:
        query = self._overlapping(start, end, exclude_booking_id).where(
            models.Booking.vehicle_id == vehicle_id
        )
        return await self._bookings(query)

    async def find_conflicting_bookings_for_driver(
        self,
        driver_id: UUID,
        start: datetime,
        end: datetime,
        exclude_booking_id: UUID | None = None,
    ) -> list[Booking]:
        query = self._overlapping(start, end, exclude_booking_id).where(
            models.Booking.driver_id == driver_id
        )
        return await self._bookings(query)

    async def find_bookings_by_status(self, status: BookingStatus) -> list[Booking]:
        query = select(models.Booking).where(models.Booking.status == status.value)
        return await self._bookings(query.order_by(models.Booking.start_time))

    async def find_bookings_by_requester(self, requester_id: UUID) -> list[Booking]:
        query = select(models.Booking).where(models.Booking.requester_id == requester_id)
        return await self._bookings(query.order_by(models.Booking.created_at.desc()))

    async def find_bookings_by_vehicle(self, vehicle_id: UUID) -> list[Booking]:
        query = select(models.Booking).where(models.Booking.vehicle_id == vehicle_id)
        return await self._bookings(query.order_by(models.Booking.start_time))

    async def find_bookings_by_driver(self, driver_id: UUID) -> list[Booking]:
        query = select(models.Booking).where(models.Booking.driver_id == driver_id)
        return await self._bookings(query.order_by(models.Booking.start_time))

    async def find_vehicle_bookings_in_status(
        self,
        vehicle_id: UUID,
        statuses: Sequence[BookingStatus],
        exclude_booking_id: UUID | None = None,
    ) -> list[Booking]:
        """Bookings of the vehicle in any of ``statuses``, whatever their interval."""
        query = self._in_status(statuses, exclude_booking_id).where(
            models.Booking.vehicle_id == vehicle_id
        )
        return await self._bookings(query)

    async def find_driver_bookings_in_status(
        self,
        driver_id: UUID,
        statuses: Sequence[BookingStatus],
        exclude_booking_id: UUID | None = None,
    ) -> list[Booking]:
        query = self._in_status(statuses, exclude_booking_id).where(
            models.Booking.driver_id == driver_id
        )
        return await self._bookings(query)

    async def list_bookings(self, limit: int = 100, offset: int = 0) -> list[Booking]:
        query = select(models.Booking).order_by(models.Booking.start_time)
        return await self._bookings(query.limit(limit).offset(offset))

    async def find_pending_bookings(self, manager_name: str | None = None) -> list[Booking]:
        """Bookings awaiting approval, oldest first, optionally for one manager."""
        query = select(models.Booking).where(
            models.Booking.status == BookingStatus.PENDING.value
        )
        if manager_name:
            query = query.where(models.Booking.manager_name == manager_name)
        return await self._bookings(query.order_by(models.Booking.created_at))

    async def find_current_bookings(self) -> list[Booking]:
        """Trips in progress."""
        query = select(models.Booking).where(models.Booking.status == BookingStatus.ACTIVE.value)
        return await self._bookings(query.order_by(models.Booking.start_time))

    async def find_upcoming_bookings(self, now: datetime) -> list[Booking]:
        query = select(models.Booking).where(
            models.Booking.start_time > as_utc(now),
            models.Booking.status.in_(
                [BookingStatus.APPROVED.value, BookingStatus.CONFIRMED.value]
            ),
        )
        return await self._bookings(query.order_by(models.Booking.start_time))

    async def find_expired_bookings(self, now: datetime) -> list[Booking]:
        """Bookings whose start passed while still pending or merely approved."""
        query = select(models.Booking).where(
            models.Booking.start_time < as_utc(now),
            models.Booking.status.in_(
                [BookingStatus.PENDING.value, BookingStatus.APPROVED.value]
            ),
        )
        return await self._bookings(query.order_by(models.Booking.start_time))

    async def find_bookings_starting_between(
        self,
        start: datetime,
        end: datetime,
        statuses: Sequence[BookingStatus],
    ) -> list[Booking]:
        query = select(models.Booking).where(
            models.Booking.start_time >= as_utc(start),
            models.Booking.start_time < as_utc(end),
            models.Booking.status.in_([status.value for status in statuses]),
        )
        return await self._bookings(query.order_by(models.Booking.start_time))

    # ==================== INTERNALS ====================

    async def _vehicle_row(self, vehicle_id: UUID, for_update: bool = False) -> models.Vehicle | None:
        query = select(models.Vehicle).where(
            models.Vehicle.id == vehicle_id, models.Vehicle.deleted.is_(False)
        )
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)
        return (await self.db.execute(query)).scalar_one_or_none()

    async def _driver_row(self, driver_id: UUID, for_update: bool = False) -> models.Driver | None:
        query = select(models.Driver).where(
            models.Driver.id == driver_id, models.Driver.deleted.is_(False)
        )
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)
        return (await self.db.execute(query)).scalar_one_or_none()

    def _overlapping(
        self, start: datetime, end: datetime, exclude_booking_id: UUID | None
    ) -> Select:
        query = select(models.Booking).where(
            models.Booking.status.in_(_OCCUPYING_VALUES),
            models.Booking.start_time < as_utc(end),
            models.Booking.end_time > as_utc(start),
        )
        if exclude_booking_id is not None:
            query = query.where(models.Booking.id != exclude_booking_id)
        return query.order_by(models.Booking.start_time)

    def _in_status(
        self, statuses: Sequence[BookingStatus], exclude_booking_id: UUID | None
    ) -> Select:
        query = select(models.Booking).where(
            models.Booking.status.in_([status.value for status in statuses])
        )
        if exclude_booking_id is not None:
            query = query.where(models.Booking.id != exclude_booking_id)
        return query.order_by(models.Booking.start_time)

    async def _vehicles(self, query: Select) -> list[Vehicle]:
        result = await self.db.execute(query)
        return [_vehicle_to_domain(row) for row in result.scalars().all()]

    async def _drivers(self, query: Select) -> list[Driver]:
        result = await self.db.execute(query)
        return [_driver_to_domain(row) for row in result.scalars().all()]

    async def _bookings(self, query: Select) -> list[Booking]:
        result = await self.db.execute(query)
        return [_booking_to_domain(row) for row in result.scalars().all()]


def _vehicle_to_domain(row: models.Vehicle) -> Vehicle:
    return Vehicle(
        id=row.id,
        vehicle_type=parse_enum(VehicleType, row.vehicle_type),
        status=parse_enum(VehicleStatus, row.status),
        last_maintenance=as_utc(row.last_maintenance),
        next_maintenance=as_utc(row.next_maintenance),
        created_at=as_utc(row.created_at),
        updated_at=as_utc(row.updated_at),
        **{
            name: getattr(row, name)
            for name in _VEHICLE_FIELDS
            if name not in ("last_maintenance", "next_maintenance", "created_at", "updated_at")
        },
    )


def _driver_to_domain(row: models.Driver) -> Driver:
    return Driver(
        id=row.id,
        license_type=parse_enum(LicenseType, row.license_type),
        status=parse_enum(DriverStatus, row.status),
        created_at=as_utc(row.created_at),
        updated_at=as_utc(row.updated_at),
        **{
            name: getattr(row, name)
            for name in _DRIVER_FIELDS
            if name not in ("created_at", "updated_at")
        },
    )


def _booking_to_domain(row: models.Booking) -> Booking:
    history = tuple(
        BookingEvent(
            booking_reference=entry.booking_reference,
            event_type=entry.event_type,
            description=entry.description,
            caused_by=entry.caused_by,
            occurred_at=as_utc(entry.occurred_at),
        )
        for entry in row.events
    )
    return Booking(
        id=row.id,
        booking_type=parse_enum(BookingType, row.booking_type),
        status=parse_enum(BookingStatus, row.status),
        event_history=history,
        **{
            name: as_utc(getattr(row, name)) if name in _BOOKING_TIMESTAMPS else getattr(row, name)
            for name in _BOOKING_FIELDS
        },
    )
