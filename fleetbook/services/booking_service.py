"""
Booking Service

Application layer for the booking lifecycle. Each public mutation is one unit
of work:

1. lock the booking and the vehicle/driver rows it touches
2. validate and apply the domain transition
3. flush, then re-check that no other occupying booking overlaps
4. commit
5. publish the new history events and send notifications (best effort)

A clash found at step 3, or raised by the database exclusion constraint,
surfaces as ConflictError rather than a validation failure: a concurrent
request won the resource.
"""

import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from fleetbook.config import settings
from fleetbook.core.exceptions import (
    BookingValidationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from fleetbook.domain.actor import Actor
from fleetbook.domain.conflicts import OCCUPYING_STATUSES
from fleetbook.domain.entities import Booking, BookingRequest, Driver, Vehicle
from fleetbook.domain.enums import BookingStatus, DriverStatus, VehicleStatus
from fleetbook.domain.validation import validate_booking_request
from fleetbook.repositories.fleet_repository import FleetRepository
from fleetbook.services.event_publisher import EventPublisher
from fleetbook.services.notification_service import BookingNotifier

logger = logging.getLogger(__name__)

# PostgreSQL SQLSTATE for exclusion constraint violations
EXCLUSION_VIOLATION = "23P01"

_HELD_VEHICLE_STATUSES = frozenset({VehicleStatus.BOOKED, VehicleStatus.IN_USE})
_HELD_DRIVER_STATUSES = frozenset({DriverStatus.ASSIGNED, DriverStatus.ON_DUTY})
_OFF_ROAD_VEHICLE_STATUSES = frozenset({VehicleStatus.MAINTENANCE, VehicleStatus.OUT_OF_SERVICE})
_OFF_ROSTER_DRIVER_STATUSES = frozenset(
    {DriverStatus.UNAVAILABLE, DriverStatus.ON_LEAVE, DriverStatus.SICK}
)


def _is_exclusion_violation(exc: IntegrityError) -> bool:
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    return code == EXCLUSION_VIOLATION


def _holding_statuses(previous: BookingStatus, in_trip: bool) -> frozenset[BookingStatus]:
    """Statuses of other bookings that keep a resource held; empty if this one never held it."""
    if in_trip:
        if previous != BookingStatus.ACTIVE:
            return frozenset()
        return frozenset({BookingStatus.ACTIVE})
    return OCCUPYING_STATUSES


class BookingService:
    """Service for creating bookings and driving them through their lifecycle."""

    def __init__(
        self,
        db: AsyncSession,
        repository: FleetRepository | None = None,
        publisher: EventPublisher | None = None,
        notifier: BookingNotifier | None = None,
    ):
        self.db = db
        self.repository = repository or FleetRepository(db)
        self.publisher = publisher or EventPublisher()
        self.notifier = notifier or BookingNotifier()

    # ==================== CREATION ====================

    async def create_booking(
        self,
        request: BookingRequest,
        requester: Actor,
        now: datetime | None = None,
    ) -> Booking:
        """Validate and persist a new booking.

        Raises:
            NotFoundError: vehicle or driver does not exist
            BookingValidationError: the first rule the request breaks
            ConflictError: a concurrent booking took the resource first
        """
        if requester.is_system:
            raise ValidationError("Bookings must be requested on behalf of a user")
        now = now or datetime.now(UTC)

        vehicle = await self.repository.lock_vehicle(request.vehicle_id)
        if vehicle is None:
            raise NotFoundError("Vehicle", str(request.vehicle_id))
        driver = None
        if request.driver_id is not None:
            driver = await self.repository.lock_driver(request.driver_id)
            if driver is None:
                raise NotFoundError("Driver", str(request.driver_id))

        vehicle_bookings = await self.repository.find_conflicting_bookings(
            vehicle.id, request.start_time, request.end_time
        )
        driver_bookings = []
        if driver is not None:
            driver_bookings = await self.repository.find_conflicting_bookings_for_driver(
                driver.id, request.start_time, request.end_time
            )
        validate_booking_request(
            request,
            vehicle,
            driver,
            vehicle_bookings=vehicle_bookings,
            driver_bookings=driver_bookings,
            now=now,
        )

        booking = Booking.create(request, requester.user_id, now=now)
        if settings.auto_approve_bookings:
            booking.approve(Actor.system(), "Approved automatically by booking policy", now=now)
            vehicle.set_booked()
        await self._persist(booking, vehicle)

        logger.info(
            f"Booking {booking.booking_reference} created by {requester} "
            f"for vehicle {booking.vehicle_id} with status {booking.status.value}"
        )
        self.publisher.publish(booking.pull_new_events())
        self.notifier.booking_created(booking)
        if booking.needs_approval:
            self.notifier.approval_request(booking)
        self.notifier.admin_new_booking(booking)
        if booking.status == BookingStatus.APPROVED:
            self.notifier.booking_approved(booking)
        return booking

    # ==================== TRANSITIONS ====================

    async def approve(
        self,
        booking_id: UUID,
        actor: Actor,
        comment: str | None = None,
        now: datetime | None = None,
    ) -> Booking:
        """Approve a pending booking once no occupying booking overlaps it."""
        booking = await self._load_for_update(booking_id)
        vehicle, driver = await self._lock_resources(booking)
        previous = booking.status
        booking.approve(actor, comment, now=now)
        return await self._finish(
            booking, previous, actor, vehicle, driver, self.notifier.booking_approved
        )

    async def reject(
        self,
        booking_id: UUID,
        actor: Actor,
        reason: str,
        now: datetime | None = None,
    ) -> Booking:
        booking = await self._load_for_update(booking_id)
        vehicle, driver = await self._lock_resources(booking)
        previous = booking.status
        booking.reject(actor, reason, now=now)
        await self._release(booking, previous, vehicle, driver)
        return await self._finish(
            booking, previous, actor, vehicle, driver, self.notifier.booking_rejected
        )

    async def confirm(
        self,
        booking_id: UUID,
        actor: Actor | None = None,
        now: datetime | None = None,
    ) -> Booking:
        """Confirm an approved booking; system-driven unless an actor is given."""
        actor = actor or Actor.system()
        booking = await self._load_for_update(booking_id)
        vehicle, driver = await self._lock_resources(booking)
        previous = booking.status
        booking.confirm(actor, now=now)
        return await self._finish(booking, previous, actor, vehicle, driver)

    async def activate(
        self,
        booking_id: UUID,
        actor: Actor,
        now: datetime | None = None,
    ) -> Booking:
        """Start the trip: the vehicle goes in use and the driver on duty.

        Refused while the vehicle is off the road or the driver off the roster.
        """
        booking = await self._load_for_update(booking_id)
        vehicle, driver = await self._lock_resources(booking)
        previous = booking.status
        if vehicle is not None and vehicle.status in _OFF_ROAD_VEHICLE_STATUSES:
            raise BookingValidationError(
                "vehicle_unavailable",
                f"Vehicle is not available for the trip. Status: {vehicle.status.value}",
            )
        if driver is not None and driver.status in _OFF_ROSTER_DRIVER_STATUSES:
            raise BookingValidationError(
                "driver_unavailable",
                f"Driver is not available for the trip. Status: {driver.status.value}",
            )
        booking.activate(actor, now=now)
        if vehicle is not None:
            vehicle.set_in_use()
        if driver is not None:
            driver.set_on_duty()
        return await self._finish(booking, previous, actor, vehicle, driver)

    async def complete(
        self,
        booking_id: UUID,
        actor: Actor,
        feedback: str | None = None,
        actual_mileage: float | None = None,
        now: datetime | None = None,
    ) -> Booking:
        """Finish the trip; the vehicle and driver return to the pool if still on it."""
        booking = await self._load_for_update(booking_id)
        vehicle, driver = await self._lock_resources(booking)
        previous = booking.status
        booking.complete(actor, feedback, actual_mileage, now=now)
        await self._release(booking, previous, vehicle, driver)
        miles = actual_mileage or 0.0
        if vehicle is not None:
            vehicle.add_trip_mileage(miles)
        if driver is not None:
            driver.complete_trip(miles)
        return await self._finish(
            booking, previous, actor, vehicle, driver, self.notifier.trip_completed
        )

    async def cancel(
        self,
        booking_id: UUID,
        actor: Actor,
        reason: str,
        now: datetime | None = None,
    ) -> Booking:
        booking = await self._load_for_update(booking_id)
        vehicle, driver = await self._lock_resources(booking)
        previous = booking.status
        booking.cancel(actor, reason, now=now)
        await self._release(booking, previous, vehicle, driver)
        return await self._finish(
            booking, previous, actor, vehicle, driver, self.notifier.booking_cancelled
        )

    async def mark_no_show(
        self,
        booking_id: UUID,
        actor: Actor,
        now: datetime | None = None,
    ) -> Booking:
        booking = await self._load_for_update(booking_id)
        vehicle, driver = await self._lock_resources(booking)
        previous = booking.status
        booking.mark_no_show(actor, now=now)
        await self._release(booking, previous, vehicle, driver)
        return await self._finish(booking, previous, actor, vehicle, driver)

    # ==================== QUERIES ====================

    async def get_booking(self, booking_id: UUID) -> Booking:
        booking = await self.repository.find_booking_by_id(booking_id)
        if booking is None:
            raise NotFoundError("Booking", str(booking_id))
        return booking

    async def get_booking_by_reference(self, reference: str) -> Booking:
        booking = await self.repository.find_booking_by_reference(reference)
        if booking is None:
            raise NotFoundError("Booking", reference)
        return booking

    async def is_available(
        self,
        vehicle_id: UUID,
        driver_id: UUID | None,
        start: datetime,
        end: datetime,
        now: datetime | None = None,
    ) -> bool:
        """Whether the vehicle (and driver, if given) could be booked for the interval."""
        now = now or datetime.now(UTC)
        vehicle = await self.repository.find_vehicle_by_id(vehicle_id)
        if vehicle is None or not vehicle.can_be_booked(now):
            return False
        if await self.repository.find_conflicting_bookings(vehicle_id, start, end):
            return False

        if driver_id is not None:
            driver = await self.repository.find_driver_by_id(driver_id)
            if driver is None or not driver.is_available() or not driver.is_license_valid(now.date()):
                return False
            if await self.repository.find_conflicting_bookings_for_driver(driver_id, start, end):
                return False
        return True

    # ==================== HOUSEKEEPING ====================

    async def expire_stale_bookings(self, now: datetime | None = None) -> int:
        """Cancel bookings whose start passed while still pending or approved."""
        now = now or datetime.now(UTC)
        expired = 0
        actor = Actor.system()
        for stale in await self.repository.find_expired_bookings(now):
            booking = await self._load_for_update(stale.id)
            if not booking.is_expired(now):
                continue
            vehicle, driver = await self._lock_resources(booking)
            previous = booking.status
            booking.cancel(actor, "Booking expired before it was confirmed", now=now)
            await self._release(booking, previous, vehicle, driver)
            await self._finish(
                booking, previous, actor, vehicle, driver, self.notifier.booking_cancelled
            )
            expired += 1
        if expired:
            logger.info(f"Expired {expired} stale bookings")
        return expired

    async def send_trip_reminders(
        self,
        now: datetime | None = None,
        window: timedelta = timedelta(hours=1),
    ) -> int:
        """Remind requesters of trips starting ``trip_reminder_lead_hours`` from now.

        Only trips starting within one ``window`` of the lead time are picked,
        so an hourly run reminds each trip once.
        """
        now = now or datetime.now(UTC)
        lead = timedelta(hours=settings.trip_reminder_lead_hours)
        upcoming = await self.repository.find_bookings_starting_between(
            now + lead - window,
            now + lead,
            [BookingStatus.APPROVED, BookingStatus.CONFIRMED],
        )
        for booking in upcoming:
            self.notifier.trip_reminder(booking)
        if upcoming:
            logger.info(f"Sent {len(upcoming)} trip reminders")
        return len(upcoming)

    # ==================== INTERNALS ====================

    async def _load_for_update(self, booking_id: UUID) -> Booking:
        booking = await self.repository.find_booking_by_id(booking_id, for_update=True)
        if booking is None:
            raise NotFoundError("Booking", str(booking_id))
        return booking

    async def _lock_resources(self, booking: Booking) -> tuple[Vehicle | None, Driver | None]:
        # Vehicle before driver, matching the creation path, so lock order is stable
        vehicle = await self.repository.lock_vehicle(booking.vehicle_id)
        driver = None
        if booking.driver_id is not None:
            driver = await self.repository.lock_driver(booking.driver_id)
        return vehicle, driver

    async def _release(
        self,
        booking: Booking,
        previous: BookingStatus,
        vehicle: Vehicle | None,
        driver: Driver | None,
    ) -> None:
        """Return the vehicle and driver to the pool unless another booking still holds them.

        An in-use vehicle or on-duty driver belongs to the active trip, so only
        closing that trip frees it. A reservation (booked, assigned) stays while
        any other occupying booking of the resource remains.
        """
        if previous not in OCCUPYING_STATUSES:
            return
        if vehicle is not None and vehicle.status in _HELD_VEHICLE_STATUSES:
            holders = _holding_statuses(previous, vehicle.status == VehicleStatus.IN_USE)
            if holders and not await self.repository.find_vehicle_bookings_in_status(
                vehicle.id, holders, exclude_booking_id=booking.id
            ):
                vehicle.set_available()
        if driver is not None and driver.status in _HELD_DRIVER_STATUSES:
            holders = _holding_statuses(previous, driver.status == DriverStatus.ON_DUTY)
            if holders and not await self.repository.find_driver_bookings_in_status(
                driver.id, holders, exclude_booking_id=booking.id
            ):
                driver.set_available()

    async def _finish(
        self,
        booking: Booking,
        previous: BookingStatus,
        actor: Actor,
        vehicle: Vehicle | None,
        driver: Driver | None,
        notify: Callable[[Booking], None] | None = None,
    ) -> Booking:
        await self._persist(booking, vehicle, driver)

        logger.info(
            f"Booking {booking.booking_reference} {previous.value} -> "
            f"{booking.status.value} by {actor}"
        )
        self.publisher.publish(booking.pull_new_events())
        if notify is not None:
            notify(booking)
        else:
            self.notifier.status_changed(booking, previous.value)
        return booking

    async def _ensure_no_conflicts(self, booking: Booking) -> None:
        """Fail the unit of work if another occupying booking overlaps this one."""
        if booking.status not in OCCUPYING_STATUSES:
            return
        clashes = await self.repository.find_conflicting_bookings(
            booking.vehicle_id, booking.start_time, booking.end_time, exclude_booking_id=booking.id
        )
        if clashes:
            await self.db.rollback()
            logger.warning(
                f"Vehicle conflict for {booking.booking_reference} with "
                f"{', '.join(b.booking_reference for b in clashes)}"
            )
            raise ConflictError("Vehicle is already booked for the requested time period")

        if booking.driver_id is None:
            return
        clashes = await self.repository.find_conflicting_bookings_for_driver(
            booking.driver_id, booking.start_time, booking.end_time, exclude_booking_id=booking.id
        )
        if clashes:
            await self.db.rollback()
            logger.warning(
                f"Driver conflict for {booking.booking_reference} with "
                f"{', '.join(b.booking_reference for b in clashes)}"
            )
            raise ConflictError("Driver is already assigned to another booking during this time")

    async def _persist(
        self,
        booking: Booking,
        vehicle: Vehicle | None = None,
        driver: Driver | None = None,
    ) -> None:
        """Write the unit of work and commit it.

        The exclusion constraint fires on INSERT/UPDATE, so it can surface at
        flush as well as at commit.
        """
        try:
            if vehicle is not None:
                await self.repository.save_vehicle(vehicle)
            if driver is not None:
                await self.repository.save_driver(driver)
            await self.repository.save_booking(booking)
            await self._ensure_no_conflicts(booking)
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            if _is_exclusion_violation(exc):
                logger.warning(f"Exclusion constraint rejected a booking: {exc.orig}")
                raise ConflictError() from exc
            raise
