"""BookingService lifecycle, conflicts and housekeeping."""

from datetime import timedelta
from uuid import uuid4

import pytest
import pytest_asyncio

from fleetbook.config import settings
from fleetbook.core.exceptions import (
    BookingValidationError,
    ConflictError,
    InvalidStateTransition,
    NotFoundError,
    ValidationError,
)
from fleetbook.database import AsyncSessionLocal
from fleetbook.domain.actor import Actor
from fleetbook.domain.enums import BookingStatus, DriverStatus, VehicleStatus
from fleetbook.repositories.fleet_repository import FleetRepository
from fleetbook.services import event_publisher, notification_service
from fleetbook.services.booking_service import BookingService
from tests.factories import make_request


def at(day, hour: int):
    return day + timedelta(hours=hour)


@pytest.fixture
def requester() -> Actor:
    return Actor.user(uuid4())


@pytest.fixture
def manager() -> Actor:
    return Actor.user(uuid4())


class _BrokenTask:
    def delay(self, *args, **kwargs):
        raise ConnectionError("broker unreachable")


async def _fresh_booking(booking_id):
    async with AsyncSessionLocal() as session:
        return await FleetRepository(session).find_booking_by_id(booking_id)


class TestCreateBooking:
    @pytest.mark.asyncio
    async def test_creates_pending_booking(
        self, service, publisher, notifier, vehicle, driver, requester, now, trip_day
    ):
        request = make_request(
            vehicle.id, at(trip_day, 9), at(trip_day, 12), driver_id=driver.id, manager_name="Alice"
        )
        booking = await service.create_booking(request, requester, now=now)

        assert booking.status == BookingStatus.PENDING
        assert booking.requester_id == requester.user_id
        assert publisher.event_types == ["BOOKING_CREATED"]
        assert notifier.types == [
            notifier.BOOKING_CREATED,
            notifier.APPROVAL_REQUEST,
            notifier.ADMIN_NEW_BOOKING,
        ]
        stored = await service.get_booking(booking.id)
        assert stored.booking_reference == booking.booking_reference

    @pytest.mark.asyncio
    async def test_approval_request_skipped_without_manager(
        self, service, notifier, vehicle, requester, now, trip_day
    ):
        await service.create_booking(
            make_request(vehicle.id, at(trip_day, 9), at(trip_day, 12)), requester, now=now
        )
        assert notifier.APPROVAL_REQUEST not in notifier.types

    @pytest.mark.asyncio
    async def test_overlap_with_approved_booking_rejected_but_touching_accepted(
        self, service, vehicle, requester, manager, now, trip_day
    ):
        first = await service.create_booking(
            make_request(vehicle.id, at(trip_day, 9), at(trip_day, 11)), requester, now=now
        )
        await service.approve(first.id, manager, now=now)

        with pytest.raises(BookingValidationError) as exc_info:
            await service.create_booking(
                make_request(vehicle.id, at(trip_day, 10), at(trip_day, 12)), requester, now=now
            )
        assert exc_info.value.rule == "vehicle_conflict"

        touching = await service.create_booking(
            make_request(vehicle.id, at(trip_day, 11), at(trip_day, 13)), requester, now=now
        )
        assert touching.status == BookingStatus.PENDING

    @pytest.mark.asyncio
    async def test_unknown_vehicle(self, service, requester, now, trip_day):
        with pytest.raises(NotFoundError):
            await service.create_booking(
                make_request(uuid4(), at(trip_day, 9), at(trip_day, 12)), requester, now=now
            )

    @pytest.mark.asyncio
    async def test_unknown_driver(self, service, vehicle, requester, now, trip_day):
        with pytest.raises(NotFoundError):
            await service.create_booking(
                make_request(vehicle.id, at(trip_day, 9), at(trip_day, 12), driver_id=uuid4()),
                requester,
                now=now,
            )

    @pytest.mark.asyncio
    async def test_system_cannot_request_bookings(self, service, vehicle, now, trip_day):
        with pytest.raises(ValidationError):
            await service.create_booking(
                make_request(vehicle.id, at(trip_day, 9), at(trip_day, 12)),
                Actor.system(),
                now=now,
            )

    @pytest.mark.asyncio
    async def test_auto_approval_policy(
        self, monkeypatch, service, publisher, notifier, vehicle, requester, now, trip_day
    ):
        monkeypatch.setattr(settings, "auto_approve_bookings", True)
        booking = await service.create_booking(
            make_request(vehicle.id, at(trip_day, 9), at(trip_day, 12), manager_name="Alice"),
            requester,
            now=now,
        )

        assert booking.status == BookingStatus.APPROVED
        assert booking.approver_id is None
        assert booking.event_history[-1].caused_by == "system"
        assert publisher.event_types == ["BOOKING_CREATED", "BOOKING_APPROVED"]
        assert notifier.BOOKING_APPROVED in notifier.types
        assert notifier.APPROVAL_REQUEST not in notifier.types
        stored_vehicle = await service.repository.find_vehicle_by_id(vehicle.id)
        assert stored_vehicle.status == VehicleStatus.BOOKED

    @pytest.mark.asyncio
    async def test_delivery_failures_do_not_fail_the_booking(
        self, monkeypatch, db_session, vehicle, requester, now, trip_day
    ):
        monkeypatch.setattr(notification_service, "deliver_notification", _BrokenTask())
        monkeypatch.setattr(event_publisher, "publish_booking_event", _BrokenTask())
        service = BookingService(db_session)

        booking = await service.create_booking(
            make_request(vehicle.id, at(trip_day, 9), at(trip_day, 12)), requester, now=now
        )
        assert (await service.get_booking(booking.id)).status == BookingStatus.PENDING


class TestTransitions:
    @pytest.mark.asyncio
    async def test_approve_then_second_approve_fails(
        self, service, notifier, vehicle, requester, manager, now, trip_day
    ):
        booking = await service.create_booking(
            make_request(vehicle.id, at(trip_day, 9), at(trip_day, 12)), requester, now=now
        )
        approved = await service.approve(booking.id, manager, "ok", now=now)
        assert approved.status == BookingStatus.APPROVED
        assert approved.approver_id == manager.user_id
        assert notifier.types[-1] == notifier.BOOKING_APPROVED

        with pytest.raises(InvalidStateTransition):
            await service.approve(booking.id, manager, now=now)

    @pytest.mark.asyncio
    async def test_approving_overlapping_pending_booking_conflicts(
        self, service, vehicle, requester, manager, now, trip_day
    ):
        first = await service.create_booking(
            make_request(vehicle.id, at(trip_day, 9), at(trip_day, 11)), requester, now=now
        )
        second = await service.create_booking(
            make_request(vehicle.id, at(trip_day, 10), at(trip_day, 12)), requester, now=now
        )
        await service.approve(first.id, manager, now=now)

        with pytest.raises(ConflictError):
            await service.approve(second.id, manager, now=now)

        stored = await _fresh_booking(second.id)
        assert stored.status == BookingStatus.PENDING
        assert [e.event_type for e in stored.event_history] == ["BOOKING_CREATED"]

    @pytest.mark.asyncio
    async def test_trip_updates_vehicle_and_driver(
        self, service, publisher, vehicle, driver, requester, manager, now, trip_day
    ):
        booking = await service.create_booking(
            make_request(vehicle.id, at(trip_day, 9), at(trip_day, 12), driver_id=driver.id),
            requester,
            now=now,
        )
        await service.approve(booking.id, manager, now=now)
        await service.confirm(booking.id, now=now)

        await service.activate(booking.id, manager, now=at(trip_day, 9))
        in_use = await service.repository.find_vehicle_by_id(vehicle.id)
        on_duty = await service.repository.find_driver_by_id(driver.id)
        assert in_use.status == VehicleStatus.IN_USE
        assert on_duty.status == DriverStatus.ON_DUTY

        completed = await service.complete(
            booking.id, manager, "good trip", 120.5, now=at(trip_day, 11)
        )
        assert completed.status == BookingStatus.COMPLETED
        assert completed.actual_mileage == 120.5

        returned = await service.repository.find_vehicle_by_id(vehicle.id)
        assert returned.status == VehicleStatus.AVAILABLE
        assert returned.available_for_booking
        assert returned.mileage == vehicle.mileage + 120.5
        freed = await service.repository.find_driver_by_id(driver.id)
        assert freed.status == DriverStatus.AVAILABLE
        assert freed.total_trips_completed == 1
        assert freed.total_miles_driven == 120.5

        assert publisher.event_types == [
            "BOOKING_CREATED",
            "BOOKING_APPROVED",
            "BOOKING_CONFIRMED",
            "BOOKING_ACTIVATED",
            "BOOKING_COMPLETED",
        ]
        stored = await service.get_booking(booking.id)
        assert [e.event_type for e in stored.event_history] == publisher.event_types

    @pytest.mark.asyncio
    async def test_confirm_defaults_to_system_actor(
        self, service, vehicle, requester, manager, now, trip_day
    ):
        booking = await service.create_booking(
            make_request(vehicle.id, at(trip_day, 9), at(trip_day, 12)), requester, now=now
        )
        await service.approve(booking.id, manager, now=now)
        confirmed = await service.confirm(booking.id, now=now)
        assert confirmed.event_history[-1].caused_by == "system"

    @pytest.mark.asyncio
    async def test_cancelling_active_trip_frees_resources(
        self, service, notifier, vehicle, driver, requester, manager, now, trip_day
    ):
        booking = await service.create_booking(
            make_request(vehicle.id, at(trip_day, 9), at(trip_day, 12), driver_id=driver.id),
            requester,
            now=now,
        )
        await service.approve(booking.id, manager, now=now)
        await service.confirm(booking.id, now=now)
        await service.activate(booking.id, manager, now=at(trip_day, 9))

        cancelled = await service.cancel(booking.id, manager, "Breakdown", now=at(trip_day, 10))
        assert cancelled.status == BookingStatus.CANCELLED
        assert cancelled.cancellation_reason == "Breakdown"
        assert notifier.types[-1] == notifier.BOOKING_CANCELLED
        assert (await service.repository.find_vehicle_by_id(vehicle.id)).is_available()
        assert (await service.repository.find_driver_by_id(driver.id)).is_available()

        with pytest.raises(InvalidStateTransition):
            await service.cancel(booking.id, manager, "Again")

    @pytest.mark.asyncio
    async def test_cancel_releases_auto_approved_vehicle(
        self, monkeypatch, service, vehicle, requester, now, trip_day
    ):
        monkeypatch.setattr(settings, "auto_approve_bookings", True)
        booking = await service.create_booking(
            make_request(vehicle.id, at(trip_day, 9), at(trip_day, 12)), requester, now=now
        )
        await service.cancel(booking.id, requester, "No longer needed", now=now)
        stored_vehicle = await service.repository.find_vehicle_by_id(vehicle.id)
        assert stored_vehicle.status == VehicleStatus.AVAILABLE

    @pytest.mark.asyncio
    async def test_reject_pending_booking(
        self, service, notifier, vehicle, requester, manager, now, trip_day
    ):
        booking = await service.create_booking(
            make_request(vehicle.id, at(trip_day, 9), at(trip_day, 12)), requester, now=now
        )
        rejected = await service.reject(booking.id, manager, "No budget", now=now)
        assert rejected.status == BookingStatus.REJECTED
        assert rejected.rejection_reason == "No budget"
        assert notifier.types[-1] == notifier.BOOKING_REJECTED

    @pytest.mark.asyncio
    async def test_no_show(self, service, notifier, vehicle, requester, manager, now, trip_day):
        booking = await service.create_booking(
            make_request(vehicle.id, at(trip_day, 9), at(trip_day, 12)), requester, now=now
        )
        await service.approve(booking.id, manager, now=now)
        await service.confirm(booking.id, now=now)
        no_show = await service.mark_no_show(booking.id, manager, now=at(trip_day, 10))
        assert no_show.status == BookingStatus.NO_SHOW
        assert notifier.types[-1] == notifier.STATUS_CHANGED

    @pytest.mark.asyncio
    async def test_unknown_booking(self, service, manager):
        with pytest.raises(NotFoundError):
            await service.approve(uuid4(), manager)
        with pytest.raises(NotFoundError):
            await service.get_booking_by_reference("BKG-0-MISSING")



class TestSharedResources:
    @pytest_asyncio.fixture
    async def trip_and_later(self, service, vehicle, driver, requester, manager, now, trip_day):
        """A morning trip in progress and an approved afternoon booking on the same resources."""
        trip = await service.create_booking(
            make_request(vehicle.id, at(trip_day, 9), at(trip_day, 12), driver_id=driver.id),
            requester,
            now=now,
        )
        later = await service.create_booking(
            make_request(vehicle.id, at(trip_day, 14), at(trip_day, 16), driver_id=driver.id),
            requester,
            now=now,
        )
        await service.approve(trip.id, manager, now=now)
        await service.approve(later.id, manager, now=now)
        await service.confirm(trip.id, now=now)
        await service.activate(trip.id, manager, now=at(trip_day, 9))
        return trip, later

    async def _assert_still_on_trip(self, service, vehicle, driver):
        in_use = await service.repository.find_vehicle_by_id(vehicle.id)
        on_duty = await service.repository.find_driver_by_id(driver.id)
        assert in_use.status == VehicleStatus.IN_USE
        assert not in_use.available_for_booking
        assert on_duty.status == DriverStatus.ON_DUTY

    @pytest.mark.asyncio
    async def test_cancelling_later_booking_keeps_trip_resources(
        self, service, trip_and_later, vehicle, driver, manager, trip_day
    ):
        _, later = trip_and_later
        await service.cancel(later.id, manager, "Plans changed", now=at(trip_day, 10))
        await self._assert_still_on_trip(service, vehicle, driver)

    @pytest.mark.asyncio
    async def test_rejecting_later_booking_keeps_trip_resources(
        self, service, trip_and_later, vehicle, driver, manager, trip_day
    ):
        _, later = trip_and_later
        await service.reject(later.id, manager, "Over budget", now=at(trip_day, 10))
        await self._assert_still_on_trip(service, vehicle, driver)

    @pytest.mark.asyncio
    async def test_no_show_on_later_booking_keeps_trip_resources(
        self, service, trip_and_later, vehicle, driver, manager, trip_day
    ):
        _, later = trip_and_later
        await service.confirm(later.id, now=at(trip_day, 10))
        await service.mark_no_show(later.id, manager, now=at(trip_day, 11))
        await self._assert_still_on_trip(service, vehicle, driver)

    @pytest.mark.asyncio
    async def test_completing_trip_frees_resources_for_later_booking(
        self, service, trip_and_later, vehicle, driver, manager, trip_day
    ):
        trip, later = trip_and_later
        await service.complete(trip.id, manager, now=at(trip_day, 12))
        assert (await service.repository.find_vehicle_by_id(vehicle.id)).is_available()
        assert (await service.repository.find_driver_by_id(driver.id)).is_available()

        await service.confirm(later.id, now=at(trip_day, 13))
        await service.activate(later.id, manager, now=at(trip_day, 14))
        await self._assert_still_on_trip(service, vehicle, driver)

    @pytest.mark.asyncio
    async def test_activate_refused_while_vehicle_in_maintenance(
        self, service, fleet_service, vehicle, requester, manager, now, trip_day
    ):
        booking = await service.create_booking(
            make_request(vehicle.id, at(trip_day, 9), at(trip_day, 12)), requester, now=now
        )
        await service.approve(booking.id, manager, now=now)
        await service.confirm(booking.id, now=now)
        await fleet_service.change_vehicle_status(vehicle.id, VehicleStatus.MAINTENANCE)

        with pytest.raises(BookingValidationError) as exc_info:
            await service.activate(booking.id, manager, now=at(trip_day, 9))
        assert exc_info.value.rule == "vehicle_unavailable"

        held = await service.repository.find_vehicle_by_id(vehicle.id)
        assert held.status == VehicleStatus.MAINTENANCE
        assert (await _fresh_booking(booking.id)).status == BookingStatus.CONFIRMED

    @pytest.mark.asyncio
    async def test_activate_refused_while_driver_off_roster(
        self, service, fleet_service, vehicle, driver, requester, manager, now, trip_day
    ):
        booking = await service.create_booking(
            make_request(vehicle.id, at(trip_day, 9), at(trip_day, 12), driver_id=driver.id),
            requester,
            now=now,
        )
        await service.approve(booking.id, manager, now=now)
        await service.confirm(booking.id, now=now)
        await fleet_service.change_driver_status(driver.id, DriverStatus.SICK)

        with pytest.raises(BookingValidationError) as exc_info:
            await service.activate(booking.id, manager, now=at(trip_day, 9))
        assert exc_info.value.rule == "driver_unavailable"
        assert (await service.repository.find_vehicle_by_id(vehicle.id)).is_available()

    @pytest.mark.asyncio
    async def test_complete_keeps_maintenance_hold(
        self, service, fleet_service, vehicle, requester, manager, now, trip_day
    ):
        booking = await service.create_booking(
            make_request(vehicle.id, at(trip_day, 9), at(trip_day, 12)), requester, now=now
        )
        await service.approve(booking.id, manager, now=now)
        await service.confirm(booking.id, now=now)
        await service.activate(booking.id, manager, now=at(trip_day, 9))
        await fleet_service.change_vehicle_status(vehicle.id, VehicleStatus.MAINTENANCE)

        await service.complete(booking.id, manager, "warning light on", 40.0, now=at(trip_day, 11))

        held = await service.repository.find_vehicle_by_id(vehicle.id)
        assert held.status == VehicleStatus.MAINTENANCE
        assert not held.available_for_booking
        assert held.mileage == vehicle.mileage + 40.0

class TestAvailability:
    @pytest.mark.asyncio
    async def test_vehicle_availability(
        self, service, vehicle, driver, requester, manager, now, trip_day
    ):
        assert await service.is_available(
            vehicle.id, driver.id, at(trip_day, 9), at(trip_day, 11), now=now
        )
        booking = await service.create_booking(
            make_request(vehicle.id, at(trip_day, 9), at(trip_day, 11), driver_id=driver.id),
            requester,
            now=now,
        )
        # Pending bookings do not hold the vehicle
        assert await service.is_available(
            vehicle.id, None, at(trip_day, 10), at(trip_day, 12), now=now
        )
        await service.approve(booking.id, manager, now=now)

        assert not await service.is_available(
            vehicle.id, None, at(trip_day, 10), at(trip_day, 12), now=now
        )
        assert await service.is_available(
            vehicle.id, None, at(trip_day, 11), at(trip_day, 13), now=now
        )

    @pytest.mark.asyncio
    async def test_unknown_vehicle_is_unavailable(self, service, now, trip_day):
        assert not await service.is_available(
            uuid4(), None, at(trip_day, 9), at(trip_day, 11), now=now
        )


class TestHousekeeping:
    @pytest.mark.asyncio
    async def test_expire_stale_bookings(
        self, service, notifier, vehicle, requester, now, trip_day
    ):
        booking = await service.create_booking(
            make_request(vehicle.id, at(trip_day, 9), at(trip_day, 12)), requester, now=now
        )

        assert await service.expire_stale_bookings(now) == 0
        assert await service.expire_stale_bookings(at(trip_day, 10)) == 1

        expired = await service.get_booking(booking.id)
        assert expired.status == BookingStatus.CANCELLED
        assert expired.event_history[-1].caused_by == "system"
        assert notifier.types[-1] == notifier.BOOKING_CANCELLED
        assert await service.expire_stale_bookings(at(trip_day, 10)) == 0

    @pytest.mark.asyncio
    async def test_confirmed_bookings_do_not_expire(
        self, service, vehicle, requester, manager, now, trip_day
    ):
        booking = await service.create_booking(
            make_request(vehicle.id, at(trip_day, 9), at(trip_day, 12)), requester, now=now
        )
        await service.approve(booking.id, manager, now=now)
        await service.confirm(booking.id, now=now)
        assert await service.expire_stale_bookings(at(trip_day, 10)) == 0

    @pytest.mark.asyncio
    async def test_trip_reminders(
        self, service, notifier, vehicle, requester, manager, now, trip_day
    ):
        approved = await service.create_booking(
            make_request(vehicle.id, at(trip_day, 9), at(trip_day, 10)), requester, now=now
        )
        await service.create_booking(
            make_request(vehicle.id, at(trip_day, 9), at(trip_day, 10)), requester, now=now
        )
        await service.approve(approved.id, manager, now=now)

        lead = timedelta(hours=settings.trip_reminder_lead_hours)
        run_at = at(trip_day, 9) - lead + timedelta(minutes=30)
        assert await service.send_trip_reminders(run_at) == 1
        assert notifier.sent[-1] == (
            notifier.TRIP_REMINDER,
            str(requester.user_id),
            approved.booking_reference,
        )
        # An hour later the trip is inside the lead time and is not reminded again
        assert await service.send_trip_reminders(run_at + timedelta(hours=1)) == 0
