"""Time-interval conflict detection for vehicles and drivers.

Intervals are half-open ``[start, end)``: a booking ending at 11:00 does not
clash with one starting at 11:00.
"""

from collections.abc import Iterable
from datetime import datetime
from typing import Protocol
from uuid import UUID

from fleetbook.domain.enums import BookingStatus

# Statuses in which a booking holds its vehicle and driver
OCCUPYING_STATUSES = frozenset(
    {BookingStatus.APPROVED, BookingStatus.CONFIRMED, BookingStatus.ACTIVE}
)


class ScheduledBooking(Protocol):
    id: UUID
    vehicle_id: UUID
    driver_id: UUID | None
    status: BookingStatus
    start_time: datetime
    end_time: datetime


def intervals_overlap(
    start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime
) -> bool:
    return start_a < end_b and end_a > start_b


def find_conflicts(
    resource_id: UUID,
    start: datetime,
    end: datetime,
    existing: Iterable[ScheduledBooking],
    exclude_booking_id: UUID | None = None,
) -> list[ScheduledBooking]:
    """Return the bookings in ``existing`` that occupy ``resource_id`` during the interval."""
    conflicts = []
    for booking in existing:
        if exclude_booking_id is not None and booking.id == exclude_booking_id:
            continue
        if resource_id not in (booking.vehicle_id, booking.driver_id):
            continue
        if booking.status not in OCCUPYING_STATUSES:
            continue
        if intervals_overlap(start, end, booking.start_time, booking.end_time):
            conflicts.append(booking)
    return conflicts


def has_conflict(
    resource_id: UUID,
    start: datetime,
    end: datetime,
    existing: Iterable[ScheduledBooking],
    exclude_booking_id: UUID | None = None,
) -> bool:
    return bool(find_conflicts(resource_id, start, end, existing, exclude_booking_id))
