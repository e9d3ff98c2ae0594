"""
Fleet Domain Entities

Core business entities for the fleet booking domain:
- Vehicle: a bookable fleet vehicle
- Driver: a licensed driver who can be assigned to bookings
- Booking: aggregate root for a time-bounded reservation with approval workflow
- BookingEvent: immutable entry in a booking's history

Vehicles and drivers are referenced from bookings by id only.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from uuid import UUID, uuid4

from fleetbook.core.exceptions import BookingValidationError, ValidationError
from fleetbook.domain import eligibility
from fleetbook.domain.actor import Actor
from fleetbook.domain.booking_state import (
    DISPLAY_STATUS,
    TERMINAL_STATUSES,
    assert_booking_transition,
    can_transition,
)
from fleetbook.domain.enums import (
    BookingStatus,
    BookingType,
    DriverStatus,
    LicenseType,
    VehicleStatus,
    VehicleType,
)
from fleetbook.utils.booking_number import generate_booking_reference

# Statuses that take a vehicle out of the bookable pool
_VEHICLE_UNBOOKABLE_STATUSES = frozenset(
    {
        VehicleStatus.BOOKED,
        VehicleStatus.IN_USE,
        VehicleStatus.MAINTENANCE,
        VehicleStatus.OUT_OF_SERVICE,
    }
)
_DRIVER_OFF_ROSTER_STATUSES = frozenset(
    {DriverStatus.UNAVAILABLE, DriverStatus.ON_LEAVE, DriverStatus.SICK}
)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime | None) -> datetime | None:
    """Normalise a timestamp to UTC; naive values are taken to be UTC already."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


@dataclass
class Vehicle:
    """Fleet vehicle.

    Status and ``available_for_booking`` move together through the status
    setters; a booked, in-use, maintenance or out-of-service vehicle is never
    flagged available.
    """

    plate_number: str
    vehicle_type: VehicleType
    capacity: int
    make: str | None = None
    model: str | None = None
    year: int | None = None
    color: str | None = None
    description: str | None = None
    location: str | None = None
    fuel_type: str | None = None
    vehicle_group: str | None = None
    cost_center: str | None = None
    status: VehicleStatus = VehicleStatus.AVAILABLE
    available_for_booking: bool = True
    last_maintenance: datetime | None = None
    next_maintenance: datetime | None = None
    mileage: float = 0.0
    deleted: bool = False
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        if self.capacity < 1:
            raise ValidationError("Vehicle capacity must be a positive number")
        if self.status in _VEHICLE_UNBOOKABLE_STATUSES and self.available_for_booking:
            raise ValidationError(
                f"Vehicle in status {self.status.value} cannot be available for booking"
            )
        self.last_maintenance = as_utc(self.last_maintenance)
        self.next_maintenance = as_utc(self.next_maintenance)

    def is_available(self) -> bool:
        return eligibility.vehicle_is_available(self)

    def can_be_booked(self, now: datetime | None = None) -> bool:
        return eligibility.vehicle_can_be_booked(self, now or _utcnow())

    def needs_maintenance(self, now: datetime | None = None) -> bool:
        return eligibility.vehicle_needs_maintenance(self, now or _utcnow())

    @property
    def display_name(self) -> str:
        parts = [str(p) for p in (self.year, self.make, self.model) if p]
        return f"{' '.join(parts)} ({self.plate_number})" if parts else self.plate_number

    def set_available(self) -> None:
        self._set_status(VehicleStatus.AVAILABLE, available=True)

    def set_booked(self) -> None:
        self._set_status(VehicleStatus.BOOKED, available=False)

    def set_in_use(self) -> None:
        self._set_status(VehicleStatus.IN_USE, available=False)

    def set_maintenance(self) -> None:
        self._set_status(VehicleStatus.MAINTENANCE, available=False)

    def set_out_of_service(self) -> None:
        self._set_status(VehicleStatus.OUT_OF_SERVICE, available=False)

    def change_status(self, status: VehicleStatus) -> None:
        setters = {
            VehicleStatus.AVAILABLE: self.set_available,
            VehicleStatus.BOOKED: self.set_booked,
            VehicleStatus.IN_USE: self.set_in_use,
            VehicleStatus.MAINTENANCE: self.set_maintenance,
            VehicleStatus.OUT_OF_SERVICE: self.set_out_of_service,
        }
        setters[status]()

    def update_mileage(self, new_mileage: float) -> None:
        """Move the odometer forward; lower readings are ignored."""
        if new_mileage > self.mileage:
            self.mileage = new_mileage
            self.updated_at = _utcnow()

    def add_trip_mileage(self, miles: float) -> None:
        self.update_mileage(self.mileage + miles)

    def schedule_maintenance(self, now: datetime | None = None) -> None:
        """Record maintenance done now; the next one falls due in six months."""
        now = now or _utcnow()
        self.last_maintenance = now
        self.next_maintenance = eligibility.add_months(now, eligibility.MAINTENANCE_INTERVAL_MONTHS)
        self.updated_at = now

    def _set_status(self, status: VehicleStatus, available: bool) -> None:
        self.status = status
        self.available_for_booking = available
        self.updated_at = _utcnow()


@dataclass
class Driver:
    """Licensed driver. License and health-check dates are maintained by HR."""

    user_id: UUID
    license_type: LicenseType
    license_number: str
    license_expiry_date: date | None = None
    last_health_check: date | None = None
    status: DriverStatus = DriverStatus.AVAILABLE
    available_for_booking: bool = True
    phone_number: str | None = None
    department: str | None = None
    cost_center: str | None = None
    shift: str | None = None
    notes: str | None = None
    years_of_experience: int = 0
    total_trips_completed: int = 0
    total_miles_driven: float = 0.0
    deleted: bool = False
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        if self.status in _DRIVER_OFF_ROSTER_STATUSES and self.available_for_booking:
            raise ValidationError(
                f"Driver in status {self.status.value} cannot be available for booking"
            )

    def is_available(self) -> bool:
        return eligibility.driver_is_available(self)

    def is_license_valid(self, today: date | None = None) -> bool:
        return eligibility.driver_license_valid(self, today or _utcnow().date())

    def needs_license_renewal(self, today: date | None = None) -> bool:
        return eligibility.driver_needs_license_renewal(self, today or _utcnow().date())

    def is_health_check_valid(self, today: date | None = None) -> bool:
        return eligibility.driver_health_check_valid(self, today or _utcnow().date())

    def can_drive(self, vehicle_type: VehicleType) -> bool:
        return eligibility.license_permits(self.license_type, vehicle_type)

    def set_available(self) -> None:
        self._set_status(DriverStatus.AVAILABLE, available=True)

    def set_assigned(self) -> None:
        self._set_status(DriverStatus.ASSIGNED, available=self.available_for_booking)

    def set_on_duty(self) -> None:
        self._set_status(DriverStatus.ON_DUTY, available=self.available_for_booking)

    def change_status(self, status: DriverStatus) -> None:
        if status == DriverStatus.AVAILABLE:
            self.set_available()
        elif status in _DRIVER_OFF_ROSTER_STATUSES:
            self._set_status(status, available=False)
        else:
            self._set_status(status, available=self.available_for_booking)

    def complete_trip(self, miles: float) -> None:
        self.total_trips_completed += 1
        self.total_miles_driven += miles
        self.updated_at = _utcnow()

    def _set_status(self, status: DriverStatus, available: bool) -> None:
        self.status = status
        self.available_for_booking = available
        self.updated_at = _utcnow()


@dataclass(frozen=True)
class BookingEvent:
    """An entry in a booking's append-only history."""

    booking_reference: str
    event_type: str
    description: str
    caused_by: str
    occurred_at: datetime

    def to_dict(self) -> dict:
        return {
            "booking_reference": self.booking_reference,
            "event_type": self.event_type,
            "description": self.description,
            "caused_by": self.caused_by,
            "occurred_at": self.occurred_at.isoformat(),
        }


@dataclass(frozen=True)
class BookingRequest:
    """A requester's ask for a vehicle (and optionally a driver) over an interval."""

    vehicle_id: UUID
    start_time: datetime
    end_time: datetime
    purpose: str | None = None
    pickup_location: str | None = None
    destination: str | None = None
    driver_id: UUID | None = None
    booking_type: BookingType = BookingType.BUSINESS_TRIP
    return_location: str | None = None
    description: str | None = None
    estimated_passengers: int = 1
    cost_center: str | None = None
    manager_name: str | None = None
    additional_requirements: str | None = None


# Fields only the aggregate itself may reassign after construction
_PROTECTED_FIELDS = frozenset({"booking_reference", "status", "event_history"})


@dataclass
class Booking:
    """
    Booking Aggregate Root

    Key invariants:
    - start_time < end_time
    - status changes only through the transition methods, following
      BOOKING_TRANSITIONS; terminal states accept no further transitions
    - booking_reference never changes once generated
    - event_history is append-only and written only by this class
    """

    vehicle_id: UUID
    requester_id: UUID
    start_time: datetime
    end_time: datetime
    purpose: str
    pickup_location: str
    destination: str
    driver_id: UUID | None = None
    booking_type: BookingType = BookingType.BUSINESS_TRIP
    return_location: str | None = None
    description: str | None = None
    estimated_passengers: int = 1
    cost_center: str | None = None
    manager_name: str | None = None
    additional_requirements: str | None = None

    # Approval workflow
    approver_id: UUID | None = None
    approval_comment: str | None = None
    approved_at: datetime | None = None
    rejected_at: datetime | None = None
    rejection_reason: str | None = None
    cancellation_reason: str | None = None
    cancelled_at: datetime | None = None

    # Trip execution
    actual_start_time: datetime | None = None
    actual_end_time: datetime | None = None
    feedback: str | None = None
    actual_mileage: float | None = None

    id: UUID = field(default_factory=uuid4)
    booking_reference: str = field(default_factory=generate_booking_reference)
    status: BookingStatus = BookingStatus.PENDING
    event_history: tuple[BookingEvent, ...] = ()
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        for name in (
            "start_time",
            "end_time",
            "approved_at",
            "rejected_at",
            "cancelled_at",
            "actual_start_time",
            "actual_end_time",
            "created_at",
            "updated_at",
        ):
            setattr(self, name, as_utc(getattr(self, name)))
        if not self.start_time < self.end_time:
            raise BookingValidationError("time_range", "End time must be after start time")
        object.__setattr__(self, "event_history", tuple(self.event_history))
        object.__setattr__(self, "_new_events", [])

    def __setattr__(self, name: str, value) -> None:
        if name in _PROTECTED_FIELDS and name in self.__dict__:
            raise AttributeError(f"Booking.{name} can only change through booking transitions")
        super().__setattr__(name, value)

    @classmethod
    def create(
        cls,
        request: BookingRequest,
        requester_id: UUID,
        now: datetime | None = None,
    ) -> Booking:
        """Build a new PENDING booking from a validated request."""
        now = now or _utcnow()
        booking = cls(
            vehicle_id=request.vehicle_id,
            driver_id=request.driver_id,
            requester_id=requester_id,
            start_time=request.start_time,
            end_time=request.end_time,
            purpose=(request.purpose or "").strip(),
            pickup_location=(request.pickup_location or "").strip(),
            destination=(request.destination or "").strip(),
            booking_type=request.booking_type,
            return_location=request.return_location,
            description=request.description,
            estimated_passengers=request.estimated_passengers,
            cost_center=request.cost_center.strip() if request.cost_center else None,
            manager_name=request.manager_name,
            additional_requirements=request.additional_requirements,
            created_at=now,
            updated_at=now,
        )
        booking._record(
            "BOOKING_CREATED",
            f"Booking created: {booking.purpose} for {booking.start_time.isoformat()}",
            Actor.user(requester_id),
            now,
        )
        return booking

    # ==================== TRANSITIONS ====================

    def approve(self, actor: Actor, comment: str | None = None, now: datetime | None = None) -> None:
        now = now or _utcnow()
        description = f"Booking approved: {comment}" if comment else "Booking approved"
        self._transition(BookingStatus.APPROVED, actor, now, "BOOKING_APPROVED", description)
        self.approver_id = actor.user_id
        self.approval_comment = comment
        self.approved_at = now

    def reject(self, actor: Actor, reason: str, now: datetime | None = None) -> None:
        now = now or _utcnow()
        self._transition(
            BookingStatus.REJECTED, actor, now, "BOOKING_REJECTED", f"Booking rejected: {reason}"
        )
        self.approver_id = actor.user_id
        self.rejection_reason = reason
        self.rejected_at = now

    def confirm(self, actor: Actor, now: datetime | None = None) -> None:
        now = now or _utcnow()
        self._transition(
            BookingStatus.CONFIRMED, actor, now, "BOOKING_CONFIRMED", "Booking confirmed"
        )

    def activate(self, actor: Actor, now: datetime | None = None) -> None:
        now = now or _utcnow()
        self._transition(BookingStatus.ACTIVE, actor, now, "BOOKING_ACTIVATED", "Trip started")
        self.actual_start_time = now

    def complete(
        self,
        actor: Actor,
        feedback: str | None = None,
        actual_mileage: float | None = None,
        now: datetime | None = None,
    ) -> None:
        if actual_mileage is not None and actual_mileage < 0:
            raise ValidationError("Actual mileage cannot be negative")
        now = now or _utcnow()
        self._transition(BookingStatus.COMPLETED, actor, now, "BOOKING_COMPLETED", "Trip completed")
        self.actual_end_time = now
        self.feedback = feedback
        self.actual_mileage = actual_mileage

    def cancel(self, actor: Actor, reason: str, now: datetime | None = None) -> None:
        now = now or _utcnow()
        self._transition(
            BookingStatus.CANCELLED, actor, now, "BOOKING_CANCELLED", f"Booking cancelled: {reason}"
        )
        self.cancellation_reason = reason
        self.cancelled_at = now

    def mark_no_show(self, actor: Actor, now: datetime | None = None) -> None:
        now = now or _utcnow()
        self._transition(
            BookingStatus.NO_SHOW, actor, now, "BOOKING_NO_SHOW", "Requester did not show up"
        )

    # ==================== QUERIES ====================

    def can_be_cancelled(self) -> bool:
        return can_transition(self.status, BookingStatus.CANCELLED)

    @property
    def needs_approval(self) -> bool:
        return self.status == BookingStatus.PENDING

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def is_current(self, now: datetime | None = None) -> bool:
        now = now or _utcnow()
        return self.status == BookingStatus.ACTIVE and self.start_time <= now < self.end_time

    def is_upcoming(self, now: datetime | None = None) -> bool:
        now = now or _utcnow()
        return self.start_time > now and self.status in (
            BookingStatus.APPROVED,
            BookingStatus.CONFIRMED,
        )

    def is_expired(self, now: datetime | None = None) -> bool:
        """Start time has passed without the booking being confirmed."""
        now = now or _utcnow()
        return self.start_time < now and self.status in (
            BookingStatus.PENDING,
            BookingStatus.APPROVED,
        )

    @property
    def duration_hours(self) -> float:
        return (self.end_time - self.start_time).total_seconds() / 3600

    @property
    def actual_duration_hours(self) -> float:
        if self.actual_start_time and self.actual_end_time:
            return (self.actual_end_time - self.actual_start_time).total_seconds() / 3600
        return 0.0

    @property
    def display_status(self) -> str:
        return DISPLAY_STATUS[self.status]

    def pull_new_events(self) -> list[BookingEvent]:
        """Return events recorded since the last pull, for publication after commit."""
        events = list(self._new_events)
        self._new_events.clear()
        return events

    # ==================== INTERNALS ====================

    def _transition(
        self,
        target: BookingStatus,
        actor: Actor,
        now: datetime,
        event_type: str,
        description: str,
    ) -> None:
        assert_booking_transition(self.status, target)
        object.__setattr__(self, "status", target)
        self.updated_at = now
        self._record(event_type, description, actor, now)

    def _record(self, event_type: str, description: str, actor: Actor, now: datetime) -> None:
        event = BookingEvent(
            booking_reference=self.booking_reference,
            event_type=event_type,
            description=description,
            caused_by=str(actor),
            occurred_at=now,
        )
        object.__setattr__(self, "event_history", self.event_history + (event,))
        self._new_events.append(event)
