"""Fleet enumerations and strict parsing."""

from enum import Enum
from typing import TypeVar

from fleetbook.core.exceptions import UnknownEnumValue


class VehicleType(str, Enum):
    """Vehicle body types."""

    SEDAN = "sedan"
    SUV = "suv"
    VAN = "van"
    TRUCK = "truck"
    MOTORCYCLE = "motorcycle"
    OTHER = "other"


class VehicleStatus(str, Enum):
    """Vehicle operational status."""

    AVAILABLE = "available"
    BOOKED = "booked"  # reserved, not yet in use
    IN_USE = "in_use"
    MAINTENANCE = "maintenance"
    OUT_OF_SERVICE = "out_of_service"


class LicenseType(str, Enum):
    """Driver license classes."""

    CLASS_1 = "class_1"  # cars
    CLASS_2 = "class_2"  # small trucks
    CLASS_3 = "class_3"  # large trucks
    MOTORCYCLE = "motorcycle"
    COMMERCIAL = "commercial"


class DriverStatus(str, Enum):
    """Driver duty status."""

    AVAILABLE = "available"
    ASSIGNED = "assigned"
    ON_DUTY = "on_duty"
    UNAVAILABLE = "unavailable"
    ON_LEAVE = "on_leave"
    SICK = "sick"


class BookingType(str, Enum):
    """Purpose category of a booking."""

    BUSINESS_TRIP = "business_trip"
    MEETING = "meeting"
    DELIVERY = "delivery"
    MAINTENANCE_TRIP = "maintenance_trip"
    TRAINING = "training"
    OTHER = "other"


class BookingStatus(str, Enum):
    """Booking lifecycle states."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CONFIRMED = "confirmed"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


E = TypeVar("E", bound=Enum)


def parse_enum(enum_cls: type[E], value: str | E) -> E:
    """Parse a raw value into ``enum_cls``, case-insensitively.

    Raises:
        UnknownEnumValue: If the value names no member. There is no default.
    """
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        for member in enum_cls:
            if member.value == normalized:
                return member
    raise UnknownEnumValue(
        enum_cls.__name__, value, [str(member.value) for member in enum_cls]
    )
