"""Database models."""

from fleetbook.models.booking import Booking, BookingEventEntry
from fleetbook.models.driver import Driver
from fleetbook.models.vehicle import Vehicle

__all__ = [
    # Fleet
    "Vehicle",
    "Driver",
    # Booking
    "Booking",
    "BookingEventEntry",
]
