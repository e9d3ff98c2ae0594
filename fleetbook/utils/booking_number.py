"""Booking reference generation."""

import time
import uuid


def generate_booking_reference() -> str:
    """Generate a booking reference in format BKG-<epoch millis>-<uuid hex>.

    The millisecond prefix keeps references roughly sortable by creation time;
    the uuid4 suffix makes concurrent creation collision-free in practice. The
    ``bookings.booking_reference`` unique constraint backs this up.

    Returns:
        str: Reference like 'BKG-1760900000000-3F2A9C0E5B7D4E1A8C6B2D9F0A1E3C5B'
    """
    millis = time.time_ns() // 1_000_000
    return f"BKG-{millis}-{uuid.uuid4().hex.upper()}"
