"""Append-only enforcement for booking history using SQLAlchemy events."""

import logging
from datetime import UTC, datetime

from sqlalchemy import event

from fleetbook.core.exceptions import ValidationError

logger = logging.getLogger(__name__)


class ImmutabilityViolationError(ValidationError):
    """Raised when attempting to modify an append-only record."""

    def __init__(self, model_name: str, operation: str, record_id: str):
        self.model_name = model_name
        self.operation = operation
        self.record_id = record_id
        super().__init__(
            f"Immutability violation: Cannot {operation} {model_name} record {record_id}. "
            "Booking history is append-only."
        )


def _log_immutability_violation(model_name: str, operation: str, record_id: str) -> None:
    """Log immutability violation for audit purposes."""
    logger.error(
        f"IMMUTABILITY_VIOLATION: Attempted to {operation} {model_name} "
        f"record_id={record_id} at {datetime.now(UTC).isoformat()}"
    )


def prevent_event_update(mapper, connection, target):
    """Prevent updates to BookingEventEntry (append-only)."""
    _log_immutability_violation("BookingEventEntry", "UPDATE", str(target.id))
    raise ImmutabilityViolationError("BookingEventEntry", "UPDATE", str(target.id))


def prevent_event_delete(mapper, connection, target):
    """Prevent deletion of BookingEventEntry (append-only)."""
    _log_immutability_violation("BookingEventEntry", "DELETE", str(target.id))
    raise ImmutabilityViolationError("BookingEventEntry", "DELETE", str(target.id))


def register_immutability_enforcement():
    """Register SQLAlchemy event listeners for immutability enforcement.

    Safe to call more than once; listeners are only attached the first time.
    """
    from fleetbook.models.booking import BookingEventEntry

    if not event.contains(BookingEventEntry, "before_update", prevent_event_update):
        event.listen(BookingEventEntry, "before_update", prevent_event_update)
    if not event.contains(BookingEventEntry, "before_delete", prevent_event_delete):
        event.listen(BookingEventEntry, "before_delete", prevent_event_delete)

    logger.info("Immutability enforcement registered for booking history")
