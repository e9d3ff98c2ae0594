"""Booking notification service.

Builds the messages sent to requesters, approving managers and the transport
admin desk as bookings move through their lifecycle, and hands them to the
notification delivery task. Every send is best effort: failures are logged
and suppressed so they never undo a committed booking change.
"""

import logging
from typing import Any

from fleetbook.config import settings
from fleetbook.domain.entities import Booking
from fleetbook.tasks import deliver_notification

logger = logging.getLogger(__name__)


class BookingNotifier:
    """Service for sending booking lifecycle notifications."""

    # Notification types
    BOOKING_CREATED = "booking_created"
    APPROVAL_REQUEST = "approval_request"
    ADMIN_NEW_BOOKING = "admin_new_booking"
    BOOKING_APPROVED = "booking_approved"
    BOOKING_REJECTED = "booking_rejected"
    BOOKING_CANCELLED = "booking_cancelled"
    TRIP_REMINDER = "trip_reminder"
    TRIP_COMPLETED = "trip_completed"
    STATUS_CHANGED = "status_changed"

    def booking_created(self, booking: Booking) -> None:
        self._send(
            recipient=str(booking.requester_id),
            notification_type=self.BOOKING_CREATED,
            title=f"Booking {booking.booking_reference} received",
            body=(
                f"Your booking for {_window(booking)} has been received "
                f"and is {booking.display_status.lower()}."
            ),
            booking=booking,
        )

    def approval_request(self, booking: Booking) -> None:
        if not booking.manager_name:
            return
        self._send(
            recipient=booking.manager_name,
            notification_type=self.APPROVAL_REQUEST,
            title=f"Approval needed for {booking.booking_reference}",
            body=f"A booking for {_window(booking)} is waiting for your approval. Purpose: {booking.purpose}",
            booking=booking,
        )

    def admin_new_booking(self, booking: Booking) -> None:
        self._send(
            recipient=settings.admin_notification_recipient,
            notification_type=self.ADMIN_NEW_BOOKING,
            title=f"New booking {booking.booking_reference}",
            body=f"{booking.pickup_location} to {booking.destination}, {_window(booking)}",
            booking=booking,
        )

    def booking_approved(self, booking: Booking) -> None:
        body = f"Your booking for {_window(booking)} has been approved."
        if booking.approval_comment:
            body = f"{body} Comment: {booking.approval_comment}"
        self._send(
            recipient=str(booking.requester_id),
            notification_type=self.BOOKING_APPROVED,
            title=f"Booking {booking.booking_reference} approved",
            body=body,
            booking=booking,
        )

    def booking_rejected(self, booking: Booking) -> None:
        self._send(
            recipient=str(booking.requester_id),
            notification_type=self.BOOKING_REJECTED,
            title=f"Booking {booking.booking_reference} rejected",
            body=f"Your booking was rejected. Reason: {booking.rejection_reason}",
            booking=booking,
        )

    def booking_cancelled(self, booking: Booking) -> None:
        self._send(
            recipient=str(booking.requester_id),
            notification_type=self.BOOKING_CANCELLED,
            title=f"Booking {booking.booking_reference} cancelled",
            body=f"Your booking was cancelled. Reason: {booking.cancellation_reason}",
            booking=booking,
        )

    def trip_reminder(self, booking: Booking) -> None:
        self._send(
            recipient=str(booking.requester_id),
            notification_type=self.TRIP_REMINDER,
            title=f"Upcoming trip {booking.booking_reference}",
            body=f"Your trip from {booking.pickup_location} starts at {booking.start_time.isoformat()}.",
            booking=booking,
        )

    def trip_completed(self, booking: Booking) -> None:
        self._send(
            recipient=str(booking.requester_id),
            notification_type=self.TRIP_COMPLETED,
            title=f"Trip {booking.booking_reference} completed",
            body=f"Trip completed after {booking.actual_duration_hours:.1f} hours.",
            booking=booking,
        )

    def status_changed(self, booking: Booking, previous_status: str) -> None:
        self._send(
            recipient=str(booking.requester_id),
            notification_type=self.STATUS_CHANGED,
            title=f"Booking {booking.booking_reference} updated",
            body=f"Status changed from {previous_status} to {booking.status.value}.",
            booking=booking,
        )

    def _send(
        self,
        recipient: str,
        notification_type: str,
        title: str,
        body: str,
        booking: Booking,
    ) -> None:
        payload: dict[str, Any] = {
            "recipient": recipient,
            "notification_type": notification_type,
            "title": title,
            "body": body,
            "booking_id": str(booking.id),
            "booking_reference": booking.booking_reference,
        }
        try:
            deliver_notification.delay(payload)
        except Exception:
            logger.error(
                f"Failed to send {notification_type} notification for {booking.booking_reference}",
                exc_info=True,
            )


def _window(booking: Booking) -> str:
    return f"{booking.start_time:%Y-%m-%d %H:%M} to {booking.end_time:%Y-%m-%d %H:%M} UTC"
