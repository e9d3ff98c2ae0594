"""Celery background tasks.

This module contains all background tasks for:
- Booking event publication
- Notification delivery
- Booking housekeeping (expiry, trip reminders)
"""

import asyncio
import logging
from datetime import UTC, datetime
from typing import Any

import httpx
from celery import shared_task

from fleetbook.config import settings
from fleetbook.core.exceptions import ExternalServiceError
from fleetbook.database import close_db, get_db_context
from fleetbook.worker import celery_app  # noqa: F401  makes it the current app for shared_task

logger = logging.getLogger(__name__)


def run_async(coro):
    """Run async function in sync context."""
    return asyncio.run(coro)


def _post_webhook(service: str, url: str, payload: dict[str, Any]) -> None:
    try:
        with httpx.Client(timeout=settings.webhook_timeout_seconds) as client:
            response = client.post(url, json=payload)
            response.raise_for_status()
    except httpx.HTTPError as exc:
        raise ExternalServiceError(service, str(exc)) from exc


# ==================== EVENT & NOTIFICATION DELIVERY ====================


@shared_task(bind=True, max_retries=3)
def publish_booking_event(self, event: dict[str, Any]):
    """Forward a booking history event to the event webhook."""
    if not settings.event_webhook_url:
        logger.info(
            f"Booking event {event['event_type']} for {event['booking_reference']} "
            "not forwarded: no event webhook configured"
        )
        return {"status": "skipped"}
    try:
        _post_webhook("event-webhook", settings.event_webhook_url, event)
    except ExternalServiceError as exc:
        logger.warning(f"Event delivery failed for {event['booking_reference']}: {exc.detail}")
        raise self.retry(exc=exc, countdown=60)
    return {"status": "delivered"}


@shared_task(bind=True, max_retries=3)
def deliver_notification(self, notification: dict[str, Any]):
    """Deliver a notification payload to the notification webhook."""
    if not settings.notification_webhook_url:
        logger.info(
            f"Notification {notification['notification_type']} for "
            f"{notification['recipient']}: {notification['title']}"
        )
        return {"status": "logged"}
    try:
        _post_webhook("notification-webhook", settings.notification_webhook_url, notification)
    except ExternalServiceError as exc:
        logger.warning(
            f"Notification delivery failed for {notification['recipient']}: {exc.detail}"
        )
        raise self.retry(exc=exc, countdown=60)
    return {"status": "delivered"}


# ==================== BOOKING HOUSEKEEPING ====================


@shared_task(bind=True, max_retries=3)
def expire_stale_bookings(self):
    """Cancel bookings whose start time passed while still pending or approved.

    Runs every `stale_booking_check_minutes` (15 by default).
    """
    try:
        expired = run_async(_expire_stale_bookings())
        return {"status": "success", "expired": expired}
    except Exception as exc:
        raise self.retry(exc=exc, countdown=300)


async def _expire_stale_bookings() -> int:
    from fleetbook.services.booking_service import BookingService

    try:
        async with get_db_context() as db:
            return await BookingService(db).expire_stale_bookings(datetime.now(UTC))
    finally:
        await close_db()


@shared_task(bind=True, max_retries=3)
def send_trip_reminders(self):
    """Remind requesters of approved or confirmed trips starting soon.

    Runs hourly.
    """
    try:
        sent = run_async(_send_trip_reminders())
        return {"status": "success", "reminded": sent}
    except Exception as exc:
        raise self.retry(exc=exc, countdown=300)


async def _send_trip_reminders() -> int:
    from fleetbook.services.booking_service import BookingService

    try:
        async with get_db_context() as db:
            return await BookingService(db).send_trip_reminders(datetime.now(UTC))
    finally:
        await close_db()
