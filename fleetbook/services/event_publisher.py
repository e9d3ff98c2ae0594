"""Publication of booking history events after commit."""

import logging
from collections.abc import Iterable

from fleetbook.domain.entities import BookingEvent
from fleetbook.tasks import publish_booking_event

logger = logging.getLogger(__name__)


class EventPublisher:
    """Hands committed booking events to the event fan-out task.

    Publication is fire-and-forget: a failure to enqueue is logged and never
    reaches the caller, whose booking change is already committed.
    """

    def publish(self, events: Iterable[BookingEvent]) -> None:
        for event in events:
            logger.info(
                f"Booking event {event.event_type} for {event.booking_reference} "
                f"by {event.caused_by}"
            )
            try:
                publish_booking_event.delay(event.to_dict())
            except Exception:
                logger.error(
                    f"Failed to publish {event.event_type} for {event.booking_reference}",
                    exc_info=True,
                )
