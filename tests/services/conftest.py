"""Service-level fixtures: recording publisher and notifier doubles."""

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from fleetbook.domain.entities import Booking
from fleetbook.services.booking_service import BookingService
from fleetbook.services.event_publisher import EventPublisher
from fleetbook.services.fleet_service import FleetService
from fleetbook.services.notification_service import BookingNotifier


class RecordingPublisher(EventPublisher):
    def __init__(self):
        self.events = []

    def publish(self, events):
        self.events.extend(events)

    @property
    def event_types(self) -> list[str]:
        return [event.event_type for event in self.events]


class RecordingNotifier(BookingNotifier):
    def __init__(self):
        self.sent = []

    def _send(self, recipient, notification_type, title, body, booking: Booking) -> None:
        self.sent.append((notification_type, recipient, booking.booking_reference))

    @property
    def types(self) -> list[str]:
        return [notification_type for notification_type, _, _ in self.sent]


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest_asyncio.fixture
async def service(db_session: AsyncSession, publisher, notifier) -> BookingService:
    return BookingService(db_session, publisher=publisher, notifier=notifier)


@pytest_asyncio.fixture
async def fleet_service(db_session: AsyncSession) -> FleetService:
    return FleetService(db_session)
