"""Shared test fixtures.

Tests run against an in-memory SQLite database with Celery tasks executed
inline. The environment is set before the application is imported so the
engine and Celery app pick it up.
"""

import os

os.environ.setdefault("DATABASE_URL_OVERRIDE", "sqlite+aiosqlite://")
os.environ.setdefault("CELERY_ALWAYS_EAGER", "true")
os.environ.setdefault("AUTO_APPROVE_BOOKINGS", "false")

from collections.abc import AsyncGenerator  # noqa: E402
from datetime import UTC, datetime, timedelta  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

from fleetbook import models  # noqa: E402, F401
from fleetbook.core.immutability import register_immutability_enforcement  # noqa: E402
from fleetbook.database import AsyncSessionLocal, Base, engine  # noqa: E402
from fleetbook.domain.entities import Driver, Vehicle  # noqa: E402
from fleetbook.repositories.fleet_repository import FleetRepository  # noqa: E402
from tests.factories import make_driver, make_vehicle  # noqa: E402


@pytest.fixture
def now() -> datetime:
    return datetime.now(UTC).replace(microsecond=0)


@pytest.fixture
def trip_day(now: datetime) -> datetime:
    """Midnight UTC two days from now; trips are scheduled relative to it."""
    return (now + timedelta(days=2)).replace(hour=0, minute=0, second=0)


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Fresh schema per test; disposing the engine drops the in-memory database."""
    register_immutability_enforcement()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async with AsyncSessionLocal() as session:
        yield session
    await engine.dispose()


@pytest_asyncio.fixture
async def repository(db_session: AsyncSession) -> FleetRepository:
    return FleetRepository(db_session)


@pytest_asyncio.fixture
async def vehicle(db_session: AsyncSession, repository: FleetRepository, now: datetime) -> Vehicle:
    vehicle = make_vehicle(now=now)
    await repository.save_vehicle(vehicle)
    await db_session.commit()
    return vehicle


@pytest_asyncio.fixture
async def driver(db_session: AsyncSession, repository: FleetRepository, now: datetime) -> Driver:
    driver = make_driver(today=now.date())
    await repository.save_driver(driver)
    await db_session.commit()
    return driver
