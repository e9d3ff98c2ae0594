"""API dependencies for callers and services."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from fleetbook.database import get_db
from fleetbook.domain.actor import Actor
from fleetbook.services.booking_service import BookingService
from fleetbook.services.fleet_service import FleetService


async def get_actor(
    x_user_id: Annotated[UUID, Header(description="Id of the user making the request")],
) -> Actor:
    """Identify the calling user from the X-User-Id header."""
    return Actor.user(x_user_id)


async def get_booking_service(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> BookingService:
    return BookingService(db)


async def get_fleet_service(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> FleetService:
    return FleetService(db)


CurrentActor = Annotated[Actor, Depends(get_actor)]
BookingServiceDep = Annotated[BookingService, Depends(get_booking_service)]
FleetServiceDep = Annotated[FleetService, Depends(get_fleet_service)]
