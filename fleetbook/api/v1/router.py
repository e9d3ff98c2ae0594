"""Main API router that includes all endpoint routers."""

from fastapi import APIRouter

from fleetbook.api.v1 import bookings, drivers, vehicles

api_router = APIRouter()

# Bookings
api_router.include_router(bookings.router, prefix="/bookings", tags=["Bookings"])

# Fleet
api_router.include_router(vehicles.router, prefix="/vehicles", tags=["Vehicles"])
api_router.include_router(drivers.router, prefix="/drivers", tags=["Drivers"])
