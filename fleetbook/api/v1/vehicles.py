"""Vehicle endpoints."""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, status

from fleetbook.api.deps import FleetServiceDep
from fleetbook.core.exceptions import ValidationError
from fleetbook.domain.entities import Vehicle
from fleetbook.schemas.vehicle import (
    VehicleCreate,
    VehicleResponse,
    VehicleStatusUpdate,
    VehicleUsageResponse,
)

router = APIRouter()


@router.post("/", response_model=VehicleResponse, status_code=status.HTTP_201_CREATED)
async def register_vehicle(
    payload: VehicleCreate,
    service: FleetServiceDep,
) -> VehicleResponse:
    vehicle = await service.register_vehicle(Vehicle(**payload.model_dump()))
    return VehicleResponse.model_validate(vehicle)


@router.get("/", response_model=list[VehicleResponse])
async def list_vehicles(
    service: FleetServiceDep,
    available_only: bool = False,
) -> list[VehicleResponse]:
    if available_only:
        vehicles = await service.repository.find_available_vehicles()
    else:
        vehicles = await service.repository.list_vehicles()
    return [VehicleResponse.model_validate(v) for v in vehicles]


@router.get("/maintenance-due", response_model=list[VehicleResponse])
async def list_vehicles_requiring_maintenance(service: FleetServiceDep) -> list[VehicleResponse]:
    """Vehicles within a week of (or past) their next scheduled maintenance."""
    vehicles = await service.vehicles_requiring_maintenance()
    return [VehicleResponse.model_validate(v) for v in vehicles]


@router.get("/{vehicle_id}", response_model=VehicleResponse)
async def get_vehicle(vehicle_id: UUID, service: FleetServiceDep) -> VehicleResponse:
    return VehicleResponse.model_validate(await service.get_vehicle(vehicle_id))


@router.get("/{vehicle_id}/usage", response_model=VehicleUsageResponse)
async def get_vehicle_usage(
    vehicle_id: UUID,
    start: datetime,
    end: datetime,
    service: FleetServiceDep,
) -> VehicleUsageResponse:
    """Completed trips and average trip mileage over a period."""
    if end <= start:
        raise ValidationError("Period end must be after period start")
    trips, average = await service.vehicle_usage(vehicle_id, start, end)
    return VehicleUsageResponse(
        vehicle_id=vehicle_id,
        period_start=start,
        period_end=end,
        completed_trips=trips,
        average_mileage=average,
    )


@router.post("/{vehicle_id}/status", response_model=VehicleResponse)
async def change_vehicle_status(
    vehicle_id: UUID,
    payload: VehicleStatusUpdate,
    service: FleetServiceDep,
) -> VehicleResponse:
    vehicle = await service.change_vehicle_status(vehicle_id, payload.status)
    return VehicleResponse.model_validate(vehicle)


@router.post("/{vehicle_id}/maintenance", response_model=VehicleResponse)
async def record_maintenance(vehicle_id: UUID, service: FleetServiceDep) -> VehicleResponse:
    """Record maintenance done today; the next one is scheduled six months out."""
    vehicle = await service.record_maintenance(vehicle_id)
    return VehicleResponse.model_validate(vehicle)


@router.delete("/{vehicle_id}", status_code=status.HTTP_204_NO_CONTENT)
async def retire_vehicle(vehicle_id: UUID, service: FleetServiceDep) -> None:
    await service.retire_vehicle(vehicle_id)
