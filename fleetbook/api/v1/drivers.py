"""Driver endpoints."""

from uuid import UUID

from fastapi import APIRouter, status

from fleetbook.api.deps import FleetServiceDep
from fleetbook.domain.entities import Driver
from fleetbook.schemas.driver import DriverCreate, DriverResponse, DriverStatusUpdate

router = APIRouter()


@router.post("/", response_model=DriverResponse, status_code=status.HTTP_201_CREATED)
async def register_driver(
    payload: DriverCreate,
    service: FleetServiceDep,
) -> DriverResponse:
    driver = await service.register_driver(Driver(**payload.model_dump()))
    return DriverResponse.model_validate(driver)


@router.get("/", response_model=list[DriverResponse])
async def list_drivers(
    service: FleetServiceDep,
    available_only: bool = False,
) -> list[DriverResponse]:
    if available_only:
        drivers = await service.repository.find_available_drivers()
    else:
        drivers = await service.repository.list_drivers()
    return [DriverResponse.model_validate(d) for d in drivers]


@router.get("/license-renewals", response_model=list[DriverResponse])
async def list_drivers_requiring_license_renewal(
    service: FleetServiceDep,
) -> list[DriverResponse]:
    """Drivers whose license expires within 30 days."""
    drivers = await service.drivers_requiring_license_renewal()
    return [DriverResponse.model_validate(d) for d in drivers]


@router.get("/{driver_id}", response_model=DriverResponse)
async def get_driver(driver_id: UUID, service: FleetServiceDep) -> DriverResponse:
    return DriverResponse.model_validate(await service.get_driver(driver_id))


@router.post("/{driver_id}/status", response_model=DriverResponse)
async def change_driver_status(
    driver_id: UUID,
    payload: DriverStatusUpdate,
    service: FleetServiceDep,
) -> DriverResponse:
    driver = await service.change_driver_status(driver_id, payload.status)
    return DriverResponse.model_validate(driver)


@router.delete("/{driver_id}", status_code=status.HTTP_204_NO_CONTENT)
async def retire_driver(driver_id: UUID, service: FleetServiceDep) -> None:
    await service.retire_driver(driver_id)
