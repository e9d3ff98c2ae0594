"""Booking endpoints."""

from datetime import UTC, datetime
from uuid import UUID

from fastapi import APIRouter, Query, status

from fleetbook.api.deps import BookingServiceDep, CurrentActor
from fleetbook.domain.entities import Booking
from fleetbook.domain.enums import BookingStatus, parse_enum
from fleetbook.schemas.booking import (
    AvailabilityResponse,
    BookingApprove,
    BookingCancel,
    BookingComplete,
    BookingCreate,
    BookingReject,
    BookingResponse,
)

router = APIRouter()


def _to_response(booking: Booking) -> BookingResponse:
    return BookingResponse.model_validate(booking)


@router.post("/", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    payload: BookingCreate,
    actor: CurrentActor,
    service: BookingServiceDep,
) -> BookingResponse:
    """Request a vehicle, optionally with a driver."""
    booking = await service.create_booking(payload.to_request(), actor)
    return _to_response(booking)


@router.get("/", response_model=list[BookingResponse])
async def list_bookings(
    service: BookingServiceDep,
    status_filter: str | None = Query(None, alias="status"),
    requester_id: UUID | None = None,
    vehicle_id: UUID | None = None,
    driver_id: UUID | None = None,
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
) -> list[BookingResponse]:
    """List bookings, filtered by at most one of status, requester, vehicle or driver."""
    repository = service.repository
    if status_filter is not None:
        bookings = await repository.find_bookings_by_status(
            parse_enum(BookingStatus, status_filter)
        )
    elif requester_id is not None:
        bookings = await repository.find_bookings_by_requester(requester_id)
    elif vehicle_id is not None:
        bookings = await repository.find_bookings_by_vehicle(vehicle_id)
    elif driver_id is not None:
        bookings = await repository.find_bookings_by_driver(driver_id)
    else:
        bookings = await repository.list_bookings(limit=limit, offset=offset)
    return [_to_response(b) for b in bookings]


@router.get("/pending", response_model=list[BookingResponse])
async def list_pending_bookings(
    service: BookingServiceDep,
    manager_name: str | None = None,
) -> list[BookingResponse]:
    """Bookings awaiting approval, oldest first."""
    bookings = await service.repository.find_pending_bookings(manager_name)
    return [_to_response(b) for b in bookings]


@router.get("/current", response_model=list[BookingResponse])
async def list_current_bookings(service: BookingServiceDep) -> list[BookingResponse]:
    bookings = await service.repository.find_current_bookings()
    return [_to_response(b) for b in bookings]


@router.get("/upcoming", response_model=list[BookingResponse])
async def list_upcoming_bookings(service: BookingServiceDep) -> list[BookingResponse]:
    bookings = await service.repository.find_upcoming_bookings(datetime.now(UTC))
    return [_to_response(b) for b in bookings]


@router.get("/availability", response_model=AvailabilityResponse)
async def check_availability(
    service: BookingServiceDep,
    vehicle_id: UUID,
    start_time: datetime,
    end_time: datetime,
    driver_id: UUID | None = None,
) -> AvailabilityResponse:
    available = await service.is_available(vehicle_id, driver_id, start_time, end_time)
    return AvailabilityResponse(
        vehicle_id=vehicle_id,
        driver_id=driver_id,
        start_time=start_time,
        end_time=end_time,
        available=available,
    )


@router.get("/reference/{reference}", response_model=BookingResponse)
async def get_booking_by_reference(
    reference: str,
    service: BookingServiceDep,
) -> BookingResponse:
    return _to_response(await service.get_booking_by_reference(reference))


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: UUID,
    service: BookingServiceDep,
) -> BookingResponse:
    return _to_response(await service.get_booking(booking_id))


@router.post("/{booking_id}/approve", response_model=BookingResponse)
async def approve_booking(
    booking_id: UUID,
    payload: BookingApprove,
    actor: CurrentActor,
    service: BookingServiceDep,
) -> BookingResponse:
    booking = await service.approve(booking_id, actor, payload.comment)
    return _to_response(booking)


@router.post("/{booking_id}/reject", response_model=BookingResponse)
async def reject_booking(
    booking_id: UUID,
    payload: BookingReject,
    actor: CurrentActor,
    service: BookingServiceDep,
) -> BookingResponse:
    booking = await service.reject(booking_id, actor, payload.reason)
    return _to_response(booking)


@router.post("/{booking_id}/confirm", response_model=BookingResponse)
async def confirm_booking(
    booking_id: UUID,
    actor: CurrentActor,
    service: BookingServiceDep,
) -> BookingResponse:
    booking = await service.confirm(booking_id, actor)
    return _to_response(booking)


@router.post("/{booking_id}/activate", response_model=BookingResponse)
async def activate_booking(
    booking_id: UUID,
    actor: CurrentActor,
    service: BookingServiceDep,
) -> BookingResponse:
    """Start the trip."""
    booking = await service.activate(booking_id, actor)
    return _to_response(booking)


@router.post("/{booking_id}/complete", response_model=BookingResponse)
async def complete_booking(
    booking_id: UUID,
    payload: BookingComplete,
    actor: CurrentActor,
    service: BookingServiceDep,
) -> BookingResponse:
    """Finish the trip, recording feedback and mileage."""
    booking = await service.complete(
        booking_id, actor, feedback=payload.feedback, actual_mileage=payload.actual_mileage
    )
    return _to_response(booking)


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    booking_id: UUID,
    payload: BookingCancel,
    actor: CurrentActor,
    service: BookingServiceDep,
) -> BookingResponse:
    booking = await service.cancel(booking_id, actor, payload.reason)
    return _to_response(booking)


@router.post("/{booking_id}/no-show", response_model=BookingResponse)
async def mark_no_show(
    booking_id: UUID,
    actor: CurrentActor,
    service: BookingServiceDep,
) -> BookingResponse:
    booking = await service.mark_no_show(booking_id, actor)
    return _to_response(booking)
