# app/api/v1/bookings.py
"""Table booking endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from app.api import deps
from app.schemas.booking import BookingCreateRequest, BookingStatusUpdateRequest
from app.services.booking import AvailabilityService, BookingService

router = APIRouter(prefix="/bookings")


@router.get("")
def list_bookings(
    day: Optional[str] = Query(None, description="Bookings from this time on; defaults to today"),
    service: BookingService = Depends(deps.get_booking_service),
):
    return service.list_bookings(day)


@router.get("/available")
def available_tables(
    at: Optional[str] = Query(None, description="Start time; defaults to now"),
    duration: Optional[str] = Query(None, description="Minutes; defaults to 60"),
    service: AvailabilityService = Depends(deps.get_availability_service),
):
    return service.available_tables(at, duration)


@router.post("", status_code=status.HTTP_201_CREATED)
def create_booking(
    payload: BookingCreateRequest,
    service: BookingService = Depends(deps.get_booking_service),
):
    return service.create_booking(payload.to_payload())


@router.put("/{booking_id}/status")
def update_booking_status(
    booking_id: str,
    payload: BookingStatusUpdateRequest,
    service: BookingService = Depends(deps.get_booking_service),
):
    return service.update_status(booking_id, payload.status)


@router.delete("/{booking_id}")
def cancel_booking(
    booking_id: str,
    service: BookingService = Depends(deps.get_booking_service),
):
    booking = service.cancel_booking(booking_id)
    return {"success": True, "booking": booking}
