"""
Booking schemas package.
"""

from app.schemas.booking.booking_request import (
    BookingCreateRequest,
    BookingStatusUpdateRequest,
)

__all__ = [
    "BookingCreateRequest",
    "BookingStatusUpdateRequest",
]
