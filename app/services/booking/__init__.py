"""
Booking service layer.

Provides business logic for:
- Table availability queries
- Booking creation with table assignment
- Status updates and cancellation
"""

from app.services.booking.availability_service import AvailabilityService, resolve_free_tables
from app.services.booking.booking_service import BookingService

__all__ = [
    "AvailabilityService",
    "BookingService",
    "resolve_free_tables",
]
