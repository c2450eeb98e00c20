"""
Booking repositories package.
"""

from app.repositories.booking.booking_repository import BookingRepository
from app.repositories.booking.dining_table_repository import DiningTableRepository

__all__ = [
    "BookingRepository",
    "DiningTableRepository",
]
