"""
Booking models package.
"""

from app.models.booking.dining_table import DiningTable
from app.models.booking.table_booking import TableBooking

__all__ = [
    "DiningTable",
    "TableBooking",
]
