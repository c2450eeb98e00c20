"""
Booking repository for table reservations.
"""

from datetime import datetime
from typing import List

from sqlalchemy.orm import Session

from app.models.base.enums import ACTIVE_BOOKING_STATUSES
from app.models.booking import TableBooking
from app.repositories.base.base_repository import BaseRepository


class BookingRepository(BaseRepository[TableBooking]):
    """Queries over the ``table_bookings`` collection."""

    resource_name = "Booking"

    def __init__(self, db: Session):
        super().__init__(TableBooking, db)

    def _chronological(self):
        return [TableBooking.booking_time.asc(), TableBooking.booking_id.asc()]

    def list_from(self, start: datetime) -> List[TableBooking]:
        """Bookings starting at or after ``start`` (naive UTC), oldest first."""
        return self.find_by_criteria(
            where=[TableBooking.booking_time >= start],
            order_by=self._chronological(),
        )

    def list_between(self, start: datetime, end: datetime) -> List[TableBooking]:
        """Bookings starting inside ``[start, end)``, any status."""
        return self.find_by_criteria(
            where=[TableBooking.booking_time >= start, TableBooking.booking_time < end],
            order_by=self._chronological(),
        )

    def list_active(self) -> List[TableBooking]:
        """Every booking still holding its table, across all days."""
        return self.find_by_criteria(
            where=[TableBooking.status.in_(ACTIVE_BOOKING_STATUSES)],
            order_by=self._chronological(),
        )

    def set_status(self, booking: TableBooking, status: str) -> TableBooking:
        return self.update(booking, {"status": status})
