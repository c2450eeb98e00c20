"""
Table booking model.

A booking reserves one dining table for ``[booking_time,
booking_time + duration_minutes)``. Cancellation is a status write;
rows are never deleted.
"""

from datetime import datetime, timedelta

from sqlalchemy import CheckConstraint, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base.base_model import TimestampModel
from app.models.base.enums import ACTIVE_BOOKING_STATUSES, BookingStatus

__all__ = [
    "TableBooking",
]


class TableBooking(TimestampModel):
    """
    Reservation of a dining table for a time window.

    Attributes:
        booking_id: ``BOOK-{epoch_ms}-{table}`` identifier
        table_number: Reserved table (1..N)
        party_size: Number of guests
        customer_name: Guest name (display only)
        customer_phone: Guest phone (display only)
        booking_time: Start of occupancy, naive UTC
        duration_minutes: Length of occupancy
        status: Booked, Seated, Completed or Cancelled
    """

    __tablename__ = "table_bookings"
    __table_args__ = (
        CheckConstraint("table_number >= 1", name="ck_table_bookings_table_positive"),
        CheckConstraint("duration_minutes >= 1", name="ck_table_bookings_duration_positive"),
        Index("ix_table_bookings_table_time", "table_number", "booking_time"),
    )

    booking_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    table_number: Mapped[int] = mapped_column(Integer, nullable=False)
    party_size: Mapped[int] = mapped_column(Integer, nullable=False)
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_phone: Mapped[str] = mapped_column(String(32), nullable=False)
    booking_time: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=60)
    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=BookingStatus.BOOKED.value,
        index=True,
    )

    @property
    def end_time(self) -> datetime:
        """End of occupancy (exclusive)"""
        return self.booking_time + timedelta(minutes=self.duration_minutes or 0)

    @property
    def is_active(self) -> bool:
        """Whether the booking currently holds its table"""
        return self.status in ACTIVE_BOOKING_STATUSES
