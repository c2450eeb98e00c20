"""
Table availability resolver.

Read-only: it answers "which tables are free for this window" from one
snapshot of bookings. Reserving a table is the booking service's job,
which re-checks inside its own transaction.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from app.core.exceptions import InvalidInputError
from app.core.logging import log_execution_time
from app.models.base.enums import ACTIVE_BOOKING_STATUSES
from app.models.booking import TableBooking
from app.repositories.booking import BookingRepository
from app.services.base import BaseService
from app.utils.datetime_utils import (
    coerce_duration,
    day_bounds,
    from_storage,
    overlaps,
    parse_timestamp,
    to_storage,
    utcnow,
)


def resolve_free_tables(
    bookings: Iterable[TableBooking],
    start: datetime,
    end: datetime,
    total_tables: int,
) -> Tuple[List[int], Set[int]]:
    """
    Split tables ``1..total_tables`` into free and taken for ``[start, end)``.

    A table is taken when any of its Booked or Seated bookings overlaps
    the window. Tables outside the configured range are ignored, so the
    two results always partition ``1..total_tables``.

    Returns:
        (free table numbers ascending, taken table numbers)
    """
    unavailable: Set[int] = set()
    for booking in bookings:
        if booking.status not in ACTIVE_BOOKING_STATUSES:
            continue
        if not 1 <= booking.table_number <= total_tables:
            continue
        if overlaps(start, end, from_storage(booking.booking_time), booking.duration_minutes):
            unavailable.add(booking.table_number)

    available = [n for n in range(1, total_tables + 1) if n not in unavailable]
    return available, unavailable


class AvailabilityService(BaseService):
    """Free-table queries for a start time and duration"""

    def __init__(self, db_session, settings=None, broadcaster=None):
        super().__init__(db_session, settings, broadcaster)
        self.bookings = BookingRepository(db_session)

    def parse_window(
        self,
        at: Any,
        duration_minutes: Any,
        time_field: str = "at",
        duration_field: str = "duration",
    ) -> Tuple[datetime, datetime, int]:
        """
        Read a requested window as aware UTC ``(start, end, minutes)``.

        Raises:
            InvalidInputError: unparseable time or non-positive duration
        """
        start = parse_timestamp(at, self.settings.TIMEZONE)
        if start is None:
            raise InvalidInputError(
                "Invalid time",
                field_errors={time_field: [f"Cannot parse time: {at!r}"]},
            )

        duration = coerce_duration(duration_minutes, self.settings.DEFAULT_BOOKING_DURATION_MINUTES)
        if duration is None or duration < 1:
            raise InvalidInputError(
                "Invalid duration",
                field_errors={duration_field: ["Duration must be a positive number of minutes"]},
            )
        return start, start + timedelta(minutes=duration), duration

    @log_execution_time("available_tables")
    def available_tables(self, at: Optional[Any] = None, duration_minutes: Optional[Any] = None) -> Dict[str, Any]:
        """
        Free tables for ``[at, at + duration)``.

        Only bookings starting on the restaurant-local calendar day of
        ``at`` are considered. ``at`` defaults to now.

        Returns:
            ``{"available": [...], "total": N}``
        """
        if at is None or at == '':
            at = from_storage(utcnow())
        start, end, _ = self.parse_window(at, duration_minutes)

        day_start, day_end = day_bounds(start, self.settings.TIMEZONE)
        bookings = self.bookings.list_between(to_storage(day_start), to_storage(day_end))

        total = self.settings.TOTAL_TABLES
        available, _ = resolve_free_tables(bookings, start, end, total)
        return {"available": available, "total": total}
