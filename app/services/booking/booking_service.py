"""
Booking lifecycle service.

Creating a booking re-checks availability against every active booking
and claims the chosen table inside one transaction. The claim bumps the
table's version, so when two requests pick the same table the second
commit fails with StaleDataError and is retried against a fresh snapshot.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.config.settings import Settings
from app.core.events import ADMIN_TOPIC, GLOBAL_TOPIC, Broadcaster
from app.core.exceptions import InvalidInputError, NoTableAvailableError
from app.core.logging import log_execution_time
from app.models.base.enums import BookingStatus
from app.models.booking import TableBooking
from app.repositories.booking import BookingRepository, DiningTableRepository
from app.services.base import BaseService
from app.services.booking.availability_service import AvailabilityService, resolve_free_tables
from app.utils.datetime_utils import isoformat_utc, local_midnight, parse_timestamp, to_storage, utcnow
from app.utils.identifiers import generate_booking_id
from app.utils.validators import RequiredFieldsValidator

BOOKING_REQUIRED_FIELDS = ('customer_name', 'customer_phone', 'party_size', 'booking_time')


def _positive_int(value: Any, field: str) -> int:
    if isinstance(value, bool):
        number = None
    elif isinstance(value, float):
        number = int(value) if value.is_integer() else None
    else:
        try:
            number = int(str(value).strip())
        except (TypeError, ValueError):
            number = None
    if number is None or number < 1:
        raise InvalidInputError(
            f"{field} must be a positive integer",
            field_errors={field: [f"{field} must be a positive integer"]},
        )
    return number


class BookingService(BaseService):
    """
    Table bookings: list, create (with table assignment), status updates
    and cancellation.
    """

    def __init__(
        self,
        db_session: Session,
        settings: Optional[Settings] = None,
        broadcaster: Optional[Broadcaster] = None,
    ):
        super().__init__(db_session, settings, broadcaster)
        self.bookings = BookingRepository(db_session)
        self.tables = DiningTableRepository(db_session)
        self.availability = AvailabilityService(db_session, self.settings)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def list_bookings(self, day: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Bookings starting at or after ``day``, oldest first.

        Missing or unparseable ``day`` means today at local midnight.
        """
        start = parse_timestamp(day, self.settings.TIMEZONE) if day else None
        if start is None:
            start = local_midnight(utcnow(), self.settings.TIMEZONE)
        return [booking.to_dict() for booking in self.bookings.list_from(to_storage(start))]

    # -------------------------------------------------------------------------
    # Create
    # -------------------------------------------------------------------------

    @log_execution_time("create_booking")
    def create_booking(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Reserve a table and persist the booking as Booked.

        Without ``table_number`` the lowest-numbered table free for the
        window is assigned. A given ``table_number`` must be within the
        floor and free for the window.

        Raises:
            InvalidInputError: missing/invalid fields
            NoTableAvailableError: nothing free, or the requested table is taken
        """
        if not isinstance(data, dict):
            raise InvalidInputError("Booking must be an object")

        RequiredFieldsValidator.validate(data, BOOKING_REQUIRED_FIELDS).raise_if_invalid(
            "Missing required fields"
        )
        party_size = _positive_int(data['party_size'], 'party_size')
        start, end, duration = self.availability.parse_window(
            data['booking_time'],
            data.get('duration_minutes'),
            time_field='booking_time',
            duration_field='duration_minutes',
        )

        total = self.settings.TOTAL_TABLES
        pinned = data.get('table_number')
        if pinned in (None, '', 0):
            pinned = None
        else:
            pinned = _positive_int(pinned, 'table_number')
            if pinned > total:
                raise InvalidInputError(
                    f"table_number must be between 1 and {total}",
                    field_errors={'table_number': [f"table_number must be between 1 and {total}"]},
                )

        max_attempts = self.settings.BOOKING_ASSIGN_MAX_ATTEMPTS
        for attempt in range(1, max_attempts + 1):
            try:
                with self.transaction():
                    booking = self._reserve(data, party_size, start, end, duration, pinned)
            except (StaleDataError, IntegrityError) as e:
                self._logger.warning(
                    f"Table claim conflicted (attempt {attempt}/{max_attempts}): {type(e).__name__}",
                    extra={'attempt': attempt},
                )
                continue

            record = booking.to_dict()
            self._logger.info(
                f"Booking {booking.booking_id} created for table {booking.table_number}",
                extra={'booking_id': booking.booking_id, 'table_number': booking.table_number},
            )
            self._publish(
                [(GLOBAL_TOPIC, "booking_update"), (ADMIN_TOPIC, "admin_booking_update")],
                record,
            )
            return record

        self._logger.warning(
            f"Giving up on table assignment after {max_attempts} conflicting attempts"
        )
        raise NoTableAvailableError(
            booking_time=isoformat_utc(to_storage(start)),
            duration_minutes=duration,
            table_number=pinned,
        )

    def _reserve(self, data, party_size, start, end, duration, pinned) -> TableBooking:
        """One optimistic round: snapshot, choose, claim, insert."""
        total = self.settings.TOTAL_TABLES
        tables = self.tables.snapshot(total)
        active = self.bookings.list_active()
        available, _ = resolve_free_tables(active, start, end, total)

        if pinned is not None:
            if pinned not in available:
                raise NoTableAvailableError(
                    message=f"Table {pinned} is not available for selected time",
                    booking_time=isoformat_utc(to_storage(start)),
                    duration_minutes=duration,
                    table_number=pinned,
                )
            chosen = pinned
        elif available:
            chosen = available[0]
        else:
            raise NoTableAvailableError(
                booking_time=isoformat_utc(to_storage(start)),
                duration_minutes=duration,
            )

        self.tables.claim(tables[chosen])
        return self.bookings.create(
            TableBooking(
                booking_id=generate_booking_id(chosen),
                table_number=chosen,
                party_size=party_size,
                customer_name=str(data['customer_name']).strip(),
                customer_phone=str(data['customer_phone']).strip(),
                booking_time=to_storage(start),
                duration_minutes=duration,
                status=BookingStatus.BOOKED.value,
            )
        )

    # -------------------------------------------------------------------------
    # Status changes
    # -------------------------------------------------------------------------

    def update_status(self, booking_id: str, status: Any) -> Dict[str, Any]:
        """
        Overwrite a booking's status. Any non-empty value is accepted.

        Raises:
            InvalidInputError: empty status
            ResourceNotFoundError: unknown booking
        """
        if not isinstance(status, str) or not status.strip():
            raise InvalidInputError(
                "status is required",
                field_errors={'status': ["status is required"]},
            )

        with self.transaction():
            booking = self.bookings.get_by_id(booking_id)
            self.bookings.set_status(booking, status.strip())

        record = booking.to_dict()
        self._logger.info(
            f"Booking {booking_id} status set to {booking.status}",
            extra={'booking_id': booking_id, 'status': booking.status},
        )
        self._publish(
            [(GLOBAL_TOPIC, "booking_status_update"), (ADMIN_TOPIC, "admin_booking_status_update")],
            record,
        )
        return record

    def cancel_booking(self, booking_id: str) -> Dict[str, Any]:
        """
        Mark a booking Cancelled; the row is kept.

        Raises:
            ResourceNotFoundError: unknown booking
        """
        with self.transaction():
            booking = self.bookings.get_by_id(booking_id)
            self.bookings.set_status(booking, BookingStatus.CANCELLED.value)

        record = booking.to_dict()
        self._logger.info(f"Booking {booking_id} cancelled", extra={'booking_id': booking_id})
        self._publish(
            [(GLOBAL_TOPIC, "booking_cancelled"), (ADMIN_TOPIC, "admin_booking_cancelled")],
            record,
        )
        return record
