import re
from datetime import datetime

import pytest
from sqlalchemy.orm.exc import StaleDataError

from app.core.exceptions import InvalidInputError, NoTableAvailableError, ResourceNotFoundError
from app.models.booking import TableBooking
from app.services.booking import BookingService


def booking_request(**overrides):
    data = {
        "customer_name": "Asha Rao",
        "customer_phone": "9876543210",
        "party_size": 4,
        "booking_time": "2030-05-01T19:00:00Z",
        "duration_minutes": 60,
    }
    data.update(overrides)
    return data


@pytest.fixture
def service(db, settings, broadcaster):
    return BookingService(db, settings, broadcaster)


def test_create_assigns_lowest_free_table(service):
    booking = service.create_booking(booking_request())

    assert booking["table_number"] == 1
    assert booking["status"] == "Booked"
    assert booking["party_size"] == 4
    assert booking["duration_minutes"] == 60
    assert booking["booking_time"] == "2030-05-01T19:00:00+00:00"
    assert re.fullmatch(r"BOOK-\d+-1", booking["booking_id"])


def test_create_skips_tables_taken_in_the_window(service, add_booking):
    add_booking(1, datetime(2030, 5, 1, 18, 30), 60)
    add_booking(2, datetime(2030, 5, 1, 19, 45), 60)

    booking = service.create_booking(booking_request())

    assert booking["table_number"] == 3


def test_create_defaults_duration(service):
    booking = service.create_booking(booking_request(duration_minutes=None))
    assert booking["duration_minutes"] == 60


def test_back_to_back_bookings_share_a_table(service):
    first = service.create_booking(booking_request())
    second = service.create_booking(booking_request(booking_time="2030-05-01T20:00:00Z"))

    assert first["table_number"] == second["table_number"] == 1
    assert first["booking_id"] != second["booking_id"]


def test_create_checks_bookings_on_other_days(service, add_booking):
    # previous-day booking that runs past midnight still holds table 1
    add_booking(1, datetime(2030, 4, 30, 23, 30), 120)

    booking = service.create_booking(booking_request(booking_time="2030-05-01T00:30:00Z"))

    assert booking["table_number"] == 2


def test_create_broadcasts_to_global_and_admin(service, recorder):
    booking = service.create_booking(booking_request())

    assert recorder.events() == ["booking_update", "admin_booking_update"]
    assert recorder.on("global")[0]["data"] == booking
    assert recorder.on("admin")[0]["data"]["booking_id"] == booking["booking_id"]


def test_create_persists_the_booking(service, session_factory):
    booking = service.create_booking(booking_request())

    other = session_factory()
    try:
        stored = other.get(TableBooking, booking["booking_id"])
        assert stored is not None
        assert stored.customer_name == "Asha Rao"
    finally:
        other.close()


@pytest.mark.parametrize("field", ["customer_name", "customer_phone", "party_size", "booking_time"])
def test_create_requires_fields(service, recorder, field):
    data = booking_request()
    data.pop(field)

    with pytest.raises(InvalidInputError) as exc:
        service.create_booking(data)

    assert field in exc.value.details["field_errors"]
    assert recorder.messages == []


@pytest.mark.parametrize("party_size", [0, -2, "many", 2.5, True])
def test_create_rejects_bad_party_size(service, party_size):
    with pytest.raises(InvalidInputError):
        service.create_booking(booking_request(party_size=party_size))


def test_create_rejects_bad_time_and_duration(service):
    with pytest.raises(InvalidInputError) as exc:
        service.create_booking(booking_request(booking_time="someday"))
    assert "booking_time" in exc.value.details["field_errors"]

    with pytest.raises(InvalidInputError) as exc:
        service.create_booking(booking_request(duration_minutes=-30))
    assert "duration_minutes" in exc.value.details["field_errors"]


def test_pinned_table_is_used_when_free(service):
    booking = service.create_booking(booking_request(table_number=7))
    assert booking["table_number"] == 7


def test_pinned_table_that_is_taken_is_refused(service, add_booking, db):
    add_booking(7, datetime(2030, 5, 1, 19, 30), 60)

    with pytest.raises(NoTableAvailableError) as exc:
        service.create_booking(booking_request(table_number=7))

    assert exc.value.message == "Table 7 is not available for selected time"
    assert db.query(TableBooking).count() == 1


@pytest.mark.parametrize("table_number", [11, -1, "seven"])
def test_pinned_table_outside_the_floor_is_invalid(service, table_number):
    with pytest.raises(InvalidInputError):
        service.create_booking(booking_request(table_number=table_number))


def test_full_floor_raises_no_table_available(service, add_booking, recorder, db):
    for table in range(1, 11):
        add_booking(table, datetime(2030, 5, 1, 19, 0), 120)

    with pytest.raises(NoTableAvailableError) as exc:
        service.create_booking(booking_request(booking_time="2030-05-01T20:00:00Z"))

    assert exc.value.status_code == 409
    assert exc.value.message == "No tables available for selected time"
    assert db.query(TableBooking).count() == 10
    assert recorder.messages == []


def _race(service_a, run_competitor):
    """Run ``run_competitor`` after A has read the active bookings once."""
    original = service_a.bookings.list_active
    state = {"raced": False}

    def list_active():
        rows = original()
        if not state["raced"]:
            state["raced"] = True
            run_competitor()
        return rows

    service_a.bookings.list_active = list_active


def test_concurrent_claim_for_the_last_table_loses(settings, session_factory, broadcaster):
    one_table = settings.model_copy(update={"TOTAL_TABLES": 1})
    session_a, session_b = session_factory(), session_factory()
    try:
        service_a = BookingService(session_a, one_table, broadcaster)
        service_b = BookingService(session_b, one_table, broadcaster)
        results = {}
        _race(service_a, lambda: results.setdefault("b", service_b.create_booking(booking_request())))

        with pytest.raises(NoTableAvailableError):
            service_a.create_booking(booking_request(customer_name="Late Guest"))

        assert results["b"]["table_number"] == 1
        stored = session_b.query(TableBooking).all()
        assert [b.booking_id for b in stored] == [results["b"]["booking_id"]]
    finally:
        session_a.close()
        session_b.close()


def test_concurrent_claim_moves_to_the_next_table(settings, session_factory, broadcaster):
    two_tables = settings.model_copy(update={"TOTAL_TABLES": 2})
    session_a, session_b = session_factory(), session_factory()
    try:
        service_a = BookingService(session_a, two_tables, broadcaster)
        service_b = BookingService(session_b, two_tables, broadcaster)
        results = {}
        _race(service_a, lambda: results.setdefault("b", service_b.create_booking(booking_request())))

        booking_a = service_a.create_booking(booking_request(customer_name="Late Guest"))

        assert results["b"]["table_number"] == 1
        assert booking_a["table_number"] == 2
    finally:
        session_a.close()
        session_b.close()


def test_assignment_gives_up_after_repeated_conflicts(service, monkeypatch):
    calls = []

    def conflicting_claim(table):
        calls.append(table.table_number)
        raise StaleDataError("dining_tables row changed")

    monkeypatch.setattr(service.tables, "claim", conflicting_claim)

    with pytest.raises(NoTableAvailableError):
        service.create_booking(booking_request())

    assert calls == [1, 1, 1]


def test_list_bookings_from_a_day(service, add_booking):
    add_booking(1, datetime(2030, 4, 30, 20, 0))
    add_booking(2, datetime(2030, 5, 1, 21, 0))
    add_booking(3, datetime(2030, 5, 1, 12, 0))

    bookings = service.list_bookings("2030-05-01")

    assert [b["table_number"] for b in bookings] == [3, 2]


def test_list_bookings_defaults_to_today(service, add_booking):
    add_booking(4, datetime(2000, 1, 1, 19, 0))
    add_booking(5, datetime(2099, 1, 1, 19, 0))

    bookings = service.list_bookings()

    assert [b["table_number"] for b in bookings] == [5]


def test_update_status_overwrites_and_broadcasts(service, recorder):
    booking = service.create_booking(booking_request())
    recorder.clear()

    seated = service.update_status(booking["booking_id"], "Seated")

    assert seated["status"] == "Seated"
    assert recorder.events() == ["booking_status_update", "admin_booking_status_update"]

    # no transition rules: a completed booking can be re-opened
    service.update_status(booking["booking_id"], "Completed")
    assert service.update_status(booking["booking_id"], "Booked")["status"] == "Booked"


def test_update_status_requires_a_value(service):
    booking = service.create_booking(booking_request())
    with pytest.raises(InvalidInputError):
        service.update_status(booking["booking_id"], "  ")


def test_update_status_unknown_booking(service):
    with pytest.raises(ResourceNotFoundError):
        service.update_status("BOOK-1-1", "Seated")


def test_cancel_frees_the_table(service, recorder):
    booking = service.create_booking(booking_request())
    recorder.clear()

    cancelled = service.cancel_booking(booking["booking_id"])

    assert cancelled["status"] == "Cancelled"
    assert recorder.events() == ["booking_cancelled", "admin_booking_cancelled"]
    assert service.create_booking(booking_request())["table_number"] == 1


def test_cancel_unknown_booking(service):
    with pytest.raises(ResourceNotFoundError):
        service.cancel_booking("BOOK-0-0")
