"""Shared fixtures: a file-backed SQLite store per test, a fake gateway
and a recording broadcast subscriber."""

from datetime import datetime
from typing import Any, Dict, List

import pytest
from fastapi.testclient import TestClient

from app.config.settings import Settings
from app.core.events import ADMIN_TOPIC, GLOBAL_TOPIC, Broadcaster, Subscriber, table_topic
from app.db.init_db import init_db
from app.db.session import build_engine, build_session_factory
from app.main import create_app
from app.models.booking import TableBooking
from app.services.payment import PaymentGateway, RetryPolicy


class RecordingSubscriber(Subscriber):
    """Keeps every envelope it is handed."""

    def __init__(self, subscriber_id: str = "recorder"):
        super().__init__(subscriber_id)
        self.messages: List[Dict[str, Any]] = []

    def deliver(self, message: Dict[str, Any]) -> None:
        self.messages.append(message)

    def events(self) -> List[str]:
        return [m["event"] for m in self.messages]

    def on(self, topic: str) -> List[Dict[str, Any]]:
        return [m for m in self.messages if m["topic"] == topic]

    def clear(self) -> None:
        self.messages.clear()


class FakeGateway(PaymentGateway):
    """
    In-memory gateway. Queue exceptions in ``create_failures`` /
    ``fetch_failures`` to have the next calls raise them.
    """

    def __init__(self):
        self.create_calls: List[Dict[str, Any]] = []
        self.fetch_calls: List[str] = []
        self.create_failures: List[Exception] = []
        self.fetch_failures: List[Exception] = []
        self.status = "ACTIVE"

    def create_order(self, payload):
        self.create_calls.append(payload)
        if self.create_failures:
            raise self.create_failures.pop(0)
        return {
            "session_id": f"session_{len(self.create_calls)}",
            "gateway_order_id": payload["order_id"],
            "raw": {},
        }

    def fetch_order(self, gateway_order_id):
        self.fetch_calls.append(gateway_order_id)
        if self.fetch_failures:
            raise self.fetch_failures.pop(0)
        return {"status": self.status, "gateway_order_id": gateway_order_id, "raw": {}}


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        DATABASE_URL=f"sqlite:///{tmp_path / 'dinein-test.db'}",
        ENVIRONMENT="testing",
        TIMEZONE="UTC",
        TOTAL_TABLES=10,
        BOOKING_ASSIGN_MAX_ATTEMPTS=3,
        CASHFREE_APP_ID="test-app",
        CASHFREE_SECRET_KEY="test-secret",
        PAYMENT_MAX_ATTEMPTS=4,
        PAYMENT_RETRY_DELAY_SECONDS=0,
        PAYMENT_WEBHOOK_VERIFY=False,
        LOG_LEVEL="WARNING",
        LOG_FORMAT="standard",
        LOG_TO_FILE=False,
    )


@pytest.fixture
def engine(settings):
    engine = build_engine(settings)
    init_db(engine, settings.TOTAL_TABLES)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def broadcaster() -> Broadcaster:
    return Broadcaster()


@pytest.fixture
def recorder(broadcaster) -> RecordingSubscriber:
    subscriber = RecordingSubscriber()
    broadcaster.registry.join(GLOBAL_TOPIC, subscriber)
    broadcaster.registry.join(ADMIN_TOPIC, subscriber)
    return subscriber


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def retry_policy(sleeps) -> RetryPolicy:
    return RetryPolicy(max_attempts=4, delay_seconds=0.5, sleep=sleeps.append)


@pytest.fixture
def client(settings, engine, gateway, broadcaster, retry_policy):
    app = create_app(
        settings=settings,
        engine=engine,
        gateway=gateway,
        broadcaster=broadcaster,
        retry_policy=retry_policy,
    )
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def add_booking(db):
    """Insert a booking row directly, bypassing assignment."""

    def _add(table_number: int, start: datetime, duration: int = 60, status: str = "Booked") -> TableBooking:
        booking = TableBooking(
            booking_id=f"BOOK-seed-{table_number}-{start:%Y%m%d%H%M}-{status}",
            table_number=table_number,
            party_size=2,
            customer_name="Seed Guest",
            customer_phone="9000000000",
            booking_time=start,
            duration_minutes=duration,
            status=status,
        )
        db.add(booking)
        db.commit()
        return booking

    return _add


@pytest.fixture
def table_listener(broadcaster):
    """Factory joining a fresh recorder to one table's topic."""

    def _listen(table_number: int) -> RecordingSubscriber:
        subscriber = RecordingSubscriber(f"table-{table_number}-listener")
        broadcaster.registry.join(table_topic(table_number), subscriber)
        return subscriber

    return _listen
