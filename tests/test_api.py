import pytest

from app.api import events
from app.core.exceptions import GatewayTransientError
from app.main import create_app
from app.services.payment.webhook import compute_signature

API = "/api/v1"


def create_order(client, **overrides):
    body = {
        "customer_name": "Ravi",
        "table_number": 5,
        "items": [{"name": "Masala Dosa", "quantity": 2, "price": 90}],
        "amount": 180,
        "payment_method": "online",
    }
    body.update(overrides)
    response = client.post(f"{API}/orders", json=body)
    assert response.status_code == 201, response.text
    return response.json()


def create_booking(client, **overrides):
    body = {
        "customer_name": "Asha",
        "customer_phone": "9876543210",
        "party_size": 2,
        "booking_time": "2030-05-01T19:00:00Z",
        "duration_minutes": 90,
    }
    body.update(overrides)
    return client.post(f"{API}/bookings", json=body)


def session_body(order_id, **overrides):
    body = {
        "order_id": order_id,
        "order_amount": 180,
        "order_currency": "INR",
        "customer_details": {"customer_id": "guest-5", "customer_phone": "9999999999"},
        "order_meta": {"return_url": "https://restro.example/return", "notify_url": "https://restro.example/hook"},
    }
    body.update(overrides)
    return body


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert "X-Request-ID" in response.headers
    assert "X-Process-Time" in response.headers


def test_request_id_is_echoed(client):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"


# ---------------------------------------------------------------- bookings

def test_booking_flow(client):
    response = create_booking(client)
    assert response.status_code == 201
    booking = response.json()
    assert booking["table_number"] == 1

    available = client.get(f"{API}/bookings/available", params={"at": "2030-05-01T20:00:00Z", "duration": "30"})
    assert available.status_code == 200
    assert available.json()["available"] == list(range(2, 11))
    assert available.json()["total"] == 10

    listed = client.get(f"{API}/bookings", params={"day": "2030-05-01"}).json()
    assert [b["booking_id"] for b in listed] == [booking["booking_id"]]

    seated = client.put(f"{API}/bookings/{booking['booking_id']}/status", json={"status": "Seated"})
    assert seated.json()["status"] == "Seated"

    cancelled = client.delete(f"{API}/bookings/{booking['booking_id']}")
    assert cancelled.json()["success"] is True
    assert cancelled.json()["booking"]["status"] == "Cancelled"
    assert cancelled.json()["booking"]["booking_id"] == booking["booking_id"]


def test_booking_validation_error_body(client):
    response = create_booking(client, party_size=None, booking_time="soon")

    assert response.status_code == 400
    body = response.json()
    assert body["error"]["code"] == "INVALID_INPUT"
    assert "party_size" in body["error"]["details"]["field_errors"]
    assert body["request_id"] == response.headers["X-Request-ID"]


def test_taken_pinned_table_is_a_conflict(client):
    assert create_booking(client, table_number=4).status_code == 201

    response = create_booking(client, table_number=4, booking_time="2030-05-01T19:30:00Z")

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "NO_TABLE_AVAILABLE"
    assert response.json()["error"]["message"] == "Table 4 is not available for selected time"


def test_availability_with_bad_time(client):
    response = client.get(f"{API}/bookings/available", params={"at": "whenever"})
    assert response.status_code == 400
    assert response.json()["error"]["message"] == "Invalid time"


def test_unknown_booking(client):
    response = client.put(f"{API}/bookings/BOOK-1-1/status", json={"status": "Seated"})
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "RESOURCE_NOT_FOUND"


# ------------------------------------------------------------------ orders

def test_order_endpoints(client):
    order = create_order(client)
    assert order["status"] == "Awaiting Payment"

    assert client.get(f"{API}/orders/{order['order_id']}").json()["order_id"] == order["order_id"]
    assert [o["order_id"] for o in client.get(f"{API}/orders").json()] == [order["order_id"]]
    assert len(client.get(f"{API}/orders/table/5").json()) == 1
    assert client.get(f"{API}/orders/table/6").json() == []
    assert len(client.get(f"{API}/orders/status/Awaiting Payment").json()) == 1

    ready = client.put(f"{API}/orders/{order['order_id']}/status", json={"status": "Ready"})
    assert ready.status_code == 200
    assert ready.json()["status"] == "Ready"

    cancelled = client.delete(f"{API}/orders/{order['order_id']}")
    assert cancelled.json()["success"] is True
    assert cancelled.json()["order"]["status"] == "Cancelled"


def test_order_status_outside_whitelist(client):
    order = create_order(client)

    response = client.put(f"{API}/orders/{order['order_id']}/status", json={"status": "Pending"})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_STATUS"
    assert client.get(f"{API}/orders/{order['order_id']}").json()["status"] == "Awaiting Payment"


def test_order_with_non_numeric_table(client):
    response = client.post(f"{API}/orders", json={"customer_name": "Ravi", "table_number": "five"})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_INPUT"


def test_order_without_items(client):
    response = client.post(f"{API}/orders", json={"customer_name": "Ravi", "table_number": 5, "amount": 10})
    assert response.status_code == 400
    assert "items" in response.json()["error"]["details"]["field_errors"]


@pytest.mark.parametrize("price_key", ["unit_price", "price"])
def test_order_item_price_spellings(client, price_key):
    order = create_order(client, items=[{"name": "Idli", "quantity": 3, price_key: 30}], amount=90)

    assert order["items"] == [{"name": "Idli", "quantity": 3, "unit_price": 30}]


def test_unknown_order(client):
    assert client.get(f"{API}/orders/ORDER-1-1").status_code == 404


def test_daily_sales_report(client):
    create_order(client, items=[{"name": "Idli", "quantity": 3, "unit_price": 30}], amount=90)
    create_order(client)

    response = client.get(f"{API}/reports/daily-sales")

    assert response.status_code == 200
    assert response.json() == {"Idli": 3, "Masala Dosa": 2}


# ---------------------------------------------------------------- payments

def test_payment_session_and_webhook(client, gateway):
    order = create_order(client)

    session = client.post(f"{API}/payments/initiate", json=session_body(order["order_id"]))
    assert session.status_code == 200
    assert session.json()["session_id"] == "session_1"
    gateway_order_id = session.json()["gateway_order_id"]
    assert gateway_order_id.startswith("RESTRO-")

    hook = client.post(
        f"{API}/payments/webhook",
        json={"order_id": gateway_order_id, "order_status": "PAID", "cf_payment_id": 42},
    )
    assert hook.status_code == 200
    assert hook.json()["order"]["status"] == "Preparing"

    verified = client.get(f"{API}/payments/verify/{order['order_id']}")
    assert verified.json()["source"] == "local"
    assert gateway.fetch_calls == []

    again = client.post(f"{API}/payments/initiate", json=session_body(order["order_id"]))
    assert again.status_code == 409
    assert again.json()["error"]["code"] == "PAYMENT_ALREADY_CONFIRMED"


def test_payment_session_gateway_outage(client, gateway):
    order = create_order(client)
    gateway.create_failures = [GatewayTransientError() for _ in range(4)]

    response = client.post(f"{API}/payments/initiate", json=session_body(order["order_id"]))

    assert response.status_code == 502
    assert response.json()["error"]["code"] == "PAYMENT_CREATION_FAILED"
    assert len(gateway.create_calls) == 4


def test_webhook_with_bad_order_id(client):
    response = client.post(f"{API}/payments/webhook", json={"order_id": "RESTRO-12", "order_status": "PAID"})
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_ORDER_FORMAT"


def test_webhook_with_invalid_json(client):
    response = client.post(
        f"{API}/payments/webhook",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_INPUT"


def test_verify_from_gateway(client, gateway):
    order = create_order(client)
    gateway.status = "ACTIVE"

    response = client.get(f"{API}/payments/verify/{order['order_id']}")

    assert response.status_code == 200
    assert response.json()["status"] == "ACTIVE"
    assert response.json()["source"] == "gateway"


@pytest.fixture
def verifying_client(settings, engine, gateway, broadcaster, retry_policy):
    from fastapi.testclient import TestClient

    strict = settings.model_copy(update={"PAYMENT_WEBHOOK_VERIFY": True})
    app = create_app(strict, engine, gateway, broadcaster, retry_policy)
    with TestClient(app) as test_client:
        yield test_client


def test_signed_webhook_over_http(verifying_client):
    order = create_order(verifying_client)
    gateway_order_id = order["order_id"].replace("ORDER", "RESTRO", 1)
    body = ('{"order_id": "%s", "order_status": "PAID"}' % gateway_order_id).encode()

    unsigned = verifying_client.post(
        f"{API}/payments/webhook", content=body, headers={"Content-Type": "application/json"}
    )
    assert unsigned.status_code == 400
    assert unsigned.json()["error"]["code"] == "INVALID_WEBHOOK_SIGNATURE"

    signed = verifying_client.post(
        f"{API}/payments/webhook",
        content=body,
        headers={
            "Content-Type": "application/json",
            "x-webhook-timestamp": "1700000000",
            "x-webhook-signature": compute_signature("test-secret", "1700000000", body),
        },
    )
    assert signed.status_code == 200
    assert signed.json()["status"] == "PAID"


# ------------------------------------------------------------------ events

def test_event_stream_delivers_table_events(client):
    with client.websocket_connect("/ws") as ws:
        ws.send_json({"action": "join_table", "table": 5})
        assert ws.receive_json() == {"event": "joined", "topic": "table:5"}

        order = create_order(client)

        first = ws.receive_json()
        second = ws.receive_json()
        assert (first["event"], first["topic"]) == ("order_update", "global")
        assert (second["event"], second["topic"]) == ("table_order_update", "table:5")
        assert second["data"]["order_id"] == order["order_id"]


def test_event_stream_admin_room(client):
    with client.websocket_connect("/ws") as ws:
        ws.send_json({"action": "join_admin"})
        assert ws.receive_json() == {"event": "joined", "topic": "admin"}
        ws.send_json({"action": "leave", "topic": "global"})
        assert ws.receive_json() == {"event": "left", "topic": "global"}

        response = create_booking(client)

        message = ws.receive_json()
        assert message["event"] == "admin_booking_update"
        assert message["data"]["booking_id"] == response.json()["booking_id"]


def test_event_stream_rejects_bad_actions(client):
    with client.websocket_connect("/ws") as ws:
        ws.send_text("not json")
        assert ws.receive_json()["event"] == "error"
        ws.send_json({"action": "join_table", "table": 0})
        assert ws.receive_json() == {"event": "error", "message": "table must be a positive integer"}
        ws.send_json({"action": "dance"})
        assert ws.receive_json()["event"] == "error"


def test_disconnect_leaves_every_topic(client, broadcaster):
    with client.websocket_connect("/ws") as ws:
        ws.send_json({"action": "join_admin"})
        ws.receive_json()
        assert broadcaster.registry.subscriber_count() == 1

    # the server side finishes its cleanup after the close frame
    for _ in range(50):
        if broadcaster.registry.subscriber_count() == 0:
            break
        client.get("/health")
    assert broadcaster.registry.subscriber_count() == 0


def test_failed_send_is_reported_on_disconnect(client, broadcaster, monkeypatch):
    warnings = []
    monkeypatch.setattr(events.logger, "warning", lambda msg, *args, **kwargs: warnings.append(msg))

    with client.websocket_connect("/ws") as ws:
        ws.send_json({"action": "join_admin"})
        ws.receive_json()
        # not JSON-serialisable, so the send inside the pump raises
        broadcaster.publish("admin", "admin_order_update", {"order": object()})
        for _ in range(5):
            client.get("/health")

    for _ in range(50):
        if warnings:
            break
        client.get("/health")
    assert len(warnings) == 1
    assert "TypeError" in warnings[0]
