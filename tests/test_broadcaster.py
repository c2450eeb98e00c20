import asyncio
import threading

import pytest

from app.core.events import (
    ADMIN_TOPIC,
    GLOBAL_TOPIC,
    BaseEvent,
    Broadcaster,
    QueueSubscriber,
    Subscriber,
    SubscriptionRegistry,
    table_topic,
)


class Collector(Subscriber):
    def __init__(self, subscriber_id):
        super().__init__(subscriber_id)
        self.messages = []

    def deliver(self, message):
        self.messages.append(message)


class Broken(Subscriber):
    def deliver(self, message):
        raise ConnectionError("socket closed")


def test_table_topic_name():
    assert table_topic(4) == "table:4"
    assert table_topic("12") == "table:12"


def test_join_and_leave():
    registry = SubscriptionRegistry()
    alice = Collector("alice")

    registry.join(GLOBAL_TOPIC, alice)
    registry.join(table_topic(3), alice)
    registry.join(table_topic(3), alice)

    assert registry.topics_of(alice) == ["global", "table:3"]
    assert registry.members(table_topic(3)) == (alice,)

    registry.leave(table_topic(3), alice)
    registry.leave("never-joined", alice)

    assert registry.topics_of(alice) == ["global"]
    assert registry.members(table_topic(3)) == ()


def test_leave_all_and_count():
    registry = SubscriptionRegistry()
    alice, bob = Collector("alice"), Collector("bob")
    registry.join(GLOBAL_TOPIC, alice)
    registry.join(ADMIN_TOPIC, alice)
    registry.join(GLOBAL_TOPIC, bob)

    assert registry.subscriber_count() == 2

    registry.leave_all(alice)

    assert registry.topics_of(alice) == []
    assert registry.members(GLOBAL_TOPIC) == (bob,)
    assert registry.subscriber_count() == 1


def test_envelope_shape():
    event = BaseEvent("order_update", "global", {"order_id": "ORDER-1-1"})
    envelope = event.to_dict()

    assert envelope["event"] == "order_update"
    assert envelope["topic"] == "global"
    assert envelope["data"] == {"order_id": "ORDER-1-1"}
    assert envelope["timestamp"].endswith("+00:00")


def test_publish_reaches_only_topic_members():
    broadcaster = Broadcaster()
    kitchen, table_two, table_three = Collector("kitchen"), Collector("t2"), Collector("t3")
    broadcaster.registry.join(ADMIN_TOPIC, kitchen)
    broadcaster.registry.join(table_topic(2), table_two)
    broadcaster.registry.join(table_topic(3), table_three)

    delivered = broadcaster.publish(table_topic(2), "table_order_update", {"table_number": 2})

    assert delivered == 1
    assert [m["event"] for m in table_two.messages] == ["table_order_update"]
    assert table_three.messages == []
    assert kitchen.messages == []


def test_publish_to_an_empty_topic():
    assert Broadcaster().publish("table:99", "table_order_update", {}) == 0


def test_failing_subscriber_is_dropped():
    broadcaster = Broadcaster()
    healthy, broken = Collector("healthy"), Broken("broken")
    for topic in (GLOBAL_TOPIC, ADMIN_TOPIC):
        broadcaster.registry.join(topic, healthy)
        broadcaster.registry.join(topic, broken)

    assert broadcaster.publish(GLOBAL_TOPIC, "order_update", {"n": 1}) == 1
    assert broadcaster.registry.topics_of(broken) == []

    assert broadcaster.publish(ADMIN_TOPIC, "admin_order_update", {"n": 1}) == 1
    assert len(healthy.messages) == 2


def test_publish_many_shares_the_record():
    broadcaster = Broadcaster()
    listener = Collector("listener")
    broadcaster.registry.join(GLOBAL_TOPIC, listener)
    broadcaster.registry.join(ADMIN_TOPIC, listener)
    record = {"order_id": "ORDER-1-4", "status": "Ready"}

    delivered = broadcaster.publish_many(
        [(GLOBAL_TOPIC, "order_status_update"), (table_topic(4), "table_order_status_update"),
         (ADMIN_TOPIC, "admin_order_status_update")],
        record,
    )

    assert delivered == 2
    assert [m["event"] for m in listener.messages] == ["order_status_update", "admin_order_status_update"]
    assert all(m["data"] == record for m in listener.messages)
    assert broadcaster.get_stats() == {"subscribers": 1}


def test_queue_subscriber_receives_from_other_threads():
    loop = asyncio.new_event_loop()
    try:
        subscriber = QueueSubscriber(loop, "socket-1")
        broadcaster = Broadcaster()
        broadcaster.registry.join(GLOBAL_TOPIC, subscriber)

        worker = threading.Thread(
            target=broadcaster.publish, args=(GLOBAL_TOPIC, "booking_update", {"table_number": 1})
        )
        worker.start()
        worker.join()

        message = loop.run_until_complete(asyncio.wait_for(subscriber.get(), timeout=1))
        assert message["event"] == "booking_update"
        assert message["data"] == {"table_number": 1}
    finally:
        loop.close()


def test_closed_queue_subscriber_is_dropped():
    loop = asyncio.new_event_loop()
    try:
        subscriber = QueueSubscriber(loop, "socket-2")
        broadcaster = Broadcaster()
        broadcaster.registry.join(GLOBAL_TOPIC, subscriber)
        subscriber.close()

        assert broadcaster.publish(GLOBAL_TOPIC, "booking_update", {}) == 0
        assert broadcaster.registry.subscriber_count() == 0
    finally:
        loop.close()


def test_closed_loop_refuses_delivery():
    loop = asyncio.new_event_loop()
    subscriber = QueueSubscriber(loop)
    loop.close()

    with pytest.raises(ConnectionError):
        subscriber.deliver({"event": "order_update"})
