# app/api/events.py
"""
Live event stream.

Every connection joins the ``global`` topic. Clients send JSON actions:

    {"action": "join_admin"}
    {"action": "join_table", "table": 4}
    {"action": "leave", "topic": "table:4"}

and receive acknowledgements and event envelopes on the same socket.
"""

import asyncio
import json
from typing import Any, Dict

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from app.core.events import ADMIN_TOPIC, GLOBAL_TOPIC, QueueSubscriber, SubscriptionRegistry, table_topic
from app.core.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


def _ack(event: str, **data: Any) -> Dict[str, Any]:
    return {"event": event, **data}


def handle_action(registry: SubscriptionRegistry, subscriber: QueueSubscriber, message: Any) -> Dict[str, Any]:
    """Apply one client action to the registry and build the reply."""
    if not isinstance(message, dict):
        return _ack("error", message="Expected a JSON object")

    action = message.get("action")
    if action == "join_admin":
        registry.join(ADMIN_TOPIC, subscriber)
        return _ack("joined", topic=ADMIN_TOPIC)

    if action == "join_table":
        table = message.get("table")
        if isinstance(table, bool) or not isinstance(table, int) or table < 1:
            return _ack("error", message="table must be a positive integer")
        topic = table_topic(table)
        registry.join(topic, subscriber)
        return _ack("joined", topic=topic)

    if action == "leave":
        topic = message.get("topic")
        if not isinstance(topic, str) or not topic:
            return _ack("error", message="topic is required")
        registry.leave(topic, subscriber)
        return _ack("left", topic=topic)

    return _ack("error", message=f"Unknown action: {action!r}")


async def _pump(websocket: WebSocket, subscriber: QueueSubscriber) -> None:
    while True:
        message = await subscriber.get()
        await websocket.send_json(message)


@router.websocket("/ws")
async def event_stream(websocket: WebSocket):
    registry: SubscriptionRegistry = websocket.app.state.broadcaster.registry

    await websocket.accept()
    subscriber = QueueSubscriber(asyncio.get_running_loop())
    registry.join(GLOBAL_TOPIC, subscriber)
    pump = asyncio.create_task(_pump(websocket, subscriber))
    logger.info(f"Subscriber {subscriber.subscriber_id} connected")

    try:
        while True:
            text = await websocket.receive_text()
            try:
                message = json.loads(text)
            except ValueError:
                message = None
            subscriber.deliver(handle_action(registry, subscriber, message))
    except WebSocketDisconnect:
        pass
    finally:
        subscriber.close()
        registry.leave_all(subscriber)
        pump.cancel()
        outcome = (await asyncio.gather(pump, return_exceptions=True))[0]
        if isinstance(outcome, Exception):
            logger.warning(
                f"Event pump for {subscriber.subscriber_id} failed: {type(outcome).__name__}: {outcome}",
                extra={'subscriber_id': subscriber.subscriber_id},
            )
        logger.info(f"Subscriber {subscriber.subscriber_id} disconnected")
