"""
Topic-scoped broadcast fabric.

Subscribers join named topics (``global``, ``admin``, ``table:{n}``) in a
:class:`SubscriptionRegistry`; :class:`Broadcaster` fans each event out
over a snapshot of the topic's current members. Delivery is best effort:
a subscriber that fails is dropped from every topic and the publishing
call carries on.
"""
import asyncio
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Set, Tuple
from uuid import uuid4

from app.core.logging import get_logger

from .base_event import BaseEvent

logger = get_logger(__name__)

GLOBAL_TOPIC = "global"
ADMIN_TOPIC = "admin"
TABLE_TOPIC_PREFIX = "table:"


def table_topic(table_number: int) -> str:
    """Topic name for one table's audience."""
    return f"{TABLE_TOPIC_PREFIX}{int(table_number)}"


class Subscriber(ABC):
    """Handle for one connected audience member."""

    def __init__(self, subscriber_id: Optional[str] = None):
        self.subscriber_id = subscriber_id or str(uuid4())

    @abstractmethod
    def deliver(self, message: Dict[str, Any]) -> None:
        """Hand one event envelope to the subscriber. May raise on failure."""

    def __hash__(self) -> int:
        return hash(self.subscriber_id)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Subscriber) and other.subscriber_id == self.subscriber_id

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.subscriber_id})"


class QueueSubscriber(Subscriber):
    """
    Subscriber backed by an asyncio queue owned by a WebSocket task.

    ``deliver`` may be called from any thread; the message is handed to
    the owning event loop.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop, subscriber_id: Optional[str] = None):
        super().__init__(subscriber_id)
        self.loop = loop
        self.queue: asyncio.Queue = asyncio.Queue()
        self.closed = False

    def deliver(self, message: Dict[str, Any]) -> None:
        if self.closed or self.loop.is_closed():
            raise ConnectionError(f"Subscriber {self.subscriber_id} is closed")
        self.loop.call_soon_threadsafe(self.queue.put_nowait, message)

    async def get(self) -> Dict[str, Any]:
        return await self.queue.get()

    def close(self) -> None:
        self.closed = True


class SubscriptionRegistry:
    """
    Explicit ``topic -> set of subscribers`` membership table.

    Mutated by connect/join/leave/disconnect; read by publishers as a
    snapshot so fan-out never holds the lock while delivering.
    """

    def __init__(self):
        self._topics: Dict[str, Set[Subscriber]] = {}
        self._lock = threading.Lock()

    def join(self, topic: str, subscriber: Subscriber) -> None:
        with self._lock:
            self._topics.setdefault(topic, set()).add(subscriber)
        logger.debug(f"{subscriber} joined {topic}")

    def leave(self, topic: str, subscriber: Subscriber) -> None:
        with self._lock:
            members = self._topics.get(topic)
            if members is None:
                return
            members.discard(subscriber)
            if not members:
                del self._topics[topic]
        logger.debug(f"{subscriber} left {topic}")

    def leave_all(self, subscriber: Subscriber) -> None:
        """Remove a subscriber from every topic (disconnect)."""
        with self._lock:
            for topic in list(self._topics):
                members = self._topics[topic]
                members.discard(subscriber)
                if not members:
                    del self._topics[topic]

    def members(self, topic: str) -> Tuple[Subscriber, ...]:
        """Snapshot of the subscribers of ``topic``."""
        with self._lock:
            return tuple(self._topics.get(topic, ()))

    def topics_of(self, subscriber: Subscriber) -> List[str]:
        with self._lock:
            return sorted(topic for topic, members in self._topics.items() if subscriber in members)

    def subscriber_count(self) -> int:
        with self._lock:
            unique = set()
            for members in self._topics.values():
                unique.update(members)
            return len(unique)


class Broadcaster:
    """
    Publishes events to the members of a topic.
    """

    def __init__(self, registry: Optional[SubscriptionRegistry] = None):
        self.registry = registry or SubscriptionRegistry()

    def publish(self, topic: str, event_type: str, data: Dict[str, Any]) -> int:
        """
        Deliver one event to every current member of ``topic``.

        Returns:
            Number of subscribers the event was handed to
        """
        event = BaseEvent(event_type, topic, data)
        message = event.to_dict()
        delivered = 0

        for subscriber in self.registry.members(topic):
            try:
                subscriber.deliver(message)
                delivered += 1
            except Exception as e:
                logger.warning(
                    f"Dropping subscriber {subscriber.subscriber_id} after failed delivery of {event}: {e}"
                )
                self.registry.leave_all(subscriber)

        logger.debug(f"Published {event} to {delivered} subscriber(s)")
        return delivered

    def publish_many(self, deliveries: List[Tuple[str, str]], data: Dict[str, Any]) -> int:
        """Publish the same record to several ``(topic, event_type)`` pairs."""
        return sum(self.publish(topic, event_type, data) for topic, event_type in deliveries)

    def get_stats(self) -> Dict[str, Any]:
        """Get statistics about the broadcaster."""
        return {
            "subscribers": self.registry.subscriber_count(),
        }
