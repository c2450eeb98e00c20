"""
Event system for the dine-in coordination service.
"""

from .base_event import BaseEvent
from .broadcaster import (
    ADMIN_TOPIC,
    GLOBAL_TOPIC,
    Broadcaster,
    QueueSubscriber,
    Subscriber,
    SubscriptionRegistry,
    table_topic,
)

__all__ = [
    "ADMIN_TOPIC",
    "GLOBAL_TOPIC",
    "BaseEvent",
    "Broadcaster",
    "QueueSubscriber",
    "Subscriber",
    "SubscriptionRegistry",
    "table_topic",
]
