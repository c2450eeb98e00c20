"""
Base event class for the event system.
"""
from datetime import datetime
from typing import Any, Dict, Optional
from uuid import uuid4

from app.utils.datetime_utils import isoformat_utc


class BaseEvent:
    """
    Event delivered to one topic.

    ``data`` is always the full current record, never a diff.
    """

    def __init__(self, event_type: str, topic: str, data: Optional[Dict[str, Any]] = None):
        self.event_id = str(uuid4())
        self.event_type = event_type
        self.topic = topic
        self.data = data or {}
        self.timestamp = datetime.utcnow()

    def __str__(self) -> str:
        return f"{self.event_type}@{self.topic}({self.event_id})"

    def to_dict(self) -> Dict[str, Any]:
        """Wire envelope sent to subscribers."""
        return {
            "event": self.event_type,
            "topic": self.topic,
            "data": self.data,
            "timestamp": isoformat_utc(self.timestamp),
        }
