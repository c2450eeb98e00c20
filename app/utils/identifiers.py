"""
Record identifiers.

Bookings and orders carry ``{PREFIX}-{epoch_ms}-{table}`` ids so the
creation time and table can be read straight from the id. Gateway order
ids reuse the timestamp and table of the local order under a different
prefix, which is how webhooks are correlated back to orders.
"""

import threading
import time
from dataclasses import dataclass
from typing import Optional

from app.core.exceptions import InvalidOrderFormatError

BOOKING_PREFIX = "BOOK"
ORDER_PREFIX = "ORDER"

_clock_lock = threading.Lock()
_last_ms = 0


def _epoch_ms(now_ms: Optional[int] = None) -> int:
    """Millisecond stamp, strictly increasing within the process."""
    global _last_ms
    if now_ms is not None:
        return now_ms
    with _clock_lock:
        _last_ms = max(int(time.time() * 1000), _last_ms + 1)
        return _last_ms


def generate_booking_id(table_number: int, now_ms: Optional[int] = None) -> str:
    return f"{BOOKING_PREFIX}-{_epoch_ms(now_ms)}-{table_number}"


def generate_order_id(table_number: int, now_ms: Optional[int] = None) -> str:
    return f"{ORDER_PREFIX}-{_epoch_ms(now_ms)}-{table_number}"


def _is_ascii_number(part: str) -> bool:
    # str.isdigit() also accepts characters such as '²' that int() rejects
    return part.isascii() and part.isdigit()


@dataclass(frozen=True)
class OrderReference:
    """Decoded ``{prefix}-{timestamp}-{table}`` identifier."""

    prefix: str
    timestamp: int
    table_number: int

    @property
    def value(self) -> str:
        return f"{self.prefix}-{self.timestamp}-{self.table_number}"

    @property
    def local_order_id(self) -> str:
        return f"{ORDER_PREFIX}-{self.timestamp}-{self.table_number}"

    def with_prefix(self, prefix: str) -> "OrderReference":
        return OrderReference(prefix, self.timestamp, self.table_number)


def parse_order_reference(value: Optional[str], expected_prefix: str) -> OrderReference:
    """
    Decode an order identifier into its three parts.

    Raises:
        InvalidOrderFormatError: wrong part count, wrong prefix or
            non-numeric timestamp/table.
    """
    if not isinstance(value, str) or not value:
        raise InvalidOrderFormatError(order_id=value, reason="Order identifier is missing")

    parts = value.split("-")
    if len(parts) != 3:
        raise InvalidOrderFormatError(order_id=value)

    prefix, timestamp, table = parts
    if prefix != expected_prefix:
        raise InvalidOrderFormatError(
            order_id=value,
            reason=f"Order identifier prefix must be '{expected_prefix}'",
        )
    if not _is_ascii_number(timestamp) or not _is_ascii_number(table):
        raise InvalidOrderFormatError(order_id=value)

    return OrderReference(prefix, int(timestamp), int(table))


def gateway_order_id_for(order_id: str, gateway_prefix: str) -> str:
    """Gateway identifier for a local ``ORDER-...`` id."""
    return parse_order_reference(order_id, ORDER_PREFIX).with_prefix(gateway_prefix).value


__all__ = [
    'BOOKING_PREFIX',
    'ORDER_PREFIX',
    'OrderReference',
    'generate_booking_id',
    'generate_order_id',
    'parse_order_reference',
    'gateway_order_id_for',
]
