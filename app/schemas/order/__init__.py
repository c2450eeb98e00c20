"""
Order schemas package.
"""

from app.schemas.order.order_request import (
    OrderCreateRequest,
    OrderItem,
    OrderStatusUpdateRequest,
)

__all__ = [
    "OrderCreateRequest",
    "OrderItem",
    "OrderStatusUpdateRequest",
]
