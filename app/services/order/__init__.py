"""
Order service layer.
"""

from app.services.order.order_service import OrderService

__all__ = [
    "OrderService",
]
