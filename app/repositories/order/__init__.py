"""
Order repositories package.
"""

from app.repositories.order.order_repository import OrderRepository

__all__ = [
    "OrderRepository",
]
