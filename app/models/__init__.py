# models/__init__.py
from .base import Base, BaseModel, TimestampModel
from .booking import DiningTable, TableBooking
from .order import Order

__all__ = [
    "Base",
    "BaseModel",
    "TimestampModel",
    "DiningTable",
    "TableBooking",
    "Order",
]
