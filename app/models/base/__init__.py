"""
Base models package.

Provides the declarative base, abstract model classes and
status enums for all database models.
"""

from app.models.base.base_model import (
    Base,
    BaseModel,
    TimestampModel,
)

from app.models.base.enums import (
    ACTIVE_BOOKING_STATUSES,
    ORDER_STATUS_UPDATE_WHITELIST,
    PAYMENT_SUCCESS_STATUS,
    BookingStatus,
    GatewayOrderStatus,
    OrderStatus,
    PaymentMethod,
)

__all__ = [
    "Base",
    "BaseModel",
    "TimestampModel",
    "ACTIVE_BOOKING_STATUSES",
    "ORDER_STATUS_UPDATE_WHITELIST",
    "PAYMENT_SUCCESS_STATUS",
    "BookingStatus",
    "GatewayOrderStatus",
    "OrderStatus",
    "PaymentMethod",
]
