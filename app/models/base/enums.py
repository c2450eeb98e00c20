"""
Status vocabularies shared by models, services and schemas.

Values are the exact strings persisted and broadcast.
"""

import enum


class BookingStatus(str, enum.Enum):
    """Table booking lifecycle status."""
    BOOKED = "Booked"
    SEATED = "Seated"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


# Statuses that hold a table for their time window
ACTIVE_BOOKING_STATUSES = (BookingStatus.BOOKED.value, BookingStatus.SEATED.value)


class OrderStatus(str, enum.Enum):
    """Kitchen-side order status."""
    PENDING = "Pending"
    AWAITING_PAYMENT = "Awaiting Payment"
    PREPARING = "Preparing"
    READY = "Ready"
    DELIVERED = "Delivered"
    PAYMENT_FAILED = "Payment Failed"
    CANCELLED = "Cancelled"


# Values accepted by the manual status update endpoint
ORDER_STATUS_UPDATE_WHITELIST = (
    OrderStatus.AWAITING_PAYMENT.value,
    OrderStatus.PREPARING.value,
    OrderStatus.READY.value,
    OrderStatus.DELIVERED.value,
    OrderStatus.CANCELLED.value,
)


class PaymentMethod(str, enum.Enum):
    """How the guest pays."""
    CASH = "cash"
    ONLINE = "online"


class GatewayOrderStatus(str, enum.Enum):
    """Gateway order statuses the service reacts to."""
    ACTIVE = "ACTIVE"
    PAID = "PAID"
    EXPIRED = "EXPIRED"
    TERMINATED = "TERMINATED"


PAYMENT_SUCCESS_STATUS = GatewayOrderStatus.PAID.value
