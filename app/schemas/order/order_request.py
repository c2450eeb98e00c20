# --- File: app/schemas/order/order_request.py ---
"""
Order request schemas.
"""

from __future__ import annotations

from typing import Any, List, Optional

from pydantic import AliasChoices, Field

from app.schemas.common.base import BaseRequestSchema

__all__ = [
    "OrderItem",
    "OrderCreateRequest",
    "OrderStatusUpdateRequest",
]


class OrderItem(BaseRequestSchema):
    """One line of an order; ``price`` is accepted for ``unit_price``."""

    name: Optional[str] = None
    quantity: Optional[int] = None
    unit_price: Optional[Any] = Field(None, validation_alias=AliasChoices("unit_price", "price"))


class OrderCreateRequest(BaseRequestSchema):
    """New order from a table; ``amount`` is the caller-computed total."""

    customer_name: Optional[str] = Field(None, max_length=255)
    customer_email: Optional[str] = Field(None, max_length=255)
    customer_phone: Optional[str] = Field(None, max_length=32)
    table_number: Optional[int] = None
    items: Optional[List[OrderItem]] = None
    amount: Optional[Any] = None
    payment_method: Optional[str] = None


class OrderStatusUpdateRequest(BaseRequestSchema):
    """Kitchen status change."""

    status: Optional[str] = None
