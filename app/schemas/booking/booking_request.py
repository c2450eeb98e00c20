# --- File: app/schemas/booking/booking_request.py ---
"""
Booking request schemas.
"""

from __future__ import annotations

from typing import Optional, Union

from pydantic import Field

from app.schemas.common.base import BaseRequestSchema

__all__ = [
    "BookingCreateRequest",
    "BookingStatusUpdateRequest",
]


class BookingCreateRequest(BaseRequestSchema):
    """Reserve a table. Omit ``table_number`` to have one assigned."""

    customer_name: Optional[str] = Field(None, max_length=255)
    customer_phone: Optional[str] = Field(None, max_length=32)
    party_size: Optional[Union[int, str]] = None
    table_number: Optional[Union[int, str]] = None
    booking_time: Optional[str] = Field(None, description="ISO-8601; without offset read as restaurant-local time")
    duration_minutes: Optional[Union[int, str]] = None


class BookingStatusUpdateRequest(BaseRequestSchema):
    """Any non-empty status is accepted."""

    status: Optional[str] = None
