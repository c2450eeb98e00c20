# --- File: app/schemas/payment/payment_request.py ---
"""
Payment request schemas.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from app.schemas.common.base import BaseRequestSchema

__all__ = [
    "PaymentInitiateRequest",
]


class PaymentInitiateRequest(BaseRequestSchema):
    """
    Payment session request for an existing order.

    ``order_meta`` must carry ``return_url`` and ``notify_url``.
    """

    order_id: Optional[str] = None
    order_amount: Optional[Any] = None
    order_currency: Optional[str] = None
    customer_details: Optional[Dict[str, Any]] = None
    order_meta: Optional[Dict[str, Any]] = None
    order_note: Optional[str] = None
