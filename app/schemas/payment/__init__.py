"""
Payment schemas package.
"""

from app.schemas.payment.payment_request import PaymentInitiateRequest

__all__ = [
    "PaymentInitiateRequest",
]
