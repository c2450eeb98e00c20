"""
Payment services package.
"""

from app.services.payment.gateway import CashfreeGateway, PaymentGateway
from app.services.payment.payment_service import PaymentService
from app.services.payment.retry_policy import RetryPolicy

__all__ = [
    "CashfreeGateway",
    "PaymentGateway",
    "PaymentService",
    "RetryPolicy",
]
