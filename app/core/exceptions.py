"""
Application exceptions.

Each exception knows the error code and HTTP status it is rendered with,
so the middleware can turn any of them into the standard error body
without a lookup table.
"""

from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorCode(str, Enum):
    """Machine-readable codes returned in ``error.code``"""
    # General
    INTERNAL_ERROR = "INTERNAL_ERROR"
    INVALID_INPUT = "INVALID_INPUT"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"

    # Persistence
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"
    DUPLICATE_ENTRY = "DUPLICATE_ENTRY"

    # Booking and order rules
    NO_TABLE_AVAILABLE = "NO_TABLE_AVAILABLE"
    INVALID_STATUS = "INVALID_STATUS"
    PAYMENT_ALREADY_CONFIRMED = "PAYMENT_ALREADY_CONFIRMED"

    # Payment reconciliation
    INVALID_ORDER_FORMAT = "INVALID_ORDER_FORMAT"
    INVALID_WEBHOOK_SIGNATURE = "INVALID_WEBHOOK_SIGNATURE"
    GATEWAY_TRANSIENT_FAILURE = "GATEWAY_TRANSIENT_FAILURE"
    GATEWAY_REQUEST_REJECTED = "GATEWAY_REQUEST_REJECTED"
    PAYMENT_CREATION_FAILED = "PAYMENT_CREATION_FAILED"
    PAYMENT_VERIFICATION_FAILED = "PAYMENT_VERIFICATION_FAILED"


class BaseAppException(Exception):
    """
    Root of every exception the API renders itself.

    ``details`` ends up verbatim in the response body, so it must stay
    JSON-serialisable.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details: Dict[str, Any] = dict(details or {})

    def __str__(self) -> str:
        return f"[{self.error_code.value}] {self.message}"


# General

class InvalidInputError(BaseAppException):
    """Caller input failed validation"""

    def __init__(
        self,
        message: str = "Invalid input",
        field_errors: Optional[Dict[str, List[str]]] = None,
    ):
        super().__init__(
            message,
            ErrorCode.INVALID_INPUT,
            {"field_errors": field_errors} if field_errors else None,
            400,
        )


class ResourceNotFoundError(BaseAppException):
    """A booking, order or table does not exist"""

    def __init__(
        self,
        resource_type: str = "Resource",
        resource_id: Optional[str] = None,
        message: Optional[str] = None,
    ):
        if message is None:
            message = f"{resource_type} not found"
            if resource_id:
                message = f"{message} (ID: {resource_id})"
        super().__init__(
            message,
            ErrorCode.RESOURCE_NOT_FOUND,
            {"resource_type": resource_type, "resource_id": resource_id},
            404,
        )


class StoreUnavailableError(BaseAppException):
    """The database could not serve the request"""

    def __init__(
        self,
        message: str = "Data store is temporarily unavailable",
        operation: Optional[str] = None,
        original_error: Optional[str] = None,
    ):
        super().__init__(
            message,
            ErrorCode.STORE_UNAVAILABLE,
            {"operation": operation, "original_error": original_error},
            503,
        )


# Booking and order rules

class NoTableAvailableError(BaseAppException):
    """No table is free for the requested window"""

    def __init__(
        self,
        message: str = "No tables available for selected time",
        booking_time: Optional[str] = None,
        duration_minutes: Optional[int] = None,
        table_number: Optional[int] = None,
    ):
        details = {
            "booking_time": booking_time,
            "duration_minutes": duration_minutes,
        }
        if table_number is not None:
            details["table_number"] = table_number
        super().__init__(message, ErrorCode.NO_TABLE_AVAILABLE, details, 409)


class InvalidStatusError(BaseAppException):
    """A status value outside the allowed set"""

    def __init__(
        self,
        status: Optional[str] = None,
        allowed: Optional[List[str]] = None,
        message: str = "Invalid status",
    ):
        details = {
            "status": status,
            "allowed": allowed or [],
        }
        super().__init__(message, ErrorCode.INVALID_STATUS, details, 400)


class PaymentAlreadyConfirmedError(BaseAppException):
    """A payment session was requested for an order already paid"""

    def __init__(self, order_id: str):
        super().__init__(
            "Payment for this order is already confirmed",
            ErrorCode.PAYMENT_ALREADY_CONFIRMED,
            {"order_id": order_id},
            409,
        )


# Payment reconciliation

class InvalidOrderFormatError(BaseAppException):
    """A gateway order identifier that cannot be decoded"""

    def __init__(
        self,
        order_id: Optional[str] = None,
        reason: str = "Order identifier does not match the expected format",
    ):
        super().__init__(reason, ErrorCode.INVALID_ORDER_FORMAT, {"order_id": order_id}, 400)


class InvalidWebhookSignatureError(BaseAppException):
    """Webhook signature missing or wrong"""

    def __init__(self, message: str = "Webhook signature verification failed"):
        super().__init__(message, ErrorCode.INVALID_WEBHOOK_SIGNATURE, {}, 400)


class PaymentGatewayError(BaseAppException):
    """Base class for failures talking to the payment gateway"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode,
        operation: Optional[str] = None,
        gateway_status: Optional[int] = None,
    ):
        details = {
            "operation": operation,
            "gateway_status": gateway_status,
        }
        super().__init__(message, error_code, details, 502)


class GatewayTransientError(PaymentGatewayError):
    """Gateway failure worth retrying (network error, timeout, 429, 5xx)"""

    def __init__(
        self,
        message: str = "Payment gateway temporarily unavailable",
        operation: Optional[str] = None,
        gateway_status: Optional[int] = None,
    ):
        super().__init__(message, ErrorCode.GATEWAY_TRANSIENT_FAILURE, operation, gateway_status)


class GatewayRequestRejectedError(PaymentGatewayError):
    """Gateway refused the request; retrying would not help"""

    def __init__(
        self,
        message: str = "Payment gateway rejected the request",
        operation: Optional[str] = None,
        gateway_status: Optional[int] = None,
    ):
        super().__init__(message, ErrorCode.GATEWAY_REQUEST_REJECTED, operation, gateway_status)


class PaymentReconciliationError(BaseAppException):
    """Terminal wrapper raised once gateway retries are exhausted"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode,
        order_id: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        details = {
            "order_id": order_id,
            "original_error": str(cause) if cause is not None else None,
        }
        super().__init__(message, error_code, details, 502)
        self.cause = cause


class PaymentCreationFailedError(PaymentReconciliationError):
    """Payment session could not be created"""

    def __init__(self, order_id: Optional[str] = None, cause: Optional[BaseException] = None):
        super().__init__(
            "Payment session creation failed",
            ErrorCode.PAYMENT_CREATION_FAILED,
            order_id,
            cause,
        )


class PaymentVerificationFailedError(PaymentReconciliationError):
    """Gateway payment status could not be fetched"""

    def __init__(self, order_id: Optional[str] = None, cause: Optional[BaseException] = None):
        super().__init__(
            "Payment verification failed",
            ErrorCode.PAYMENT_VERIFICATION_FAILED,
            order_id,
            cause,
        )


__all__ = [
    'ErrorCode',
    'BaseAppException',

    # General exceptions
    'InvalidInputError',
    'ResourceNotFoundError',
    'StoreUnavailableError',

    # Business logic exceptions
    'NoTableAvailableError',
    'InvalidStatusError',
    'PaymentAlreadyConfirmedError',

    # Payment exceptions
    'InvalidOrderFormatError',
    'InvalidWebhookSignatureError',
    'PaymentGatewayError',
    'GatewayTransientError',
    'GatewayRequestRejectedError',
    'PaymentReconciliationError',
    'PaymentCreationFailedError',
    'PaymentVerificationFailedError',
]
