"""
Validation utilities for bookings, orders and payment requests
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional

from app.core.exceptions import InvalidInputError


class ValidationResult:
    """Validation result container"""

    def __init__(self, is_valid: bool = True, errors: List[str] = None):
        self.is_valid = is_valid
        self.errors = errors or []
        self.field_errors: Dict[str, List[str]] = {}

    def add_error(self, error: str, field: Optional[str] = None):
        """Add validation error"""
        self.is_valid = False
        self.errors.append(error)
        if field:
            self.field_errors.setdefault(field, []).append(error)

    def raise_if_invalid(self, message: str = "Invalid input"):
        """Raise InvalidInputError carrying the collected field errors"""
        if not self.is_valid:
            raise InvalidInputError(
                f"{message}: {', '.join(self.errors)}",
                field_errors=self.field_errors or None,
            )

    def __bool__(self):
        """Allow boolean evaluation"""
        return self.is_valid

    def __str__(self):
        """String representation"""
        if self.is_valid:
            return "Validation passed"
        return f"Validation failed: {', '.join(self.errors)}"


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False


class RequiredFieldsValidator:
    """Presence checks for request payloads"""

    @classmethod
    def validate(cls, data: Dict[str, Any], fields: Iterable[str]) -> ValidationResult:
        result = ValidationResult()
        for field in fields:
            if _is_blank(data.get(field)):
                result.add_error(f"{field} is required", field)
        return result


class OrderItemsValidator:
    """Checks for an order's line items and amount"""

    @classmethod
    def validate(cls, items: Any, amount: Any) -> ValidationResult:
        result = ValidationResult()

        if not isinstance(items, list) or not items:
            result.add_error("items must be a non-empty list", "items")
        else:
            for index, item in enumerate(items):
                cls._validate_item(result, index, item)

        total = parse_amount(amount)
        if total is None or total <= 0:
            result.add_error("amount must be greater than zero", "amount")

        return result

    @staticmethod
    def _validate_item(result: ValidationResult, index: int, item: Any):
        field = f"items[{index}]"
        if not isinstance(item, dict):
            result.add_error(f"{field} must be an object", field)
            return
        if _is_blank(item.get('name')):
            result.add_error(f"{field}.name is required", field)
        quantity = item.get('quantity')
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            result.add_error(f"{field}.quantity must be a positive integer", field)
        price = parse_amount(item_unit_price(item))
        if price is None or price < 0:
            result.add_error(f"{field}.unit_price must be a non-negative number", field)


class PaymentRequestValidator:
    """
    Validation of a payment session request before it is sent to the
    gateway.

    The gateway needs a positive amount, customer details and the
    return/notify URLs it redirects and calls back on.
    """

    REQUIRED_META_URLS = ('return_url', 'notify_url')

    @classmethod
    def validate(cls, payload: Dict[str, Any]) -> ValidationResult:
        result = ValidationResult()

        amount = parse_amount(payload.get('order_amount'))
        if amount is None or amount <= 0:
            result.add_error("order_amount must be greater than zero", 'order_amount')

        customer_details = payload.get('customer_details')
        if not isinstance(customer_details, dict) or not customer_details:
            result.add_error("customer_details is required", 'customer_details')

        order_meta = payload.get('order_meta')
        if not isinstance(order_meta, dict):
            result.add_error("order_meta is required", 'order_meta')
        else:
            for key in cls.REQUIRED_META_URLS:
                if _is_blank(order_meta.get(key)):
                    result.add_error(f"order_meta.{key} is required", 'order_meta')

        return result


def parse_amount(value: Any) -> Optional[Decimal]:
    """Read a monetary amount; None when it is not a finite number"""
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite():
        return None
    return amount


def item_unit_price(item: Dict[str, Any]) -> Any:
    """Unit price of an order line; ``price`` is the older spelling"""
    value = item.get('unit_price')
    return item.get('price') if value is None else value


def normalize_item(item: Dict[str, Any]) -> Dict[str, Any]:
    """Copy of an order line with its price under ``unit_price``"""
    line = {key: value for key, value in item.items() if key != 'price'}
    line['unit_price'] = item_unit_price(item)
    return line


__all__ = [
    'ValidationResult',
    'RequiredFieldsValidator',
    'OrderItemsValidator',
    'PaymentRequestValidator',
    'item_unit_price',
    'normalize_item',
    'parse_amount',
]
