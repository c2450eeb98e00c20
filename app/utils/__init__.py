"""
Utility package initialization and exports
"""

# DateTime utilities
from .datetime_utils import (
    DEFAULT_DURATION_MINUTES,
    coerce_duration,
    day_bounds,
    from_storage,
    isoformat_utc,
    local_midnight,
    overlaps,
    parse_timestamp,
    to_storage,
    utcnow,
)

# Identifiers
from .identifiers import (
    BOOKING_PREFIX,
    ORDER_PREFIX,
    OrderReference,
    gateway_order_id_for,
    generate_booking_id,
    generate_order_id,
    parse_order_reference,
)

# Validators
from .validators import (
    ValidationResult,
    RequiredFieldsValidator,
    OrderItemsValidator,
    PaymentRequestValidator,
)

__all__ = [
    # DateTime
    'DEFAULT_DURATION_MINUTES',
    'coerce_duration',
    'day_bounds',
    'from_storage',
    'isoformat_utc',
    'local_midnight',
    'overlaps',
    'parse_timestamp',
    'to_storage',
    'utcnow',

    # Identifiers
    'BOOKING_PREFIX',
    'ORDER_PREFIX',
    'OrderReference',
    'gateway_order_id_for',
    'generate_booking_id',
    'generate_order_id',
    'parse_order_reference',

    # Validators
    'ValidationResult',
    'RequiredFieldsValidator',
    'OrderItemsValidator',
    'PaymentRequestValidator',
]
