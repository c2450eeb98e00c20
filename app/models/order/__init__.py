"""
Order models package.
"""

from app.models.order.order import Order, decode_items, encode_items

__all__ = [
    "Order",
    "decode_items",
    "encode_items",
]
