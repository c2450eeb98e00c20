"""
Order model.

Items are stored as JSON text and decoded on every read; a corrupt or
missing blob reads as an empty list. ``status`` is the kitchen axis and
``payment_status`` the raw gateway axis.
"""

import json
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import CheckConstraint, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base.base_model import TimestampModel
from app.models.base.enums import OrderStatus, PaymentMethod

__all__ = [
    "Order",
    "decode_items",
    "encode_items",
]


def encode_items(items: List[Dict[str, Any]]) -> str:
    return json.dumps(items, default=str)


def decode_items(raw: Optional[str]) -> List[Dict[str, Any]]:
    """Deserialize a stored item list, falling back to ``[]``"""
    if not raw:
        return []
    try:
        items = json.loads(raw)
    except (TypeError, ValueError):
        return []
    return items if isinstance(items, list) else []


class Order(TimestampModel):
    """
    Food order placed from a table.

    Attributes:
        order_id: ``ORDER-{epoch_ms}-{table}`` identifier
        table_number: Ordering table
        customer_name: Guest name
        items: Serialized line items
        total_price: Caller-computed total
        payment_method: cash or online
        status: Kitchen status
        payment_status: Raw gateway status, written only by payment reconciliation
        cf_payment_id: Gateway payment reference from the webhook
    """

    __tablename__ = "orders"
    __table_args__ = (
        CheckConstraint("table_number >= 1", name="ck_orders_table_positive"),
        Index("ix_orders_table_created", "table_number", "created_at"),
    )

    order_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    table_number: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    customer_phone: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    items: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    total_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    payment_method: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=PaymentMethod.CASH.value,
    )
    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=OrderStatus.PENDING.value,
        index=True,
    )
    payment_status: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    cf_payment_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    @property
    def item_list(self) -> List[Dict[str, Any]]:
        return decode_items(self.items)

    def to_dict(self, exclude: Optional[List[str]] = None) -> Dict[str, Any]:
        data = super().to_dict(exclude)
        if "items" in data:
            data["items"] = self.item_list
        return data
