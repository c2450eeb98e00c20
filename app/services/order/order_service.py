"""
Order lifecycle service.

Status updates accept only a closed set of values; anything else is
rejected before the store is touched. Every mutation is broadcast to the
global audience, the ordering table and the admin room.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.config.settings import Settings
from app.core.events import ADMIN_TOPIC, GLOBAL_TOPIC, Broadcaster, table_topic
from app.core.exceptions import InvalidInputError, InvalidStatusError
from app.core.logging import log_execution_time
from app.models.base.enums import ORDER_STATUS_UPDATE_WHITELIST, OrderStatus, PaymentMethod
from app.models.order import Order, decode_items, encode_items
from app.repositories.order import OrderRepository
from app.services.base import BaseService
from app.utils.datetime_utils import day_bounds, to_storage, utcnow
from app.utils.identifiers import generate_order_id
from app.utils.validators import (
    OrderItemsValidator,
    RequiredFieldsValidator,
    normalize_item,
    parse_amount,
)


def _deliveries(table_number: int, event: str):
    return [
        (GLOBAL_TOPIC, event),
        (table_topic(table_number), f"table_{event}"),
        (ADMIN_TOPIC, f"admin_{event}"),
    ]


def _units(line: Dict[str, Any]) -> int:
    # quantity_per_serve is set on combo lines
    for key in ('quantity_per_serve', 'quantity'):
        value = line.get(key)
        if isinstance(value, int) and not isinstance(value, bool) and value > 0:
            return value
    return 1


class OrderService(BaseService):
    """Orders placed from tables"""

    def __init__(
        self,
        db_session: Session,
        settings: Optional[Settings] = None,
        broadcaster: Optional[Broadcaster] = None,
    ):
        super().__init__(db_session, settings, broadcaster)
        self.orders = OrderRepository(db_session)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def list_orders(self) -> List[Dict[str, Any]]:
        return [order.to_dict() for order in self.orders.list_all()]

    def get_order(self, order_id: str) -> Dict[str, Any]:
        return self.orders.get_by_id(order_id).to_dict()

    def list_by_table(self, table_number: int) -> List[Dict[str, Any]]:
        return [order.to_dict() for order in self.orders.list_by_table(table_number)]

    def list_by_status(self, status: str) -> List[Dict[str, Any]]:
        return [order.to_dict() for order in self.orders.list_by_status(status)]

    # -------------------------------------------------------------------------
    # Reports
    # -------------------------------------------------------------------------

    def daily_sales(self, now: Optional[datetime] = None) -> Dict[str, int]:
        """
        Units sold per item name over the restaurant-local day containing
        ``now`` (default: the current moment).

        Every order created that day counts, whatever its status. A line
        without a name is counted under ``Unknown``, one without a usable
        quantity as a single unit, and an unreadable items blob counts as
        no lines at all.
        """
        start, end = day_bounds(now or utcnow(), self.settings.TIMEZONE)
        sales: Dict[str, int] = {}
        for order in self.orders.list_created_between(to_storage(start), to_storage(end)):
            for item in decode_items(order.items):
                line = item if isinstance(item, dict) else {}
                name = str(line.get('name') or "Unknown")
                sales[name] = sales.get(name, 0) + _units(line)
        return sales

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    @log_execution_time("create_order")
    def create_order(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Persist a new order.

        Cash orders start Pending, online orders Awaiting Payment. The
        caller-computed ``amount`` is stored as the total as given.

        Raises:
            InvalidInputError: missing name, bad table, items or amount
        """
        if not isinstance(data, dict):
            raise InvalidInputError("Order must be an object")

        result = RequiredFieldsValidator.validate(data, ('customer_name', 'table_number'))
        items_result = OrderItemsValidator.validate(data.get('items'), data.get('amount'))
        for field, errors in items_result.field_errors.items():
            for error in errors:
                result.add_error(error, field)

        table_number = data.get('table_number')
        if table_number is not None and (
            isinstance(table_number, bool) or not isinstance(table_number, int) or table_number < 1
        ):
            result.add_error("table_number must be a positive integer", 'table_number')

        payment_method = str(data.get('payment_method') or PaymentMethod.CASH.value).strip().lower()
        if payment_method not in (PaymentMethod.CASH.value, PaymentMethod.ONLINE.value):
            result.add_error("payment_method must be cash or online", 'payment_method')

        result.raise_if_invalid("Invalid order")

        status = (
            OrderStatus.AWAITING_PAYMENT.value
            if payment_method == PaymentMethod.ONLINE.value
            else OrderStatus.PENDING.value
        )

        with self.transaction():
            order = self.orders.create(
                Order(
                    order_id=generate_order_id(table_number),
                    table_number=table_number,
                    customer_name=str(data['customer_name']).strip(),
                    customer_email=data.get('customer_email'),
                    customer_phone=data.get('customer_phone'),
                    items=encode_items([normalize_item(item) for item in data['items']]),
                    total_price=parse_amount(data['amount']).quantize(Decimal("0.01")),
                    payment_method=payment_method,
                    status=status,
                    payment_status=None,
                )
            )

        record = order.to_dict()
        self._logger.info(
            f"Order {order.order_id} created for table {table_number}",
            extra={'order_id': order.order_id, 'table_number': table_number, 'status': status},
        )
        self._publish(_deliveries(table_number, "order_update"), record)
        return record

    def update_status(self, order_id: str, status: Any) -> Dict[str, Any]:
        """
        Set an order's kitchen status.

        Raises:
            InvalidStatusError: value outside the allowed set (store untouched)
            ResourceNotFoundError: unknown order
        """
        if status not in ORDER_STATUS_UPDATE_WHITELIST:
            raise InvalidStatusError(status=status, allowed=list(ORDER_STATUS_UPDATE_WHITELIST))

        with self.transaction():
            order = self.orders.get_by_id(order_id)
            self.orders.set_status(order, status)

        record = order.to_dict()
        self._logger.info(
            f"Order {order_id} status set to {status}",
            extra={'order_id': order_id, 'table_number': order.table_number, 'status': status},
        )
        self._publish(_deliveries(order.table_number, "order_status_update"), record)
        return record

    def cancel_order(self, order_id: str) -> Dict[str, Any]:
        """
        Mark an order Cancelled; the row is kept.

        Raises:
            ResourceNotFoundError: unknown order
        """
        with self.transaction():
            order = self.orders.get_by_id(order_id)
            self.orders.set_status(order, OrderStatus.CANCELLED.value)

        record = order.to_dict()
        self._logger.info(f"Order {order_id} cancelled", extra={'order_id': order_id})
        self._publish(_deliveries(order.table_number, "order_cancelled"), record)
        return record
