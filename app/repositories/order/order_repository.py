"""
Order repository.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import or_, update
from sqlalchemy.orm import Session

from app.models.order import Order
from app.repositories.base.base_repository import BaseRepository


class OrderRepository(BaseRepository[Order]):
    """Queries over the ``orders`` collection, newest first."""

    resource_name = "Order"

    def __init__(self, db: Session):
        super().__init__(Order, db)

    def _newest_first(self):
        return [Order.created_at.desc(), Order.order_id.desc()]

    def list_all(self) -> List[Order]:
        return self.find_by_criteria(order_by=self._newest_first())

    def list_by_table(self, table_number: int) -> List[Order]:
        return self.find_by_criteria({"table_number": table_number}, order_by=self._newest_first())

    def list_by_status(self, status: str) -> List[Order]:
        return self.find_by_criteria({"status": status}, order_by=self._newest_first())

    def list_created_between(self, start: datetime, end: datetime) -> List[Order]:
        """Orders created inside ``[start, end)`` (naive UTC), oldest first."""
        return self.find_by_criteria(
            where=[Order.created_at >= start, Order.created_at < end],
            order_by=[Order.created_at.asc(), Order.order_id.asc()],
        )

    def set_status(self, order: Order, status: str) -> Order:
        return self.update(order, {"status": status})

    def apply_payment(
        self,
        order: Order,
        payment_status: str,
        status: Optional[str] = None,
        cf_payment_id: Optional[str] = None,
    ) -> Order:
        """Write the gateway axis, and the kitchen status derived from it."""
        data: Dict[str, Any] = {"payment_status": payment_status}
        if status is not None:
            data["status"] = status
        if cf_payment_id is not None:
            data["cf_payment_id"] = cf_payment_id
        return self.update(order, data)

    def mark_session_active(self, order_id: str, paid_status: str, active_status: str) -> bool:
        """
        Set ``payment_status`` to ``active_status`` unless the row is
        already ``paid_status``. The check runs inside the UPDATE so a
        webhook committed meanwhile is not overwritten.

        Returns:
            True when the row was changed
        """
        stmt = (
            update(Order)
            .where(Order.order_id == order_id)
            .where(or_(Order.payment_status.is_(None), Order.payment_status != paid_status))
            .values(payment_status=active_status)
            .execution_options(synchronize_session=False)
        )
        with self._store_operation("mark_session_active"):
            return self.db.execute(stmt).rowcount > 0
