"""
Payment reconciliation service.

Keeps an order's ``payment_status`` in line with the gateway: creates
payment sessions, applies webhooks and verifies on demand. Webhooks and
direct calls are applied last-write-wins; a late failure webhook after a
successful one downgrades the order.
"""

from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from app.config.settings import Settings
from app.core.events import ADMIN_TOPIC, GLOBAL_TOPIC, Broadcaster, table_topic
from app.core.exceptions import (
    InvalidInputError,
    InvalidWebhookSignatureError,
    PaymentAlreadyConfirmedError,
    PaymentCreationFailedError,
    PaymentGatewayError,
    PaymentVerificationFailedError,
)
from app.core.logging import log_execution_time
from app.models.base.enums import PAYMENT_SUCCESS_STATUS, GatewayOrderStatus, OrderStatus
from app.models.order import Order
from app.repositories.order import OrderRepository
from app.services.base import BaseService
from app.services.payment.gateway import PaymentGateway
from app.services.payment.retry_policy import RetryPolicy
from app.services.payment.webhook import verify_signature
from app.utils.identifiers import gateway_order_id_for, parse_order_reference
from app.utils.validators import PaymentRequestValidator, RequiredFieldsValidator, parse_amount

SESSION_REQUIRED_FIELDS = ('order_id', 'order_amount', 'order_currency', 'customer_details', 'order_meta')
FORCED_PAYMENT_METHODS = "upi"


class PaymentService(BaseService):
    """Payment sessions, webhooks and verification"""

    def __init__(
        self,
        db_session: Session,
        gateway: PaymentGateway,
        settings: Optional[Settings] = None,
        broadcaster: Optional[Broadcaster] = None,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        super().__init__(db_session, settings, broadcaster)
        self.gateway = gateway
        self.retry_policy = retry_policy or RetryPolicy.from_settings(self.settings)
        self.orders = OrderRepository(db_session)

    @property
    def gateway_prefix(self) -> str:
        return self.settings.GATEWAY_ORDER_PREFIX

    def _local_order_id(self, order_id: str) -> str:
        """Accept either the local or the gateway form of an order id."""
        if isinstance(order_id, str) and order_id.startswith(f"{self.gateway_prefix}-"):
            return parse_order_reference(order_id, self.gateway_prefix).local_order_id
        return order_id

    # -------------------------------------------------------------------------
    # Session creation
    # -------------------------------------------------------------------------

    @log_execution_time("create_payment_session")
    def create_session(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create a gateway payment session for an unpaid order.

        Returns:
            ``{session_id, order_id, gateway_order_id, amount}``

        Raises:
            InvalidInputError: missing fields or invalid amount/customer/meta
            InvalidOrderFormatError: ``order_id`` is not an order identifier
            ResourceNotFoundError: unknown order
            PaymentAlreadyConfirmedError: the order is already paid
            PaymentCreationFailedError: gateway failed after retries
        """
        if not isinstance(payload, dict):
            raise InvalidInputError("Payment request must be an object")

        RequiredFieldsValidator.validate(payload, SESSION_REQUIRED_FIELDS).raise_if_invalid(
            "Missing payment fields"
        )
        PaymentRequestValidator.validate(payload).raise_if_invalid("Invalid payment request")

        currency = str(payload['order_currency']).strip().upper()
        if currency != self.settings.PAYMENT_CURRENCY.upper():
            raise InvalidInputError(
                f"order_currency must be {self.settings.PAYMENT_CURRENCY}",
                field_errors={'order_currency': ["Currency conversion is not supported"]},
            )

        order_id = payload['order_id']
        gateway_order_id = gateway_order_id_for(order_id, self.gateway_prefix)

        order = self.orders.get_by_id(order_id)
        if order.payment_status == PAYMENT_SUCCESS_STATUS:
            raise PaymentAlreadyConfirmedError(order_id)

        amount = float(parse_amount(payload['order_amount']))
        request = {
            'order_id': gateway_order_id,
            'order_amount': amount,
            'order_currency': currency,
            'customer_details': payload['customer_details'],
            'order_meta': {**payload['order_meta'], 'payment_methods': FORCED_PAYMENT_METHODS},
        }
        if payload.get('order_note'):
            request['order_note'] = payload['order_note']

        try:
            result = self.retry_policy.run(
                lambda: self.gateway.create_order(request),
                "create_payment_session",
            )
        except PaymentGatewayError as e:
            self._logger.error(
                f"Payment session creation failed for {order_id}: {e}",
                extra={'order_id': order_id},
            )
            raise PaymentCreationFailedError(order_id=order_id, cause=e) from e

        # A PAID webhook may have landed while the gateway was being called
        with self.transaction():
            activated = self.orders.mark_session_active(
                order_id, PAYMENT_SUCCESS_STATUS, GatewayOrderStatus.ACTIVE.value
            )
        if not activated:
            self._logger.info(
                f"Order {order_id} was paid during session creation, status kept",
                extra={'order_id': order_id},
            )

        self._logger.info(
            f"Payment session created for {order_id}",
            extra={'order_id': order_id, 'gateway_order_id': gateway_order_id},
        )
        return {
            'session_id': result['session_id'],
            'order_id': order_id,
            'gateway_order_id': gateway_order_id,
            'amount': amount,
        }

    # -------------------------------------------------------------------------
    # Webhook
    # -------------------------------------------------------------------------

    def _check_signature(self, raw_body: bytes, signature: Optional[str], timestamp: Optional[str]) -> None:
        if not self.settings.PAYMENT_WEBHOOK_VERIFY:
            return
        if not signature or not timestamp:
            raise InvalidWebhookSignatureError("Missing webhook signature")
        if not verify_signature(self.settings.get_cashfree_secret(), signature, timestamp, raw_body):
            raise InvalidWebhookSignatureError()

    @log_execution_time("handle_payment_webhook")
    def handle_webhook(
        self,
        payload: Dict[str, Any],
        raw_body: bytes = b"",
        signature: Optional[str] = None,
        timestamp: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Apply a gateway callback to its order and broadcast the result.

        Re-delivering the same payload leaves the row as it was after the
        first delivery.

        Raises:
            InvalidWebhookSignatureError: verification on and signature bad
            InvalidOrderFormatError: gateway order id does not decode
            InvalidInputError: no order status in the payload
            ResourceNotFoundError: decoded order does not exist
        """
        self._check_signature(raw_body, signature, timestamp)

        if not isinstance(payload, dict):
            raise InvalidInputError("Webhook payload must be an object")

        reference = parse_order_reference(payload.get('order_id'), self.gateway_prefix)
        payment_status = payload.get('order_status')
        if not isinstance(payment_status, str) or not payment_status.strip():
            raise InvalidInputError(
                "Webhook payload has no order_status",
                field_errors={'order_status': ["order_status is required"]},
            )
        payment_status = payment_status.strip()

        kitchen_status = (
            OrderStatus.PREPARING.value
            if payment_status == PAYMENT_SUCCESS_STATUS
            else OrderStatus.PAYMENT_FAILED.value
        )
        payment_id = payload.get('cf_payment_id')

        with self.transaction():
            order = self.orders.get_by_id(reference.local_order_id)
            self.orders.apply_payment(
                order,
                payment_status,
                status=kitchen_status,
                cf_payment_id=str(payment_id) if payment_id is not None else None,
            )

        self._logger.info(
            f"Order {order.order_id} updated from webhook: {payment_status}",
            extra={
                'order_id': order.order_id,
                'payment_status': payment_status,
                'table_number': reference.table_number,
            },
        )

        result = {
            'order_id': order.order_id,
            'gateway_order_id': reference.value,
            'status': payment_status,
            'payment_id': payment_id,
            'table_number': reference.table_number,
            'amount': payload.get('order_amount'),
            'order': order.to_dict(),
        }
        self._publish(
            [
                (GLOBAL_TOPIC, "payment_update"),
                (table_topic(reference.table_number), "table_payment_update"),
                (ADMIN_TOPIC, "admin_payment_update"),
            ],
            result,
        )
        return result

    # -------------------------------------------------------------------------
    # Verification
    # -------------------------------------------------------------------------

    @log_execution_time("verify_payment")
    def verify_payment(self, order_id: str) -> Dict[str, Any]:
        """
        Report an order's payment status.

        A locally confirmed payment is answered from the store without
        contacting the gateway; otherwise the gateway's live status is
        returned next to the stored order.

        Raises:
            ResourceNotFoundError: unknown order
            PaymentVerificationFailedError: gateway failed after retries
        """
        local_id = self._local_order_id(order_id)
        order: Order = self.orders.get_by_id(local_id)

        if order.payment_status == PAYMENT_SUCCESS_STATUS:
            return {
                'order_id': order.order_id,
                'status': order.payment_status,
                'source': 'local',
                'order': order.to_dict(),
            }

        gateway_order_id = gateway_order_id_for(order.order_id, self.gateway_prefix)
        try:
            result = self.retry_policy.run(
                lambda: self.gateway.fetch_order(gateway_order_id),
                "verify_payment",
            )
        except PaymentGatewayError as e:
            self._logger.error(
                f"Payment verification failed for {order.order_id}: {e}",
                extra={'order_id': order.order_id},
            )
            raise PaymentVerificationFailedError(order_id=order.order_id, cause=e) from e

        return {
            'order_id': order.order_id,
            'gateway_order_id': gateway_order_id,
            'status': result.get('status'),
            'source': 'gateway',
            'order': order.to_dict(),
        }
