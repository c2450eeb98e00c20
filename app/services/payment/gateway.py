"""
Payment gateway client.

:class:`PaymentGateway` is the seam the reconciliation service talks to;
:class:`CashfreeGateway` implements it against the Cashfree PG REST API
over httpx. Transport failures, timeouts, HTTP 429 and 5xx are raised as
:class:`GatewayTransientError` so the retry policy can repeat them; any
other 4xx is a :class:`GatewayRequestRejectedError`.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx

from app.config.settings import Settings
from app.core.exceptions import GatewayRequestRejectedError, GatewayTransientError
from app.core.logging import get_logger

logger = get_logger(__name__)


class PaymentGateway(ABC):
    """Remote payment service: create a session, fetch an order's status."""

    @abstractmethod
    def create_order(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create a gateway order.

        Returns:
            ``{"session_id", "gateway_order_id", "raw"}``
        """

    @abstractmethod
    def fetch_order(self, gateway_order_id: str) -> Dict[str, Any]:
        """
        Fetch a gateway order.

        Returns:
            ``{"status", "gateway_order_id", "raw"}``
        """

    def close(self) -> None:
        """Release network resources."""


class CashfreeGateway(PaymentGateway):
    """Cashfree PG client (``/pg/orders``)"""

    BASE_URLS = {
        "sandbox": "https://sandbox.cashfree.com",
        "production": "https://api.cashfree.com",
    }

    def __init__(
        self,
        app_id: Optional[str],
        secret_key: Optional[str],
        environment: str = "sandbox",
        api_version: str = "2023-08-01",
        timeout_seconds: float = 5.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        if environment not in self.BASE_URLS:
            raise ValueError(f"Unknown Cashfree environment: {environment}")

        headers = {
            "x-api-version": api_version,
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        if app_id and secret_key:
            headers["x-client-id"] = app_id
            headers["x-client-secret"] = secret_key
        else:
            logger.warning("Cashfree credentials are not configured; gateway calls will be rejected")

        self.environment = environment
        self._client = httpx.Client(
            base_url=self.BASE_URLS[environment],
            headers=headers,
            timeout=timeout_seconds,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings, transport: Optional[httpx.BaseTransport] = None) -> "CashfreeGateway":
        return cls(
            app_id=settings.CASHFREE_APP_ID,
            secret_key=settings.get_cashfree_secret(),
            environment=settings.CASHFREE_ENV,
            api_version=settings.CASHFREE_API_VERSION,
            timeout_seconds=settings.PAYMENT_TIMEOUT_SECONDS,
            transport=transport,
        )

    def _request(self, method: str, path: str, operation: str, json: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            response = self._client.request(method, path, json=json)
        except httpx.TimeoutException as e:
            raise GatewayTransientError(f"Payment gateway timed out: {e}", operation=operation) from e
        except httpx.TransportError as e:
            raise GatewayTransientError(f"Payment gateway unreachable: {e}", operation=operation) from e

        status = response.status_code
        if status == 429 or status >= 500:
            raise GatewayTransientError(
                f"Payment gateway returned {status}",
                operation=operation,
                gateway_status=status,
            )
        if status >= 400:
            raise GatewayRequestRejectedError(
                f"Payment gateway rejected {operation}: {self._error_message(response)}",
                operation=operation,
                gateway_status=status,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise GatewayTransientError(
                "Payment gateway returned a non-JSON body",
                operation=operation,
                gateway_status=status,
            ) from e
        if not isinstance(body, dict):
            raise GatewayTransientError(
                "Payment gateway returned an unexpected body",
                operation=operation,
                gateway_status=status,
            )
        return body

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text[:200]
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return response.text[:200]

    def create_order(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        body = self._request("POST", "/pg/orders", "create_order", json=payload)
        session_id = body.get("payment_session_id")
        if not session_id:
            raise GatewayRequestRejectedError(
                "Payment gateway response has no payment_session_id",
                operation="create_order",
            )
        return {
            "session_id": session_id,
            "gateway_order_id": body.get("order_id", payload.get("order_id")),
            "raw": body,
        }

    def fetch_order(self, gateway_order_id: str) -> Dict[str, Any]:
        body = self._request("GET", f"/pg/orders/{gateway_order_id}", "fetch_order")
        return {
            "status": body.get("order_status"),
            "gateway_order_id": body.get("order_id", gateway_order_id),
            "raw": body,
        }

    def close(self) -> None:
        self._client.close()
