# app/api/v1/payments.py
"""Payment session, webhook and verification endpoints."""

import json
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request

from app.api import deps
from app.core.exceptions import InvalidInputError
from app.schemas.payment import PaymentInitiateRequest
from app.services.payment import PaymentService

router = APIRouter(prefix="/payments")


async def read_raw_body(request: Request) -> bytes:
    """Raw webhook body; the signature covers the exact bytes."""
    return await request.body()


@router.post("/initiate")
def initiate_payment(
    payload: PaymentInitiateRequest,
    service: PaymentService = Depends(deps.get_payment_service),
):
    return service.create_session(payload.to_payload())


@router.post("/webhook")
def payment_webhook(
    raw_body: bytes = Depends(read_raw_body),
    x_webhook_signature: Optional[str] = Header(None),
    x_webhook_timestamp: Optional[str] = Header(None),
    service: PaymentService = Depends(deps.get_payment_service),
):
    try:
        payload = json.loads(raw_body or b"{}")
    except ValueError as e:
        raise InvalidInputError("Webhook body is not valid JSON") from e

    return service.handle_webhook(
        payload,
        raw_body=raw_body,
        signature=x_webhook_signature,
        timestamp=x_webhook_timestamp,
    )


@router.get("/verify/{order_id}")
def verify_payment(order_id: str, service: PaymentService = Depends(deps.get_payment_service)):
    return service.verify_payment(order_id)
