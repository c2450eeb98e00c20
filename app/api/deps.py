# app/api/deps.py
"""
Request-scoped dependencies.

Everything long-lived (settings, session factory, broadcaster, payment
gateway, retry policy) lives on ``app.state`` and is built once by
``create_app``; services are built per request around a fresh session.

Example usage in a router:
    from fastapi import Depends, APIRouter
    from app.api import deps

    @router.get("/")
    def list_orders(service: OrderService = Depends(deps.get_order_service)):
        return service.list_orders()
"""

from typing import Generator

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from app.config.settings import Settings
from app.core.events import Broadcaster
from app.db.session import get_db as _session_scope
from app.services.booking import AvailabilityService, BookingService
from app.services.order import OrderService
from app.services.payment import PaymentService


# --- Application state ---------------------------------------------------------

def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_broadcaster(request: Request) -> Broadcaster:
    return request.app.state.broadcaster


def get_db(request: Request) -> Generator[Session, None, None]:
    yield from _session_scope(request.app.state.session_factory)


# --- Services ------------------------------------------------------------------

def get_availability_service(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> AvailabilityService:
    return AvailabilityService(db, settings)


def get_booking_service(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    broadcaster: Broadcaster = Depends(get_broadcaster),
) -> BookingService:
    return BookingService(db, settings, broadcaster)


def get_order_service(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    broadcaster: Broadcaster = Depends(get_broadcaster),
) -> OrderService:
    return OrderService(db, settings, broadcaster)


def get_payment_service(
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    broadcaster: Broadcaster = Depends(get_broadcaster),
) -> PaymentService:
    return PaymentService(
        db,
        request.app.state.payment_gateway,
        settings=settings,
        broadcaster=broadcaster,
        retry_policy=request.app.state.retry_policy,
    )
