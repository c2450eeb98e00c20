"""
API v1 Router - Main Entry Point
Aggregates all v1 API endpoints for the dine-in coordination service
"""
from fastapi import APIRouter

from app.api.v1 import bookings, orders, payments, reports

# Create main API v1 router with proper configuration
router = APIRouter(
    responses={
        400: {"description": "Bad Request"},
        404: {"description": "Not Found"},
        409: {"description": "Conflict"},
        502: {"description": "Payment Gateway Failure"},
        503: {"description": "Store Unavailable"},
    }
)

router.include_router(bookings.router, tags=["Table Bookings"])
router.include_router(orders.router, tags=["Orders"])
router.include_router(payments.router, tags=["Payments"])
router.include_router(reports.router, tags=["Reports"])

__all__ = ["router"]
