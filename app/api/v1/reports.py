# app/api/v1/reports.py
"""Operational reports."""

from typing import Dict

from fastapi import APIRouter, Depends

from app.api import deps
from app.services.order import OrderService

router = APIRouter(prefix="/reports")


@router.get("/daily-sales")
def daily_sales(service: OrderService = Depends(deps.get_order_service)) -> Dict[str, int]:
    """Units sold today per item name."""
    return service.daily_sales()
