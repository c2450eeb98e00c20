# app/api/v1/orders.py
"""Order endpoints."""

from fastapi import APIRouter, Depends, Path, status

from app.api import deps
from app.schemas.order import OrderCreateRequest, OrderStatusUpdateRequest
from app.services.order import OrderService

router = APIRouter(prefix="/orders")


@router.get("")
def list_orders(service: OrderService = Depends(deps.get_order_service)):
    return service.list_orders()


@router.get("/table/{table_number}")
def list_orders_by_table(
    table_number: int = Path(..., ge=1),
    service: OrderService = Depends(deps.get_order_service),
):
    return service.list_by_table(table_number)


@router.get("/status/{order_status}")
def list_orders_by_status(
    order_status: str,
    service: OrderService = Depends(deps.get_order_service),
):
    return service.list_by_status(order_status)


@router.get("/{order_id}")
def get_order(order_id: str, service: OrderService = Depends(deps.get_order_service)):
    return service.get_order(order_id)


@router.post("", status_code=status.HTTP_201_CREATED)
def create_order(
    payload: OrderCreateRequest,
    service: OrderService = Depends(deps.get_order_service),
):
    return service.create_order(payload.to_payload())


@router.put("/{order_id}/status")
def update_order_status(
    order_id: str,
    payload: OrderStatusUpdateRequest,
    service: OrderService = Depends(deps.get_order_service),
):
    return service.update_status(order_id, payload.status)


@router.delete("/{order_id}")
def cancel_order(order_id: str, service: OrderService = Depends(deps.get_order_service)):
    order = service.cancel_order(order_id)
    return {"success": True, "order": order}
