"""Staff order routes — lifecycle actions on existing orders.

Mounted under /staff with require_staff applied at the router level.
"""

from fastapi import APIRouter, Depends, HTTPException

from cafe_orders.api.orders import get_order_service
from cafe_orders.schemas.order import (
    EstimatedTimeSet,
    OrderDeleted,
    OrderRead,
    StatusChange,
)
from cafe_orders.services.errors import OrderError
from cafe_orders.services.order_service import OrderService

router = APIRouter(prefix="/staff")


@router.get("/orders", response_model=list[OrderRead])
async def list_all_orders(svc: OrderService = Depends(get_order_service)):
    """Every order, newest first."""
    try:
        return await svc.list_orders()
    except OrderError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.put("/orders/{order_id}/time", response_model=OrderRead)
async def set_estimated_time(
    order_id: str,
    body: EstimatedTimeSet,
    svc: OrderService = Depends(get_order_service),
):
    """Set the preparation estimate. Always moves the order to 'preparing'."""
    try:
        return await svc.set_estimated_time(order_id, body.minutes)
    except OrderError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.put("/orders/{order_id}/status", response_model=OrderRead)
async def set_status(
    order_id: str,
    body: StatusChange,
    svc: OrderService = Depends(get_order_service),
):
    """Move the order to preparing, done or canceled.

    400 for any other target; leaving 'preparing' clears the estimate.
    """
    try:
        return await svc.set_status(order_id, body.status)
    except OrderError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.delete("/orders/{order_id}", response_model=OrderDeleted)
async def delete_order(
    order_id: str,
    svc: OrderService = Depends(get_order_service),
):
    """Permanently remove an order."""
    try:
        return await svc.delete_order(order_id)
    except OrderError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
