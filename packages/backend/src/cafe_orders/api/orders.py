"""Customer-facing order routes.

Routes translate HTTP to OrderService calls and OrderError subclasses to
HTTP errors (each error carries its own status code).
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from cafe_orders.db.engine import get_db
from cafe_orders.realtime.hub import BroadcastHub, get_hub
from cafe_orders.schemas.order import OrderCreate, OrderRead
from cafe_orders.services.errors import OrderError
from cafe_orders.services.order_service import OrderService

router = APIRouter()


def get_order_service(
    db: AsyncSession = Depends(get_db),
    hub: BroadcastHub = Depends(get_hub),
) -> OrderService:
    return OrderService(db, hub)


@router.post("/orders", response_model=OrderRead, status_code=201)
async def create_order(
    body: OrderCreate,
    svc: OrderService = Depends(get_order_service),
):
    """Place a new order. It starts in 'pending'."""
    try:
        return await svc.create_order(
            table_number=body.table_number,
            line_items=[li.model_dump() for li in body.line_items],
            total=body.total,
            customer_name=body.customer_name,
        )
    except OrderError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.get("/orders", response_model=list[OrderRead])
async def list_customer_orders(
    customer_name: str = Query(..., min_length=1, description="Whose orders to list"),
    svc: OrderService = Depends(get_order_service),
):
    """A customer's orders, newest first."""
    try:
        return await svc.list_orders(customer_name=customer_name)
    except OrderError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.get("/orders/{order_id}", response_model=OrderRead)
async def get_order(
    order_id: str,
    svc: OrderService = Depends(get_order_service),
):
    """Current state of one order (used by customers to poll status)."""
    try:
        return await svc.get_order(order_id)
    except OrderError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
