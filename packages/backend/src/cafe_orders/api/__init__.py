"""API route aggregation.

All routers registered here get mounted in main.py. Staff routes are
protected at the include_router level; customer routes are open.
"""

from fastapi import APIRouter, Depends

from cafe_orders.api.health import router as health_router
from cafe_orders.api.menu import router as menu_router
from cafe_orders.api.orders import router as orders_router
from cafe_orders.api.staff import router as staff_router
from cafe_orders.auth.dependencies import require_staff

api_router = APIRouter(prefix="/api/v1")

# Open routes
api_router.include_router(health_router, tags=["health"])
api_router.include_router(menu_router, tags=["menu"])
api_router.include_router(orders_router, tags=["orders"])

# Staff routes — require a valid staff token
api_router.include_router(
    staff_router, tags=["staff"], dependencies=[Depends(require_staff)]
)
