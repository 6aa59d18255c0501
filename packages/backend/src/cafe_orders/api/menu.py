"""Read-only menu listing, used by the ordering UI to build a cart."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from cafe_orders.db.engine import get_db
from cafe_orders.db.repository import MenuLookup
from cafe_orders.schemas.menu import MenuItemRead
from cafe_orders.services.errors import OrderError

router = APIRouter()


@router.get("/menu", response_model=list[MenuItemRead])
async def list_menu(
    ids: Optional[str] = Query(None, description="Comma-separated ids to fetch"),
    db: AsyncSession = Depends(get_db),
):
    """Menu items, newest first. Pass ?ids=a,b to fetch specific items."""
    wanted = [i for i in (ids or "").split(",") if i] or None
    try:
        return await MenuLookup(db).list_items(ids=wanted)
    except OrderError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
