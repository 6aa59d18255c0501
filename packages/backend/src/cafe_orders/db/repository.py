"""Document-style access to orders and menu items.

OrderRepository exposes the small CRUD surface the order service needs
(insert, find_by_id, find_many, update_by_id, delete_by_id). MenuLookup is
the read-only window onto menu items.

Any database error rolls the session back. Connection-level failures are
then translated to StoreUnavailable; the caller decides whether to retry.
"""

from contextlib import asynccontextmanager
from typing import Any, Iterable, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.exc import InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cafe_orders.db.models import MenuItem, Order
from cafe_orders.services.errors import StoreUnavailable

logger = structlog.get_logger()


@asynccontextmanager
async def _store_errors(db: AsyncSession, operation: str):
    """Roll back on database errors; connection failures become StoreUnavailable."""
    try:
        yield
    except (OperationalError, InterfaceError, OSError) as e:
        logger.error("store.unavailable", operation=operation, error=str(e))
        try:
            await db.rollback()
        except (SQLAlchemyError, OSError) as rollback_error:
            logger.warning("store.rollback_failed", operation=operation,
                           error=str(rollback_error))
        raise StoreUnavailable("Order store is unavailable") from e
    except SQLAlchemyError as e:
        logger.error("store.error", operation=operation, error=str(e))
        await db.rollback()
        raise


class OrderRepository:
    """Order records backed by the orders table."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def insert(self, **fields: Any) -> Order:
        async with _store_errors(self.db, "insert"):
            order = Order(**fields)
            self.db.add(order)
            await self.db.commit()
            return order

    async def find_by_id(self, order_id: str) -> Optional[Order]:
        async with _store_errors(self.db, "find_by_id"):
            return await self.db.get(Order, order_id)

    async def find_many(self, customer_name: Optional[str] = None) -> list[Order]:
        """All orders, newest first, optionally for one customer."""
        query = select(Order).order_by(Order.created_at.desc())
        if customer_name is not None:
            query = query.where(Order.customer_name == customer_name)
        async with _store_errors(self.db, "find_many"):
            result = await self.db.execute(query)
            return list(result.scalars().all())

    async def update_by_id(
        self, order_id: str, patch: dict[str, Any]
    ) -> Optional[Order]:
        """Apply patch to one order. Returns None if it doesn't exist.

        Concurrent updates to the same order are last-write-wins.
        """
        async with _store_errors(self.db, "update_by_id"):
            order = await self.db.get(Order, order_id)
            if order is None:
                return None
            for field, value in patch.items():
                setattr(order, field, value)
            await self.db.commit()
            return order

    async def delete_by_id(self, order_id: str) -> Optional[Order]:
        async with _store_errors(self.db, "delete_by_id"):
            order = await self.db.get(Order, order_id)
            if order is None:
                return None
            await self.db.delete(order)
            await self.db.commit()
            return order


class MenuLookup:
    """Read-only menu item access."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_ids(self, ids: Iterable[str]) -> dict[str, MenuItem]:
        """Resolve ids to menu items. Unknown ids are simply absent."""
        wanted = list(dict.fromkeys(ids))
        if not wanted:
            return {}
        async with _store_errors(self.db, "menu.find_by_ids"):
            result = await self.db.execute(
                select(MenuItem).where(MenuItem.id.in_(wanted))
            )
            return {item.id: item for item in result.scalars().all()}

    async def list_items(self, ids: Optional[list[str]] = None) -> list[MenuItem]:
        query = select(MenuItem).order_by(MenuItem.created_at.desc())
        if ids:
            query = query.where(MenuItem.id.in_(ids))
        async with _store_errors(self.db, "menu.list_items"):
            result = await self.db.execute(query)
            return list(result.scalars().all())
