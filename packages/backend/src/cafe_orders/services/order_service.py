"""Order service — order lifecycle and real-time propagation.

Every mutation follows the same path:
1. Validate input (shape, menu references, status target)
2. Persist through the repository (committed before anything else)
3. Resolve line items against live menu data for the response
4. Hand the resolved record to the broadcast hub (never awaited)

Lifecycle:
  pending → preparing → done | canceled

Creation always yields 'pending'. Staff move orders on with set_status
or set_estimated_time. done/canceled are meant to be terminal, but only
the target status is validated, and set_estimated_time forces
'preparing' from any state, including done/canceled.
"""

import math
from typing import Any, Optional, Sequence

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from cafe_orders.db.models import Order, utcnow
from cafe_orders.db.repository import MenuLookup, OrderRepository
from cafe_orders.events.types import NEW_ORDER, ORDER_DELETED, ORDER_UPDATE
from cafe_orders.realtime.hub import BroadcastHub
from cafe_orders.schemas.menu import MenuItemRead
from cafe_orders.schemas.order import LineItemRead, OrderRead
from cafe_orders.services.errors import (
    InvalidReference,
    InvalidStatus,
    NotFound,
    ValidationFailure,
)

logger = structlog.get_logger()


# ═══════════════════════════════════════════════════════════
# State Machine
# ═══════════════════════════════════════════════════════════

# 'pending' is creation-only.
SETTABLE_STATUSES = frozenset({"preparing", "done", "canceled"})


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        return False
    return math.isfinite(value)


def _normalize_line_items(line_items: Sequence[Any]) -> list[dict]:
    """Check line item shape and return plain {menu_item_id, quantity} dicts."""
    if not line_items:
        raise ValidationFailure("Order must contain at least one line item")

    normalized = []
    for position, item in enumerate(line_items):
        if hasattr(item, "model_dump"):
            item = item.model_dump()
        if not isinstance(item, dict):
            raise ValidationFailure(f"Line item {position}: expected an object")
        menu_item_id = item.get("menu_item_id")
        quantity = item.get("quantity")
        if not isinstance(menu_item_id, str) or not menu_item_id:
            raise ValidationFailure(f"Line item {position}: menu_item_id is required")
        if not _is_int(quantity) or quantity < 1:
            raise ValidationFailure(
                f"Line item {position}: quantity must be a positive integer"
            )
        normalized.append({"menu_item_id": menu_item_id, "quantity": quantity})
    return normalized


# ═══════════════════════════════════════════════════════════
# Service
# ═══════════════════════════════════════════════════════════


class OrderService:
    """Business logic for the order lifecycle.

    The broadcast hub is passed in rather than looked up, so tests and
    alternative transports can supply their own.
    """

    def __init__(self, db: AsyncSession, hub: BroadcastHub):
        self.orders = OrderRepository(db)
        self.menu = MenuLookup(db)
        self.hub = hub

    # ─── Create ──────────────────────────────────────────

    async def create_order(
        self,
        table_number: int,
        line_items: Sequence[Any],
        total: float,
        customer_name: Optional[str] = None,
    ) -> OrderRead:
        """Create a new order in 'pending' status.

        All referenced menu items must exist; otherwise nothing is stored.
        The declared total is trusted as long as it is a finite, non-negative
        number.

        Raises:
            ValidationFailure: malformed table number, line items or total
            InvalidReference: a menu item id does not resolve
        """
        if not _is_int(table_number) or table_number < 1:
            raise ValidationFailure("table_number must be a positive integer")
        if not _is_number(total) or total < 0:
            raise ValidationFailure("total must be a finite, non-negative number")
        items = _normalize_line_items(line_items)

        requested = list(dict.fromkeys(i["menu_item_id"] for i in items))
        found = await self.menu.find_by_ids(requested)
        if len(found) != len(requested):
            missing = [i for i in requested if i not in found]
            logger.info("order.invalid_reference", missing=missing)
            raise InvalidReference(missing)

        order = await self.orders.insert(
            table_number=table_number,
            line_items=items,
            total=float(total),
            customer_name=customer_name,
            status="pending",
            created_at=utcnow(),
        )
        record = self._resolve_one(order, found)
        logger.info(
            "order.created",
            order_id=order.id,
            table_number=table_number,
            items=len(items),
        )
        self.hub.publish(NEW_ORDER, record.model_dump(mode="json"))
        return record

    # ─── Read ────────────────────────────────────────────

    async def get_order(self, order_id: str) -> OrderRead:
        order = await self.orders.find_by_id(order_id)
        if order is None:
            raise NotFound(order_id)
        return (await self._resolve([order]))[0]

    async def list_orders(self, customer_name: Optional[str] = None) -> list[OrderRead]:
        """Orders newest first, optionally only one customer's."""
        orders = await self.orders.find_many(customer_name=customer_name)
        return await self._resolve(orders)

    # ─── Staff actions ───────────────────────────────────

    async def set_estimated_time(self, order_id: str, minutes: float) -> OrderRead:
        """Record a preparation estimate and move the order to 'preparing'.

        Applies whatever the current status is, including done/canceled.
        """
        if not _is_number(minutes) or minutes <= 0:
            raise ValidationFailure("minutes must be a finite, positive number")

        order = await self.orders.update_by_id(
            order_id,
            {
                "estimated_time_minutes": float(minutes),
                "estimated_time_set_at": utcnow(),
                "status": "preparing",
            },
        )
        if order is None:
            raise NotFound(order_id)

        record = (await self._resolve([order]))[0]
        logger.info("order.estimate_set", order_id=order_id, minutes=minutes)
        self.hub.publish(ORDER_UPDATE, record.model_dump(mode="json"))
        return record

    async def set_status(self, order_id: str, status: str) -> OrderRead:
        """Set the order status. Leaving 'preparing' clears the estimate.

        Raises:
            InvalidStatus: status is not preparing, done or canceled
            NotFound: the order doesn't exist
        """
        if status not in SETTABLE_STATUSES:
            raise InvalidStatus(
                f"Invalid status '{status}'. "
                f"Allowed: {', '.join(sorted(SETTABLE_STATUSES))}"
            )

        patch: dict[str, Any] = {"status": status}
        if status != "preparing":
            patch["estimated_time_minutes"] = None
            patch["estimated_time_set_at"] = None

        order = await self.orders.update_by_id(order_id, patch)
        if order is None:
            raise NotFound(order_id)

        record = (await self._resolve([order]))[0]
        logger.info("order.status_changed", order_id=order_id, status=status)
        self.hub.publish(ORDER_UPDATE, record.model_dump(mode="json"))
        return record

    async def delete_order(self, order_id: str) -> dict[str, str]:
        """Hard-delete an order. Clients get only the id."""
        deleted = await self.orders.delete_by_id(order_id)
        if deleted is None:
            raise NotFound(order_id)

        logger.info("order.deleted", order_id=order_id)
        payload = {"id": order_id}
        self.hub.publish(ORDER_DELETED, payload)
        return payload

    # ─── Read-time join ──────────────────────────────────

    async def _resolve(self, orders: list[Order]) -> list[OrderRead]:
        """Join line items against current menu data, one lookup for the batch."""
        ids = {li["menu_item_id"] for o in orders for li in o.line_items}
        menu = await self.menu.find_by_ids(ids)
        return [self._resolve_one(o, menu) for o in orders]

    @staticmethod
    def _resolve_one(order: Order, menu: dict) -> OrderRead:
        line_items = []
        for li in order.line_items:
            item = menu.get(li["menu_item_id"])
            line_items.append(
                LineItemRead(
                    menu_item_id=li["menu_item_id"],
                    quantity=li["quantity"],
                    menu_item=MenuItemRead.model_validate(item) if item else None,
                )
            )
        return OrderRead(
            id=order.id,
            table_number=order.table_number,
            customer_name=order.customer_name,
            line_items=line_items,
            total=order.total,
            status=order.status,
            estimated_time_minutes=order.estimated_time_minutes,
            estimated_time_set_at=order.estimated_time_set_at,
            created_at=order.created_at,
        )
