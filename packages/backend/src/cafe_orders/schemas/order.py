"""Pydantic schemas for orders.

- OrderCreate: what a customer POSTs
- EstimatedTimeSet / StatusChange: staff actions on an existing order
- OrderRead: the reference-resolved order returned by the API and
  broadcast to WebSocket clients
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from cafe_orders.schemas.menu import MenuItemRead


class LineItemIn(BaseModel):
    menu_item_id: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=1)


class OrderCreate(BaseModel):
    table_number: int = Field(..., ge=1)
    line_items: list[LineItemIn] = Field(..., min_length=1)
    total: float = Field(..., ge=0, allow_inf_nan=False)
    customer_name: Optional[str] = Field(None, min_length=1, max_length=200)


class EstimatedTimeSet(BaseModel):
    """Minutes until the order is ready. Moves the order to 'preparing'."""
    minutes: float = Field(..., gt=0, allow_inf_nan=False)


class StatusChange(BaseModel):
    """Requested status. Checked by the order service, not here, so that
    unsupported targets are reported as invalid_status."""
    status: str


class LineItemRead(BaseModel):
    menu_item_id: str
    quantity: int
    menu_item: Optional[MenuItemRead] = None  # None once the item is gone


class OrderRead(BaseModel):
    id: str
    table_number: int
    customer_name: Optional[str]
    line_items: list[LineItemRead]
    total: float
    status: str
    estimated_time_minutes: Optional[float]
    estimated_time_set_at: Optional[datetime]
    created_at: datetime


class OrderDeleted(BaseModel):
    id: str
