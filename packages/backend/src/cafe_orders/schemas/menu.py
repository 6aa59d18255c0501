"""Pydantic schemas for menu items (read-only here)."""

from datetime import datetime

from pydantic import BaseModel


class MenuItemRead(BaseModel):
    id: str
    name: str
    description: str
    price: float
    category: str
    image_url: str
    created_at: datetime

    model_config = {"from_attributes": True}
