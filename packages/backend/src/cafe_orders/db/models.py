"""SQLAlchemy ORM models — single source of truth for the database schema.

Declarative mapping in SQLAlchemy 2.0 style (Mapped[] + mapped_column).
Column types are kept portable (JSON, not JSONB) so the same models run
on Postgres in deployment and SQLite in tests.

Orders are stored document-style: line items live in a JSON column as an
ordered list of {menu_item_id, quantity}. Menu item data is joined in at
read time by the order service and never copied onto the order.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import JSON, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


class MenuItem(Base):
    """A dish or drink on the menu.

    Owned by the menu subsystem; the ordering core only reads it.
    """

    __tablename__ = "menu_items"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="")
    price: Mapped[float] = mapped_column(Float, nullable=False)
    category: Mapped[str] = mapped_column(String(100), default="general")
    image_url: Mapped[str] = mapped_column(String(500), default="")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )


class Order(Base):
    """A customer order and its place in the kitchen lifecycle."""

    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    table_number: Mapped[int] = mapped_column(Integer, nullable=False)
    line_items: Mapped[list] = mapped_column(JSON, nullable=False)
    total: Mapped[float] = mapped_column(Float, nullable=False)
    customer_name: Mapped[Optional[str]] = mapped_column(
        String(200), nullable=True, index=True
    )
    status: Mapped[str] = mapped_column(String(20), default="pending")
    estimated_time_minutes: Mapped[Optional[float]] = mapped_column(
        Float, nullable=True
    )
    estimated_time_set_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, index=True
    )
