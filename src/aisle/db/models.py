"""SQLAlchemy models representing Aisle persistence tables."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Declarative base class for Aisle ORM models."""


class StoreORM(Base):
    """Shopping location used to partition the grocery list."""

    __tablename__ = "stores"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    color: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)


class GroceryItemORM(Base):
    """Grocery list entry ordered by ``sort_order`` within its store."""

    __tablename__ = "grocery_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    quantity: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    store_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("stores.id"), nullable=True
    )
    category: Mapped[str] = mapped_column(String(64), nullable=False, default="Other")
    is_organic: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_checked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    linked_meal_ids: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    week_plan_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    sort_order: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __table_args__ = (
        Index("ix_grocery_items_store_order", "store_id", "sort_order"),
        Index("ix_grocery_items_checked", "is_checked"),
        Index("ix_grocery_items_week_plan", "week_plan_id"),
    )


__all__ = ["Base", "StoreORM", "GroceryItemORM"]
