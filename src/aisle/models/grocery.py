"""Grocery list and store models."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Store(BaseModel):
    """Shopping location that groups grocery items."""

    id: int
    name: str
    color: Optional[str] = Field(default=None)

    model_config = ConfigDict(frozen=True)


class GroceryItem(BaseModel):
    """Single entry on the household grocery list."""

    id: int
    name: str
    quantity: Optional[str] = Field(default=None)
    store_id: Optional[int] = Field(default=None)
    category: str = Field(default="Other")
    is_organic: bool = Field(default=False)
    is_checked: bool = Field(default=False)
    linked_meal_ids: list[str] = Field(default_factory=list)
    week_plan_id: Optional[str] = Field(default=None)
    sort_order: Optional[float] = Field(default=None)
    created_at: Optional[datetime] = Field(default=None)
    updated_at: Optional[datetime] = Field(default=None)

    model_config = ConfigDict(frozen=True)


__all__ = ["GroceryItem", "Store"]
