"""Pydantic models defining shared data contracts."""

from aisle.models.grocery import GroceryItem, Store

__all__ = ["GroceryItem", "Store"]
