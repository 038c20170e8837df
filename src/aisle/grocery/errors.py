"""Errors raised by grocery list operations."""

from __future__ import annotations


class GroceryItemNotFound(ValueError):
    """Referenced grocery item does not exist."""

    def __init__(self, item_id: int):
        super().__init__(f"Grocery item {item_id} not found")
        self.item_id = item_id


class StoreNotFound(ValueError):
    """Referenced store does not exist."""

    def __init__(self, store_id: int):
        super().__init__(f"Store {store_id} not found")
        self.store_id = store_id


__all__ = ["GroceryItemNotFound", "StoreNotFound"]
