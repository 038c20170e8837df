"""Grocery list facade and its persistence contract."""

from aisle.grocery.errors import GroceryItemNotFound, StoreNotFound
from aisle.grocery.facade import ALL_STORES, KEEP, GroceryList, merge_quantities, normalize_name
from aisle.grocery.repository import GroceryItemRepository

__all__ = [
    "ALL_STORES",
    "GroceryItemNotFound",
    "GroceryItemRepository",
    "GroceryList",
    "KEEP",
    "StoreNotFound",
    "merge_quantities",
    "normalize_name",
]
