"""Persistence contract consumed by the grocery list facade."""

from __future__ import annotations

from typing import Any, List, Mapping, Optional, Protocol

from aisle.models.grocery import GroceryItem


class GroceryItemRepository(Protocol):
    """Storage operations the facade relies on.

    Implementations run inside whatever transaction the caller opened; the facade
    assumes reads and writes made through one repository instance are isolated
    from concurrent mutations of the same partition.
    """

    def get_items_by_partition(self, store_id: Optional[int]) -> List[GroceryItem]:
        """Return every item whose store matches ``store_id`` (None = unassigned)."""

    def get_item(self, item_id: int) -> Optional[GroceryItem]: ...

    def insert(self, fields: Mapping[str, Any]) -> GroceryItem: ...

    def patch(self, item_id: int, fields: Mapping[str, Any]) -> GroceryItem: ...

    def delete(self, item_id: int) -> None: ...

    def list_items(self) -> List[GroceryItem]: ...

    def checked_items(self) -> List[GroceryItem]: ...

    def items_by_week_plan(self, week_plan_id: str) -> List[GroceryItem]: ...


__all__ = ["GroceryItemRepository"]
