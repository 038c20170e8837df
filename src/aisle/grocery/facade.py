"""Grocery list mutations built on the order key allocator."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

from aisle import metrics
from aisle.models.grocery import GroceryItem
from aisle.ordering import (
    OrderKeyExhausted,
    allocate_order_key,
    effective_key,
    keys_too_close,
    rebalance_keys,
    sort_partition,
)

from .errors import GroceryItemNotFound
from .repository import GroceryItemRepository

logger = logging.getLogger(__name__)

# Sentinels: keep an item's current store / list every store.
KEEP = object()
ALL_STORES = object()

UPDATABLE_FIELDS = {"name", "quantity", "category", "is_organic"}


def normalize_name(name: str) -> str:
    return name.strip().lower()


def _clean_name(name: str) -> str:
    cleaned = str(name).strip()
    if not cleaned:
        raise ValueError("Grocery item name must not be blank")
    return cleaned


def merge_quantities(current: Optional[str], additional: Optional[str]) -> Optional[str]:
    """Combine two free-text quantities; a bare "1" carries no information."""

    current = current or ""
    additional = additional or ""
    if not additional or additional == "1":
        return current or None
    if current and current != "1":
        return f"{current} + {additional}"
    return additional


def _display_key(item: GroceryItem):
    # Stores by id, unassigned bucket last.
    return (item.store_id is None, item.store_id or 0, effective_key(item), item.id)


class GroceryList:
    """Operations on a store-partitioned grocery list.

    Each call is expected to run inside a single transaction supplied by the
    repository's owner.
    """

    def __init__(self, repository: GroceryItemRepository, *, crowding_epsilon: float = 1e-6):
        self._repository = repository
        self._crowding_epsilon = crowding_epsilon

    def add(
        self,
        name: str,
        store_id: Optional[int] = None,
        *,
        before_id: Optional[int] = None,
        quantity: Optional[str] = None,
        category: str = "Other",
        is_organic: bool = False,
        linked_meal_ids: Optional[Iterable[str]] = None,
        week_plan_id: Optional[str] = None,
    ) -> GroceryItem:
        cleaned_name = _clean_name(name)
        sort_order = self._allocate(store_id, before_id=before_id)
        item = self._repository.insert(
            {
                "name": cleaned_name,
                "quantity": quantity,
                "store_id": store_id,
                "category": category,
                "is_organic": bool(is_organic),
                "is_checked": False,
                "linked_meal_ids": list(dict.fromkeys(linked_meal_ids or [])),
                "week_plan_id": week_plan_id,
                "sort_order": sort_order,
            }
        )
        metrics.GROCERY_MUTATIONS.labels(operation="add").inc()
        logger.info(
            "Added grocery item id=%s store=%s sort_order=%s",
            item.id,
            store_id,
            sort_order,
            extra={"operation": "add", "item_id": item.id, "store_id": store_id},
        )
        return item

    def toggle_checked(self, item_id: int) -> GroceryItem:
        item = self._require(item_id)
        updated = self._repository.patch(item_id, {"is_checked": not item.is_checked})
        metrics.GROCERY_MUTATIONS.labels(operation="toggle_checked").inc()
        return updated

    def reorder(
        self,
        item_id: int,
        store_id: Optional[int] | object = KEEP,
        before_id: Optional[int] = None,
    ) -> GroceryItem:
        """Place an item before ``before_id`` (or at the end) of the target store.

        ``store_id`` defaults to the item's current store; pass None to move it to
        the unassigned bucket.
        Placing an item before itself within its own store leaves it where it is.
        """

        item = self._require(item_id)
        target = item.store_id if store_id is KEEP else store_id
        if before_id == item_id and target == item.store_id:
            return item
        sort_order = self._allocate(target, moving_id=item_id, before_id=before_id)
        updated = self._repository.patch(item_id, {"store_id": target, "sort_order": sort_order})
        metrics.GROCERY_MUTATIONS.labels(operation="reorder").inc()
        logger.info(
            "Reordered grocery item id=%s store=%s->%s before=%s sort_order=%s",
            item_id,
            item.store_id,
            target,
            before_id,
            sort_order,
            extra={"operation": "reorder", "item_id": item_id, "store_id": target},
        )
        return updated

    def clear_checked(self) -> int:
        checked = self._repository.checked_items()
        for item in checked:
            self._repository.delete(item.id)
        metrics.GROCERY_MUTATIONS.labels(operation="clear_checked").inc()
        logger.info(
            "Cleared %s checked grocery item(s)",
            len(checked),
            extra={"operation": "clear_checked"},
        )
        return len(checked)

    def remove(self, item_id: int) -> None:
        self._require(item_id)
        self._repository.delete(item_id)
        metrics.GROCERY_MUTATIONS.labels(operation="remove").inc()

    def list_items(self, store_id: Optional[int] | object = ALL_STORES) -> List[GroceryItem]:
        if store_id is ALL_STORES:
            return sorted(self._repository.list_items(), key=_display_key)
        return sort_partition(self._repository.get_items_by_partition(store_id))

    def list_by_week_plan(self, week_plan_id: str) -> List[GroceryItem]:
        return sorted(self._repository.items_by_week_plan(week_plan_id), key=_display_key)

    def get(self, item_id: int) -> Optional[GroceryItem]:
        return self._repository.get_item(item_id)

    def update(self, item_id: int, **fields: Any) -> GroceryItem:
        """Patch descriptive fields; a store change is routed through ``reorder``."""

        item = self._require(item_id)
        store_id = fields.pop("store_id", KEEP)
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise TypeError(f"Unsupported grocery item fields: {sorted(unknown)}")

        if "name" in fields:
            fields["name"] = _clean_name(fields["name"])
        if store_id is not KEEP and store_id != item.store_id:
            item = self.reorder(item_id, store_id=store_id)
        if not fields:
            return item
        updated = self._repository.patch(item_id, fields)
        metrics.GROCERY_MUTATIONS.labels(operation="update").inc()
        return updated

    def find_duplicate(self, name: str) -> Optional[GroceryItem]:
        """Return the oldest unchecked item with the same normalized name."""

        wanted = normalize_name(name)
        for item in sorted(self._repository.list_items(), key=lambda entry: entry.id):
            if not item.is_checked and normalize_name(item.name) == wanted:
                return item
        return None

    def merge_quantity(self, item_id: int, additional: str) -> GroceryItem:
        item = self._require(item_id)
        merged = merge_quantities(item.quantity, additional)
        updated = self._repository.patch(item_id, {"quantity": merged})
        metrics.GROCERY_MUTATIONS.labels(operation="merge_quantity").inc()
        return updated

    def remove_by_name(self, name: str) -> int:
        """Delete unchecked items matching ``name``; checked ones are left for clearing."""

        wanted = normalize_name(name)
        matches = [
            item
            for item in self._repository.list_items()
            if not item.is_checked and normalize_name(item.name) == wanted
        ]
        for item in matches:
            self._repository.delete(item.id)
        if matches:
            metrics.GROCERY_MUTATIONS.labels(operation="remove_by_name").inc()
        return len(matches)

    def link_meals(self, item_id: int, meal_ids: Iterable[str]) -> GroceryItem:
        item = self._require(item_id)
        linked = list(dict.fromkeys([*item.linked_meal_ids, *meal_ids]))
        return self._repository.patch(item_id, {"linked_meal_ids": linked})

    def rebalance(self, store_id: Optional[int], *, trigger: str = "manual") -> int:
        """Renumber one partition to multiples of GAP. Returns the number of keys changed."""

        items = self._repository.get_items_by_partition(store_id)
        new_keys = rebalance_keys(items)
        changed = 0
        for item in items:
            new_key = new_keys[item.id]
            if item.sort_order != new_key:
                self._repository.patch(item.id, {"sort_order": new_key})
                changed += 1
        metrics.PARTITION_REBALANCES.labels(trigger=trigger).inc()
        logger.info(
            "Rebalanced store=%s changed=%s trigger=%s",
            store_id,
            changed,
            trigger,
            extra={"operation": "rebalance", "store_id": store_id},
        )
        return changed

    def is_crowded(self, store_id: Optional[int]) -> bool:
        items = self._repository.get_items_by_partition(store_id)
        return keys_too_close(items, self._crowding_epsilon)

    def move_partition_to_unassigned(self, store_id: int) -> int:
        """Append a store's items to the unassigned bucket, keeping their order."""

        moved = sort_partition(self._repository.get_items_by_partition(store_id))
        for item in moved:
            self.reorder(item.id, store_id=None)
        return len(moved)

    def _require(self, item_id: int) -> GroceryItem:
        item = self._repository.get_item(item_id)
        if item is None:
            raise GroceryItemNotFound(item_id)
        return item

    def _allocate(
        self,
        store_id: Optional[int],
        *,
        moving_id: Optional[int] = None,
        before_id: Optional[int] = None,
    ) -> float:
        siblings = self._repository.get_items_by_partition(store_id)
        try:
            return allocate_order_key(siblings, moving_id=moving_id, before_id=before_id)
        except OrderKeyExhausted as exc:
            logger.warning("Order keys exhausted in store=%s (%s); rebalancing", store_id, exc)

        self.rebalance(store_id, trigger="exhausted")
        siblings = self._repository.get_items_by_partition(store_id)
        return allocate_order_key(siblings, moving_id=moving_id, before_id=before_id)


__all__ = [
    "ALL_STORES",
    "GroceryList",
    "KEEP",
    "merge_quantities",
    "normalize_name",
]
