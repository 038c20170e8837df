"""Dependency definitions for the Aisle API server."""

from __future__ import annotations

from typing import Callable, List, Optional

from fastapi import Depends, HTTPException, Request, status

from aisle.config import get_settings
from aisle.db.grocery_items import (
    add_grocery_item,
    clear_checked_items,
    delete_grocery_item,
    find_duplicate_item,
    get_grocery_item,
    link_item_meals,
    list_grocery_items,
    list_week_plan_items,
    merge_item_quantity,
    rebalance_store_items,
    remove_items_by_name,
    reorder_grocery_item,
    toggle_grocery_item,
    update_grocery_item,
)
from aisle.db.stores import (
    create_store,
    delete_store,
    get_store,
    list_stores,
    seed_default_stores,
    update_store,
)
from aisle.models.grocery import GroceryItem, Store

GroceryListProvider = Callable[[object], List[GroceryItem]]
WeekPlanItemsProvider = Callable[[str], List[GroceryItem]]
GroceryItemFetcher = Callable[[int], Optional[GroceryItem]]
GroceryItemCreator = Callable[[dict], GroceryItem]
GroceryItemUpdater = Callable[[int, dict], GroceryItem]
GroceryItemToggler = Callable[[int], GroceryItem]
GroceryItemReorderer = Callable[[int, dict], GroceryItem]
GroceryItemDeleter = Callable[[int], None]
CheckedItemsClearer = Callable[[], int]
DuplicateFinder = Callable[[str], Optional[GroceryItem]]
QuantityMerger = Callable[[int, str], GroceryItem]
NameRemover = Callable[[str], int]
MealLinker = Callable[[int, List[str]], GroceryItem]
PartitionRebalancer = Callable[[Optional[int], bool], int]
StoreProvider = Callable[[], List[Store]]
StoreFetcher = Callable[[int], Optional[Store]]
StoreCreator = Callable[[dict], Store]
StoreUpdater = Callable[[int, dict], Store]
StoreDeleter = Callable[[int], int]
StoreSeeder = Callable[[], dict]


def get_grocery_list_provider() -> GroceryListProvider:
    return list_grocery_items


def get_week_plan_items_provider() -> WeekPlanItemsProvider:
    return list_week_plan_items


def get_grocery_item_fetcher() -> GroceryItemFetcher:
    return get_grocery_item


def get_grocery_item_creator() -> GroceryItemCreator:
    return lambda payload: add_grocery_item(**payload)


def get_grocery_item_updater() -> GroceryItemUpdater:
    return lambda item_id, payload: update_grocery_item(item_id, **payload)


def get_grocery_item_toggler() -> GroceryItemToggler:
    return toggle_grocery_item


def get_grocery_item_reorderer() -> GroceryItemReorderer:
    return lambda item_id, payload: reorder_grocery_item(item_id, **payload)


def get_grocery_item_deleter() -> GroceryItemDeleter:
    return lambda item_id: delete_grocery_item(item_id)


def get_checked_items_clearer() -> CheckedItemsClearer:
    return clear_checked_items


def get_duplicate_finder() -> DuplicateFinder:
    return find_duplicate_item


def get_quantity_merger() -> QuantityMerger:
    return merge_item_quantity


def get_name_remover() -> NameRemover:
    return remove_items_by_name


def get_meal_linker() -> MealLinker:
    return link_item_meals


def get_partition_rebalancer() -> PartitionRebalancer:
    return lambda store_id, only_if_crowded=False: rebalance_store_items(
        store_id,
        only_if_crowded=only_if_crowded,
    )


def get_store_provider() -> StoreProvider:
    return list_stores


def get_store_fetcher() -> StoreFetcher:
    return get_store


def get_store_creator() -> StoreCreator:
    return lambda payload: create_store(**payload)


def get_store_updater() -> StoreUpdater:
    return lambda store_id, payload: update_store(store_id, **payload)


def get_store_deleter() -> StoreDeleter:
    return delete_store


def get_store_seeder() -> StoreSeeder:
    return seed_default_stores


def require_api_token(
    request: Request,
    settings = Depends(get_settings),
) -> None:
    """Ensure requests carry the configured API token when required."""

    token = settings.api_token
    if not token:
        return

    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.split("Bearer ")[-1].strip() == token:
        return

    if request.headers.get("X-API-Key") == token:
        return

    if request.query_params.get("api_token") == token:
        return

    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
