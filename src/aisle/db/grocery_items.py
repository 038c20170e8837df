"""Grocery list persistence helpers."""
# mypy: ignore-errors

from __future__ import annotations

from typing import Any, Iterable, List, Mapping, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from aisle.config import get_settings
from aisle.grocery import ALL_STORES, KEEP, GroceryItemNotFound, GroceryList, StoreNotFound
from aisle.models.grocery import GroceryItem

from .models import GroceryItemORM, StoreORM
from .repository import session_scope


def _to_model(row: GroceryItemORM) -> GroceryItem:
    return GroceryItem.model_validate(
        {
            "id": row.id,
            "name": row.name,
            "quantity": row.quantity,
            "store_id": row.store_id,
            "category": row.category,
            "is_organic": row.is_organic,
            "is_checked": row.is_checked,
            "linked_meal_ids": list(row.linked_meal_ids or []),
            "week_plan_id": row.week_plan_id,
            "sort_order": row.sort_order,
            "created_at": row.created_at,
            "updated_at": row.updated_at,
        }
    )


class SqlGroceryItemRepository:
    """Grocery item storage bound to one open session."""

    def __init__(self, session: Session):
        self._session = session

    def _rows(self, *criteria) -> List[GroceryItem]:
        query = select(GroceryItemORM).where(*criteria).order_by(GroceryItemORM.id)
        return [_to_model(row) for row in self._session.execute(query).scalars().all()]

    def get_items_by_partition(self, store_id: Optional[int]) -> List[GroceryItem]:
        if store_id is None:
            return self._rows(GroceryItemORM.store_id.is_(None))
        return self._rows(GroceryItemORM.store_id == store_id)

    def get_item(self, item_id: int) -> Optional[GroceryItem]:
        row = self._session.get(GroceryItemORM, item_id)
        if row is None:
            return None
        return _to_model(row)

    def insert(self, fields: Mapping[str, Any]) -> GroceryItem:
        db_item = GroceryItemORM(**fields)
        self._session.add(db_item)
        self._session.flush()
        return _to_model(db_item)

    def patch(self, item_id: int, fields: Mapping[str, Any]) -> GroceryItem:
        db_item = self._session.get(GroceryItemORM, item_id)
        if db_item is None:
            raise GroceryItemNotFound(item_id)
        for key, value in fields.items():
            setattr(db_item, key, value)
        self._session.flush()
        return _to_model(db_item)

    def delete(self, item_id: int) -> None:
        db_item = self._session.get(GroceryItemORM, item_id)
        if db_item is None:
            raise GroceryItemNotFound(item_id)
        self._session.delete(db_item)
        self._session.flush()

    def list_items(self) -> List[GroceryItem]:
        return self._rows()

    def checked_items(self) -> List[GroceryItem]:
        return self._rows(GroceryItemORM.is_checked.is_(True))

    def items_by_week_plan(self, week_plan_id: str) -> List[GroceryItem]:
        return self._rows(GroceryItemORM.week_plan_id == week_plan_id)


def _require_store(session: Session, store_id: Optional[int] | object) -> None:
    """Raise StoreNotFound for a store id with no row; None and KEEP pass through."""

    if store_id is None or store_id is KEEP:
        return
    if session.get(StoreORM, store_id) is None:
        raise StoreNotFound(store_id)


def grocery_list_for(session: Session) -> GroceryList:
    """Build a facade whose reads and writes share ``session``'s transaction."""

    settings = get_settings()
    return GroceryList(
        SqlGroceryItemRepository(session),
        crowding_epsilon=settings.rebalance_epsilon,
    )


def list_grocery_items(store_id: Optional[int] | object = ALL_STORES) -> List[GroceryItem]:
    """Return items in display order, optionally limited to one store (None = unassigned)."""

    with session_scope() as session:
        return grocery_list_for(session).list_items(store_id)


def list_week_plan_items(week_plan_id: str) -> List[GroceryItem]:
    with session_scope() as session:
        return grocery_list_for(session).list_by_week_plan(week_plan_id)


def get_grocery_item(item_id: int) -> Optional[GroceryItem]:
    with session_scope() as session:
        return grocery_list_for(session).get(item_id)


def add_grocery_item(
    *,
    name: str,
    store_id: Optional[int] = None,
    before_id: Optional[int] = None,
    quantity: Optional[str] = None,
    category: str = "Other",
    is_organic: bool = False,
    linked_meal_ids: Optional[Iterable[str]] = None,
    week_plan_id: Optional[str] = None,
) -> GroceryItem:
    with session_scope() as session:
        _require_store(session, store_id)
        return grocery_list_for(session).add(
            name,
            store_id,
            before_id=before_id,
            quantity=quantity,
            category=category,
            is_organic=is_organic,
            linked_meal_ids=linked_meal_ids,
            week_plan_id=week_plan_id,
        )


def toggle_grocery_item(item_id: int) -> GroceryItem:
    with session_scope() as session:
        return grocery_list_for(session).toggle_checked(item_id)


def reorder_grocery_item(
    item_id: int,
    *,
    store_id: Optional[int] | object = KEEP,
    before_id: Optional[int] = None,
) -> GroceryItem:
    with session_scope() as session:
        _require_store(session, store_id)
        return grocery_list_for(session).reorder(item_id, store_id=store_id, before_id=before_id)


def update_grocery_item(item_id: int, **fields: Any) -> GroceryItem:
    with session_scope() as session:
        _require_store(session, fields.get("store_id"))
        return grocery_list_for(session).update(item_id, **fields)


def delete_grocery_item(item_id: int) -> None:
    with session_scope() as session:
        grocery_list_for(session).remove(item_id)


def clear_checked_items() -> int:
    """Delete every checked item across all stores and return how many were removed."""

    with session_scope() as session:
        return grocery_list_for(session).clear_checked()


def find_duplicate_item(name: str) -> Optional[GroceryItem]:
    with session_scope() as session:
        return grocery_list_for(session).find_duplicate(name)


def merge_item_quantity(item_id: int, additional: str) -> GroceryItem:
    with session_scope() as session:
        return grocery_list_for(session).merge_quantity(item_id, additional)


def remove_items_by_name(name: str) -> int:
    with session_scope() as session:
        return grocery_list_for(session).remove_by_name(name)


def link_item_meals(item_id: int, meal_ids: Iterable[str]) -> GroceryItem:
    with session_scope() as session:
        return grocery_list_for(session).link_meals(item_id, meal_ids)


def rebalance_store_items(store_id: Optional[int], *, only_if_crowded: bool = False) -> int:
    """Renumber one store's keys; with ``only_if_crowded`` skip healthy stores."""

    with session_scope() as session:
        grocery_list = grocery_list_for(session)
        if only_if_crowded and not grocery_list.is_crowded(store_id):
            return 0
        return grocery_list.rebalance(store_id)


__all__ = [
    "SqlGroceryItemRepository",
    "add_grocery_item",
    "clear_checked_items",
    "delete_grocery_item",
    "find_duplicate_item",
    "get_grocery_item",
    "grocery_list_for",
    "link_item_meals",
    "list_grocery_items",
    "list_week_plan_items",
    "merge_item_quantity",
    "rebalance_store_items",
    "remove_items_by_name",
    "reorder_grocery_item",
    "toggle_grocery_item",
    "update_grocery_item",
]
