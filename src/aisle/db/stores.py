"""Data access helpers for stores."""

from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import select

from aisle.grocery import StoreNotFound
from aisle.logging_utils import context_logger
from aisle.models.grocery import Store

from .grocery_items import grocery_list_for
from .models import StoreORM
from .repository import session_scope

logger = logging.getLogger(__name__)

_UNSET = object()

DEFAULT_STORES = [
    {"name": "Meijer", "color": "#4A90D9"},
    {"name": "Costco", "color": "#E31837"},
    {"name": "Aldi", "color": "#00A0DF"},
    {"name": "Trader Joe's", "color": "#C10230"},
]


def _to_model(row: StoreORM) -> Store:
    return Store.model_validate({"id": row.id, "name": row.name, "color": row.color})


def list_stores() -> List[Store]:
    with session_scope() as session:
        rows = session.execute(select(StoreORM).order_by(StoreORM.id)).scalars().all()
        return [_to_model(row) for row in rows]


def get_store(store_id: int) -> Optional[Store]:
    with session_scope() as session:
        row = session.get(StoreORM, store_id)
        if row is None:
            return None
        return _to_model(row)


def _store_name(name: object) -> str:
    cleaned = str(name).strip()
    if not cleaned:
        raise ValueError("Store name must not be blank")
    return cleaned


def create_store(*, name: str, color: Optional[str] = None) -> Store:
    with session_scope() as session:
        db_store = StoreORM(name=_store_name(name), color=color)
        session.add(db_store)
        session.flush()
        return _to_model(db_store)


def update_store(
    store_id: int,
    *,
    name: str | object = _UNSET,
    color: str | None | object = _UNSET,
) -> Store:
    with session_scope() as session:
        db_store = session.get(StoreORM, store_id)
        if db_store is None:
            raise StoreNotFound(store_id)
        if name is not _UNSET:
            db_store.name = _store_name(name)
        if color is not _UNSET:
            db_store.color = color  # type: ignore[assignment]
        session.flush()
        return _to_model(db_store)


def delete_store(store_id: int) -> int:
    """Delete a store, moving its items to the unassigned bucket first.

    Returns the number of items that were moved.
    """

    with session_scope() as session:
        db_store = session.get(StoreORM, store_id)
        if db_store is None:
            raise StoreNotFound(store_id)
        moved = grocery_list_for(session).move_partition_to_unassigned(store_id)
        session.delete(db_store)
        log = context_logger(__name__, operation="delete_store", store_id=store_id)
        log.info("Deleted store id=%s moved_items=%s", store_id, moved)
        return moved


def seed_default_stores() -> dict[str, object]:
    """Insert the default store set when no store exists yet."""

    with session_scope() as session:
        exists = session.execute(select(StoreORM.id).limit(1)).first()
        if exists:
            return {"seeded": False, "count": 0}
        for record in DEFAULT_STORES:
            session.add(StoreORM(**record))
        session.flush()
    logger.info("Seeded %s default stores", len(DEFAULT_STORES))
    return {"seeded": True, "count": len(DEFAULT_STORES)}


__all__ = [
    "DEFAULT_STORES",
    "create_store",
    "delete_store",
    "get_store",
    "list_stores",
    "seed_default_stores",
    "update_store",
]
