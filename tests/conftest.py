"""Shared pytest fixtures for the Aisle test suite."""

from __future__ import annotations

import itertools
from typing import Any, Dict, Generator, List, Mapping, Optional

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from aisle.config import get_settings
from aisle.db.repository import reset_repository_state
from aisle.grocery import GroceryItemNotFound, GroceryList
from aisle.models.grocery import GroceryItem
from aisle.server.app import create_app


class InMemoryGroceryItemRepository:
    """Dictionary-backed repository used to exercise the facade without SQLite."""

    def __init__(self) -> None:
        self.items: Dict[int, GroceryItem] = {}
        self._ids = itertools.count(1)
        self.patches: List[tuple[int, dict]] = []

    def seed(self, name: str, store_id: Optional[int], sort_order: Optional[float], **extra) -> GroceryItem:
        item = GroceryItem(
            id=next(self._ids),
            name=name,
            store_id=store_id,
            sort_order=sort_order,
            **extra,
        )
        self.items[item.id] = item
        return item

    def get_items_by_partition(self, store_id: Optional[int]) -> List[GroceryItem]:
        return [item for item in self.items.values() if item.store_id == store_id]

    def get_item(self, item_id: int) -> Optional[GroceryItem]:
        return self.items.get(item_id)

    def insert(self, fields: Mapping[str, Any]) -> GroceryItem:
        item = GroceryItem(id=next(self._ids), **fields)
        self.items[item.id] = item
        return item

    def patch(self, item_id: int, fields: Mapping[str, Any]) -> GroceryItem:
        if item_id not in self.items:
            raise GroceryItemNotFound(item_id)
        self.patches.append((item_id, dict(fields)))
        self.items[item_id] = self.items[item_id].model_copy(update=dict(fields))
        return self.items[item_id]

    def delete(self, item_id: int) -> None:
        if item_id not in self.items:
            raise GroceryItemNotFound(item_id)
        del self.items[item_id]

    def list_items(self) -> List[GroceryItem]:
        return list(self.items.values())

    def checked_items(self) -> List[GroceryItem]:
        return [item for item in self.items.values() if item.is_checked]

    def items_by_week_plan(self, week_plan_id: str) -> List[GroceryItem]:
        return [item for item in self.items.values() if item.week_plan_id == week_plan_id]


@pytest.fixture()
def memory_repository() -> InMemoryGroceryItemRepository:
    return InMemoryGroceryItemRepository()


@pytest.fixture()
def grocery_list(memory_repository) -> GroceryList:
    return GroceryList(memory_repository)


@pytest.fixture()
def app() -> Generator[FastAPI, None, None]:
    """Create a new FastAPI app instance for each test and reset overrides."""

    application = create_app()
    yield application
    application.dependency_overrides.clear()


@pytest.fixture()
def client(app) -> TestClient:
    """Return a test client bound to the FastAPI app."""

    return TestClient(app)


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Ensure each test uses an isolated SQLite database location."""

    db_path = tmp_path / "test_aisle.db"
    monkeypatch.setenv("AISLE_DATABASE_PATH", str(db_path))
    monkeypatch.delenv("AISLE_API_TOKEN", raising=False)
    get_settings.cache_clear()
    reset_repository_state()
    yield
    reset_repository_state()
    monkeypatch.delenv("AISLE_DATABASE_PATH", raising=False)
    get_settings.cache_clear()
