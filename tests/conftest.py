"""Shared pytest fixtures for searchdeck tests."""

from __future__ import annotations

from typing import Any

import pytest

from searchdeck.engine_manager import EngineManager
from searchdeck.errors import StoreFailureError
from searchdeck.models import EngineRecord, PreferencesRecord
from searchdeck.store import MemoryStore
from searchdeck.sync.importer import ConfigImporter


def make_engine(
    name: str = "Example",
    url: str | None = None,
    engine_id: str | None = None,
    **fields: Any,
) -> EngineRecord:
    """Build an ``EngineRecord`` with sensible defaults."""
    slug = name.lower().replace(" ", "-")
    return EngineRecord(
        id=engine_id or slug,
        name=name,
        url=url or f"https://{slug}.example.com/search?q={{query}}",
        created_at="2024-01-01T00:00:00+00:00",
        modified_at="2024-01-01T00:00:00+00:00",
        **fields,
    )


def engine_config(name: str, url: str | None = None, **fields: Any) -> dict:
    """Build a camelCase engine mapping as found in a document."""
    slug = name.lower().replace(" ", "-")
    return {
        "name": name,
        "url": url or f"https://{slug}.example.com/search?q={{query}}",
        **fields,
    }


@pytest.fixture
def store() -> MemoryStore:
    """Empty in-memory store."""
    return MemoryStore()


@pytest.fixture
def seeded_store() -> MemoryStore:
    """Store holding three engines with Google as default."""
    return MemoryStore(
        engines=[
            make_engine("Google", is_default=True, sort_order=0),
            make_engine("Bing", sort_order=1),
            make_engine("DuckDuckGo", sort_order=2),
        ],
        preferences=PreferencesRecord(theme="dark"),
    )


@pytest.fixture
def manager(store: MemoryStore) -> EngineManager:
    return EngineManager(store)


@pytest.fixture
def importer(store: MemoryStore, manager: EngineManager) -> ConfigImporter:
    return ConfigImporter(store, manager)


class FailingStore(MemoryStore):
    """MemoryStore whose selected operations raise ``StoreFailureError``."""

    def __init__(self, *fail_on: str, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.fail_on = set(fail_on)

    def _maybe_fail(self, operation: str) -> None:
        if operation in self.fail_on:
            raise StoreFailureError(f"{operation} unavailable")

    async def get_all_engines(self):
        self._maybe_fail("get_all_engines")
        return await super().get_all_engines()

    async def add_engine(self, record):
        self._maybe_fail("add_engine")
        return await super().add_engine(record)

    async def get_preferences(self):
        self._maybe_fail("get_preferences")
        return await super().get_preferences()

    async def update_preferences(self, record):
        self._maybe_fail("update_preferences")
        return await super().update_preferences(record)

    async def get_search_history(self, limit=None):
        self._maybe_fail("get_search_history")
        return await super().get_search_history(limit)

    async def replace_search_history(self, entries):
        self._maybe_fail("replace_search_history")
        return await super().replace_search_history(entries)

    async def clear_search_history(self):
        self._maybe_fail("clear_search_history")
        return await super().clear_search_history()

    async def get_stats(self):
        self._maybe_fail("get_stats")
        return await super().get_stats()
