"""Tests for searchdeck.store.

Covers:
- Engine CRUD ordering and id collisions
- set_default_engine exclusivity
- Preferences existence (None until saved)
- History ordering, limits, enableHistory gate and trimming
- Bulk history replacement with a single commit
- build_engine_record defaults
- MemoryStore.snapshot_of independence
- JsonFileStore persistence, atomic write and corrupt-file handling
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from conftest import make_engine
from searchdeck.errors import PerItemDefectError, StoreFailureError
from searchdeck.models import HistoryEntry, PreferencesRecord
from searchdeck.store import JsonFileStore, MemoryStore, build_engine_record


def _entries(n: int) -> list[HistoryEntry]:
    return [
        HistoryEntry(
            query=f"q{i}",
            engine="google",
            timestamp=f"2024-03-01T00:{i:02d}:00Z",
        )
        for i in range(n)
    ]


class TestEngines:
    """Engine operations on MemoryStore."""

    async def test_get_all_engines_sorted_by_order_then_name(self):
        store = MemoryStore(
            engines=[
                make_engine("Zeta", sort_order=0),
                make_engine("alpha", sort_order=1),
                make_engine("Beta", sort_order=0),
            ]
        )
        names = [e.name for e in await store.get_all_engines()]
        assert names == ["Beta", "Zeta", "alpha"]

    async def test_add_engine_returns_id(self, store):
        engine_id = await store.add_engine(make_engine("Foo"))
        assert engine_id == "foo"
        assert (await store.get_engine("foo")).name == "Foo"

    async def test_add_engine_id_collision_raises(self, store):
        await store.add_engine(make_engine("Foo"))
        with pytest.raises(PerItemDefectError):
            await store.add_engine(make_engine("Other", engine_id="foo"))

    async def test_update_engine(self, store):
        await store.add_engine(make_engine("Foo"))
        updated = await store.update_engine("foo", {"enabled": False})
        assert updated.enabled is False
        assert updated.modified_at != "2024-01-01T00:00:00+00:00"

    async def test_update_missing_engine_raises(self, store):
        with pytest.raises(PerItemDefectError):
            await store.update_engine("nope", {"enabled": False})

    async def test_delete_missing_engine_is_noop(self, store):
        await store.delete_engine("nope")
        assert await store.get_all_engines() == []

    async def test_set_default_engine_is_exclusive(self, seeded_store):
        await seeded_store.set_default_engine("bing")
        defaults = [e.id for e in await seeded_store.get_all_engines() if e.is_default]
        assert defaults == ["bing"]


class TestBuildEngineRecord:
    """Tests for build_engine_record()."""

    def test_defaults_applied(self):
        record = build_engine_record(
            {"name": "  Foo ", "url": "https://x.com/?q={query}"}
        )
        assert record.name == "Foo"
        assert record.enabled is True
        assert record.is_default is False
        assert record.sort_order == 0
        assert record.icon is None
        assert len(record.id) == 32
        assert record.created_at is not None

    def test_keeps_given_fields(self):
        record = build_engine_record(
            {
                "id": "foo",
                "name": "Foo",
                "url": "https://x.com/?q={query}",
                "enabled": False,
                "isDefault": True,
                "sortOrder": 4,
                "createdAt": "2020-01-01T00:00:00Z",
            }
        )
        assert record.id == "foo"
        assert record.enabled is False
        assert record.is_default is True
        assert record.sort_order == 4
        assert record.created_at == "2020-01-01T00:00:00Z"

    def test_non_int_sort_order_defaults_to_zero(self):
        record = build_engine_record(
            {"name": "Foo", "url": "https://x.com/?q={query}", "sortOrder": "3"}
        )
        assert record.sort_order == 0


class TestPreferences:
    async def test_none_until_saved(self, store):
        assert await store.get_preferences() is None
        await store.update_preferences(PreferencesRecord(theme="auto"))
        assert (await store.get_preferences()).theme == "auto"


class TestHistory:
    """Search history on MemoryStore."""

    async def test_newest_first_with_limit(self, store):
        for i in range(3):
            await store.add_search_history(
                f"q{i}", "google", timestamp=f"2024-01-0{i + 1}T00:00:00Z"
            )
        history = await store.get_search_history(limit=2)
        assert [h.query for h in history] == ["q2", "q1"]

    async def test_disabled_history_records_nothing(self, store):
        await store.update_preferences(PreferencesRecord(enable_history=False))
        assert await store.add_search_history("q", "google") is False
        assert await store.get_search_history() == []

    async def test_trims_oldest_beyond_max(self, store):
        await store.update_preferences(PreferencesRecord(max_history_items=2))
        for i in range(4):
            await store.add_search_history(
                f"q{i}", "google", timestamp=f"2024-01-0{i + 1}T00:00:00Z"
            )
        assert [h.query for h in await store.get_search_history()] == ["q3", "q2"]

    async def test_clear(self, store):
        await store.add_search_history("q", "google")
        await store.clear_search_history()
        assert await store.get_search_history() == []

    async def test_replace_history_commits_once(self):
        class CountingStore(MemoryStore):
            commits = 0

            async def _commit(self):
                self.commits += 1

        store = CountingStore()
        await store.add_search_history("old", "bing")
        store.commits = 0

        kept = await store.replace_search_history(_entries(50))

        assert kept == 50
        assert store.commits == 1
        assert "old" not in [h.query for h in await store.get_search_history()]

    async def test_replace_history_trims_to_max(self, store):
        await store.update_preferences(PreferencesRecord(max_history_items=3))
        assert await store.replace_search_history(_entries(5)) == 3
        assert [h.query for h in await store.get_search_history()] == [
            "q4",
            "q3",
            "q2",
        ]

    async def test_replace_history_disabled_keeps_nothing(self, store):
        await store.add_search_history("old", "bing")
        await store.update_preferences(PreferencesRecord(enable_history=False))
        assert await store.replace_search_history(_entries(2)) == 0
        assert await store.get_search_history() == []

    async def test_stats(self, seeded_store):
        await seeded_store.add_search_history("q", "google")
        stats = await seeded_store.get_stats()
        assert stats.engines == 3
        assert stats.search_history == 1
        assert stats.size.endswith("KB")


class TestSnapshot:
    async def test_snapshot_is_independent(self, seeded_store):
        await seeded_store.add_search_history("q", "google")
        snapshot = await MemoryStore.snapshot_of(seeded_store)
        await snapshot.delete_engine("google")
        await snapshot.clear_search_history()

        assert len(await seeded_store.get_all_engines()) == 3
        assert len(await seeded_store.get_search_history()) == 1
        assert (await snapshot.get_preferences()).theme == "dark"


class TestJsonFileStore:
    """Persistence of JsonFileStore."""

    async def test_missing_file_starts_empty(self, tmp_path: Path):
        store = JsonFileStore(tmp_path / "store.json")
        assert await store.get_all_engines() == []
        assert not (tmp_path / "store.json").exists()

    async def test_persists_across_instances(self, tmp_path: Path):
        path = tmp_path / "nested" / "store.json"
        first = JsonFileStore(path)
        await first.add_engine(make_engine("Foo"))
        await first.update_preferences(PreferencesRecord(theme="dark"))
        await first.add_search_history("q", "foo", results_count=3)

        second = JsonFileStore(path)
        assert [e.name for e in await second.get_all_engines()] == ["Foo"]
        assert (await second.get_preferences()).theme == "dark"
        history = await second.get_search_history()
        assert history[0].results_count == 3

    async def test_file_uses_camel_case(self, tmp_path: Path):
        path = tmp_path / "store.json"
        store = JsonFileStore(path)
        await store.add_engine(make_engine("Foo", is_default=True))
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["version"] == 1
        assert data["engines"][0]["isDefault"] is True
        assert data["preferences"] is None

    async def test_no_temp_files_left(self, tmp_path: Path):
        store = JsonFileStore(tmp_path / "store.json")
        await store.add_engine(make_engine("Foo"))
        assert [p.name for p in tmp_path.iterdir()] == ["store.json"]

    async def test_corrupt_file_raises_store_failure(self, tmp_path: Path):
        path = tmp_path / "store.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(StoreFailureError):
            await JsonFileStore(path).get_all_engines()

    async def test_invalid_records_raise_store_failure(self, tmp_path: Path):
        path = tmp_path / "store.json"
        path.write_text(json.dumps({"engines": [{"name": "x"}]}), encoding="utf-8")
        with pytest.raises(StoreFailureError):
            await JsonFileStore(path).get_all_engines()

    async def test_write_failure_raises_store_failure(self, tmp_path: Path):
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")
        store = JsonFileStore(blocker / "store.json")
        with pytest.raises(StoreFailureError):
            await store.add_engine(make_engine("Foo"))

    async def test_failed_write_is_not_kept_in_memory(self, tmp_path: Path):
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")
        store = JsonFileStore(blocker / "store.json")
        with pytest.raises(StoreFailureError):
            await store.add_engine(make_engine("Foo"))
        assert await store.get_all_engines() == []

    async def test_bom_prefixed_file_loads(self, tmp_path: Path):
        path = tmp_path / "store.json"
        state = {"version": 1, "engines": [make_engine("Foo").to_external()]}
        path.write_bytes(b"\xef\xbb\xbf" + json.dumps(state).encode("utf-8"))
        assert [e.name for e in await JsonFileStore(path).get_all_engines()] == [
            "Foo"
        ]

    async def test_file_size_reported(self, tmp_path: Path):
        store = JsonFileStore(tmp_path / "store.json")
        await store.add_engine(make_engine("Foo"))
        stats = await store.get_stats()
        assert stats.size.endswith("KB")
