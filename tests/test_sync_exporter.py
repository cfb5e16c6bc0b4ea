"""Tests for searchdeck.sync.exporter.

Covers:
- Document shape, metadata counts and default engine name
- searchHistory omitted unless requested and non-empty
- Defaults when the store holds no preferences
- History limit
- ExportError wrapping on read failure
- summarize_config and default_export_filename
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from conftest import FailingStore, make_engine
from searchdeck.errors import ExportError
from searchdeck.models import PreferencesRecord
from searchdeck.store import MemoryStore
from searchdeck.sync.exporter import ConfigExporter, default_export_filename


class TestExportConfig:
    async def test_metadata(self, seeded_store):
        await seeded_store.update_engine("bing", {"enabled": False})
        doc = await ConfigExporter(seeded_store).export_config()
        assert doc.version == "1.0"
        assert doc.metadata.total_engines == 3
        assert doc.metadata.enabled_engines == 2
        assert doc.metadata.default_engine == "Google"
        assert doc.metadata.includes_history is False

    async def test_engine_projection_keys(self, seeded_store):
        data = (await ConfigExporter(seeded_store).export_config()).to_dict()
        assert set(data["engines"][0]) == {
            "id",
            "name",
            "url",
            "icon",
            "color",
            "enabled",
            "isDefault",
            "sortOrder",
            "createdAt",
            "modifiedAt",
        }

    async def test_preferences_projection_keys(self, seeded_store):
        data = (await ConfigExporter(seeded_store).export_config()).to_dict()
        assert data["preferences"]["theme"] == "dark"
        assert set(data["preferences"]) == set(PreferencesRecord().to_external())

    async def test_defaults_when_no_preferences(self, store):
        doc = await ConfigExporter(store).export_config()
        assert doc.preferences == PreferencesRecord()
        assert doc.metadata.default_engine is None

    async def test_history_excluded_when_not_requested(self, seeded_store):
        await seeded_store.add_search_history("q", "google")
        data = (await ConfigExporter(seeded_store).export_config(False)).to_dict()
        assert "searchHistory" not in data
        assert data["metadata"]["historyEntries"] == 0

    async def test_history_omitted_when_empty(self, seeded_store):
        data = (await ConfigExporter(seeded_store).export_config(True)).to_dict()
        assert "searchHistory" not in data
        assert data["metadata"]["includesHistory"] is True

    async def test_history_included_newest_first(self, seeded_store):
        await seeded_store.add_search_history("a", "google", timestamp="2024-01-01T00:00:00Z")
        await seeded_store.add_search_history("b", "bing", timestamp="2024-01-02T00:00:00Z")
        data = (await ConfigExporter(seeded_store).export_config(True)).to_dict()
        assert [h["query"] for h in data["searchHistory"]] == ["b", "a"]
        assert set(data["searchHistory"][0]) == {
            "query",
            "engine",
            "timestamp",
            "resultsCount",
        }
        assert data["metadata"]["historyEntries"] == 2

    async def test_history_limit(self, seeded_store):
        for i in range(5):
            await seeded_store.add_search_history(f"q{i}", "google")
        doc = await ConfigExporter(seeded_store, history_limit=2).export_config(True)
        assert len(doc.search_history) == 2

    @pytest.mark.parametrize(
        "operation", ["get_all_engines", "get_preferences", "get_search_history"]
    )
    async def test_read_failure_raises_export_error(self, operation):
        store = FailingStore(operation, engines=[make_engine("A")])
        with pytest.raises(ExportError, match="Failed to export configuration"):
            await ConfigExporter(store).export_config(include_history=True)


class TestSummarizeConfig:
    async def test_summary(self, seeded_store):
        summary = await ConfigExporter(seeded_store).summarize_config()
        assert summary["engines"] == {"total": 3, "enabled": 3, "default": "Google"}
        assert summary["preferences"]["theme"] == "dark"
        assert summary["database"]["historyEntries"] == 0
        assert "lastModified" in summary

    async def test_no_default_is_none_string(self):
        summary = await ConfigExporter(MemoryStore()).summarize_config()
        assert summary["engines"]["default"] == "None"

    async def test_failure_returns_none(self):
        assert await ConfigExporter(FailingStore("get_stats")).summarize_config() is None


class TestDefaultExportFilename:
    MOMENT = datetime(2024, 5, 1, 13, 4, 5, 678000, tzinfo=timezone.utc)

    def test_export_name(self):
        assert default_export_filename(self.MOMENT) == "searchdeck-config-2024-05-01.json"

    def test_backup_name(self):
        assert (
            default_export_filename(self.MOMENT, backup=True)
            == "searchdeck-backup-2024-05-01T13-04-05-678Z.json"
        )
