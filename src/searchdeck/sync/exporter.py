"""Assemble configuration documents from a store.

``ConfigExporter`` reads engines, preferences and (optionally) search
history concurrently and builds a versioned ``ConfigurationDocument``.
Any read failure aborts the export with ``ExportError``; a partial
document is never returned.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from searchdeck.core.async_utils import gather_all
from searchdeck.errors import ExportError
from searchdeck.models import (
    CONFIG_VERSION,
    ConfigurationDocument,
    DocumentMetadata,
    EngineRecord,
    HistoryEntry,
    PreferencesRecord,
    now_iso,
)
from searchdeck.store import SearchStore

logger = logging.getLogger(__name__)

EXPORT_PREFIX = "searchdeck-config"
BACKUP_PREFIX = "searchdeck-backup"


def default_export_filename(
    now: datetime | None = None, backup: bool = False
) -> str:
    """Return the suggested file name for an export or a backup.

    Exports are named by date (``searchdeck-config-2024-05-01.json``);
    backups by full UTC timestamp with ``:`` and ``.`` replaced by ``-``.
    """
    moment = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    if not backup:
        return f"{EXPORT_PREFIX}-{moment.strftime('%Y-%m-%d')}.json"
    stamp = moment.strftime("%Y-%m-%dT%H-%M-%S") + (
        f"-{moment.microsecond // 1000:03d}Z"
    )
    return f"{BACKUP_PREFIX}-{stamp}.json"


class ConfigExporter:
    """Build configuration documents from a ``SearchStore``.

    Args:
        store: Source store.
        history_limit: Maximum number of history entries to export
            (newest first).  ``None`` exports all.
    """

    def __init__(
        self, store: SearchStore, history_limit: int | None = None
    ) -> None:
        self.store = store
        self.history_limit = history_limit

    async def export_config(
        self, include_history: bool = False
    ) -> ConfigurationDocument:
        """Export the current configuration.

        Args:
            include_history: Attach ``searchHistory`` when at least one
                entry exists.

        Returns:
            A fully populated ``ConfigurationDocument``.

        Raises:
            ExportError: If any store read fails.
        """
        reads = [self.store.get_all_engines(), self.store.get_preferences()]
        if include_history:
            reads.append(self.store.get_search_history(self.history_limit))

        try:
            results = await gather_all(reads)
        except Exception as exc:
            logger.error("Export failed: %s", exc)
            raise ExportError(
                f"Failed to export configuration: {exc}"
            ) from exc

        engines: list[EngineRecord] = results[0]
        preferences: PreferencesRecord = results[1] or PreferencesRecord()
        history: list[HistoryEntry] = results[2] if include_history else []

        default = next((e for e in engines if e.is_default), None)
        metadata = DocumentMetadata(
            total_engines=len(engines),
            enabled_engines=sum(1 for e in engines if e.enabled),
            default_engine=default.name if default else None,
            history_entries=len(history),
            includes_history=include_history,
        )

        document = ConfigurationDocument(
            version=CONFIG_VERSION,
            exported_at=now_iso(),
            metadata=metadata,
            engines=engines,
            preferences=preferences,
            search_history=history or None,
        )
        logger.info(
            "Exported %d engines, %d history entries",
            len(engines),
            len(history),
        )
        return document

    async def summarize_config(self) -> dict[str, Any] | None:
        """Return a short overview of the store, or None on failure."""
        try:
            engines, preferences, stats = await gather_all(
                [
                    self.store.get_all_engines(),
                    self.store.get_preferences(),
                    self.store.get_stats(),
                ]
            )
        except Exception as exc:
            logger.error("Failed to get configuration summary: %s", exc)
            return None

        preferences = preferences or PreferencesRecord()
        default = next((e for e in engines if e.is_default), None)
        return {
            "engines": {
                "total": len(engines),
                "enabled": sum(1 for e in engines if e.enabled),
                "default": default.name if default else "None",
            },
            "preferences": {
                "theme": preferences.theme,
                "openInNewTab": preferences.open_in_new_tab,
                "enableHistory": preferences.enable_history,
                "maxHistoryItems": preferences.max_history_items,
            },
            "database": {
                "historyEntries": stats.search_history,
                "estimatedSize": stats.size,
            },
            "lastModified": now_iso(),
        }
