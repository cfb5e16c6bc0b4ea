"""Import orchestration: validate -> resolve -> apply -> report.

``ConfigImporter`` applies a parsed configuration document to a store.
Engines, preferences and history are independent failure domains: an
exception in one is recorded in ``ImportResult.errors`` and the others
still run.  Only a structurally invalid document aborts the whole call.

Dry runs (``preview_import``) execute the same pipeline against an
in-memory snapshot of the store, so the live store is never touched.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from importlib import resources
from typing import TYPE_CHECKING, Any

from searchdeck.errors import InvalidDocumentError
from searchdeck.models import (
    HistoryEntry,
    ImportOptions,
    ImportResult,
    PreferencesRecord,
)
from searchdeck.store import MemoryStore, SearchStore
from searchdeck.sync.resolver import (
    MERGE,
    REPLACE,
    create_strategy,
    should_import_history,
    should_import_preferences,
)
from searchdeck.validators import validate_document, validate_preferences

if TYPE_CHECKING:
    from searchdeck.engine_manager import EngineManager

logger = logging.getLogger(__name__)

DEFAULTS_RESOURCE = "default_engines.json"


def load_default_document() -> dict[str, Any]:
    """Load the bundled default configuration document."""
    text = (
        resources.files("searchdeck.data")
        .joinpath(DEFAULTS_RESOURCE)
        .read_text(encoding="utf-8")
    )
    return json.loads(text)


def _history_entry(entry: Any) -> HistoryEntry | None:
    """Build a ``HistoryEntry`` from a document row, or None if unusable."""
    if not isinstance(entry, Mapping):
        return None
    query = entry.get("query")
    engine = entry.get("engine")
    timestamp = entry.get("timestamp")
    if not (query and engine and timestamp):
        return None
    if not all(isinstance(v, str) for v in (query, engine, timestamp)):
        return None
    query = query.strip()
    if not query:
        return None
    count = entry.get("resultsCount", 0)
    if not isinstance(count, int) or isinstance(count, bool) or count < 0:
        count = 0
    return HistoryEntry(
        query=query, engine=engine, timestamp=timestamp, results_count=count
    )


class _ResultBuilder:
    """Mutable accumulator turned into a frozen ``ImportResult``."""

    def __init__(self) -> None:
        self.engines = 0
        self.preferences = False
        self.history = 0
        self.errors: list[str] = []
        self.warnings: list[str] = []
        self.skipped_preferences = False
        self.skipped_history = False

    def build(self, dry_run: bool) -> ImportResult:
        return ImportResult.model_validate(
            {
                "success": True,
                "imported": {
                    "engines": self.engines,
                    "preferences": self.preferences,
                    "history": self.history,
                },
                "errors": self.errors,
                "warnings": self.warnings,
                "skipped": {
                    "preferences": self.skipped_preferences,
                    "history": self.skipped_history,
                },
                "dryRun": dry_run,
            }
        )


class ConfigImporter:
    """Apply configuration documents to a store.

    Args:
        store: Target store.
        engine_manager: Engine cache for *store*; reloaded after every
            import.
    """

    def __init__(
        self, store: SearchStore, engine_manager: EngineManager
    ) -> None:
        self.store = store
        self.engine_manager = engine_manager

    async def import_config(
        self,
        doc: Any,
        options: ImportOptions | None = None,
        *,
        dry_run: bool = False,
    ) -> ImportResult:
        """Import *doc* into the store.

        Args:
            doc: Parsed configuration document.
            options: Replace/skip flags; all False by default.
            dry_run: Only marks the result; use ``preview_import`` to
                actually avoid mutating the live store.

        Returns:
            ``ImportResult`` with ``success=True``.  Inspect ``errors``
            for per-item and per-resource failures.

        Raises:
            InvalidDocumentError: If *doc* is not a mapping, or fails
                validation while ``skip_validation`` is off.
        """
        options = options or ImportOptions()
        result = _ResultBuilder()

        if not isinstance(doc, Mapping):
            raise InvalidDocumentError(["Configuration must be an object"])
        if not options.skip_validation:
            report = validate_document(doc)
            if not report.valid:
                logger.warning(
                    "Rejected configuration: %s", "; ".join(report.errors)
                )
                raise InvalidDocumentError(report.errors, report.warnings)
            result.warnings.extend(report.warnings)

        await self._import_engines(doc, options, result)
        await self._import_preferences(doc, options, result)
        await self._import_history(doc, options, result)

        try:
            await self.engine_manager.load_engines()
        except Exception as exc:
            self.engine_manager.invalidate()
            logger.error("Engine reload after import failed: %s", exc)
            result.errors.append(f"Engine reload failed: {exc}")

        logger.info(
            "Import finished: %d engines, preferences=%s, %d history, "
            "%d errors, %d warnings",
            result.engines,
            result.preferences,
            result.history,
            len(result.errors),
            len(result.warnings),
        )
        return result.build(dry_run)

    async def preview_import(
        self, doc: Any, options: ImportOptions | None = None
    ) -> ImportResult:
        """Compute the result of importing *doc* without touching the store."""
        # Deferred: engine_manager imports the sync package.
        from searchdeck.engine_manager import EngineManager

        snapshot = await MemoryStore.snapshot_of(self.store)
        preview = ConfigImporter(snapshot, EngineManager(snapshot))
        return await preview.import_config(doc, options, dry_run=True)

    async def reset_to_defaults(
        self, defaults_doc: Mapping[str, Any] | None = None
    ) -> ImportResult:
        """Replace engines, preferences and history with the defaults."""
        doc = defaults_doc if defaults_doc is not None else load_default_document()
        options = ImportOptions(
            replace_engines=True,
            replace_preferences=True,
            replace_history=True,
        )
        logger.info("Resetting configuration to defaults")
        return await self.import_config(doc, options)

    # ------------------------------------------------------------------
    # Sub-resources
    # ------------------------------------------------------------------

    async def _import_engines(
        self, doc: Mapping[str, Any], options: ImportOptions,
        result: _ResultBuilder,
    ) -> None:
        engines = doc.get("engines")
        if not isinstance(engines, list):
            return
        strategy = create_strategy(
            REPLACE if options.replace_engines else MERGE
        )
        try:
            outcome = await strategy.apply(
                engines, self.store, self.engine_manager
            )
        except Exception as exc:
            logger.error("Engine import failed: %s", exc)
            result.errors.append(f"Engine import failed: {exc}")
            return
        result.engines = outcome.imported
        result.errors.extend(outcome.errors)
        result.warnings.extend(outcome.warnings)

    async def _import_preferences(
        self, doc: Mapping[str, Any], options: ImportOptions,
        result: _ResultBuilder,
    ) -> None:
        incoming = doc.get("preferences")
        if incoming is None:
            return
        try:
            existing = await self.store.get_preferences()
            if not should_import_preferences(
                incoming, existing is not None, options.replace_preferences
            ):
                logger.debug("Preferences already set; not overwriting")
                result.skipped_preferences = True
                return
            await self.store.update_preferences(
                validate_preferences(incoming)
            )
        except Exception as exc:
            logger.error("Preferences import failed: %s", exc)
            result.errors.append(f"Preferences import failed: {exc}")
            return
        result.preferences = True

    async def _import_history(
        self, doc: Mapping[str, Any], options: ImportOptions,
        result: _ResultBuilder,
    ) -> None:
        history = doc.get("searchHistory")
        if history is None:
            return
        if not should_import_history(history, options.replace_history):
            result.skipped_history = True
            return
        entries: list[HistoryEntry] = []
        for row in history:
            entry = _history_entry(row)
            if entry is None:
                result.errors.append("Invalid history entry format")
            else:
                entries.append(entry)
        try:
            kept = await self.store.replace_search_history(entries)
        except Exception as exc:
            logger.error("History import failed: %s", exc)
            result.errors.append(f"History import failed: {exc}")
            return
        result.history = kept

        dropped = len(entries) - kept
        if not dropped:
            return
        try:
            preferences = (
                await self.store.get_preferences() or PreferencesRecord()
            )
        except Exception as exc:
            logger.error("History import failed: %s", exc)
            result.errors.append(f"History import failed: {exc}")
            return
        if not preferences.enable_history:
            result.warnings.append(
                f"{dropped} history entries not recorded: "
                "search history is disabled"
            )
        else:
            result.warnings.append(
                f"{dropped} oldest history entries dropped: limit is "
                f"{preferences.max_history_items} entries"
            )
