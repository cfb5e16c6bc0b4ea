"""In-memory engine view with default-engine bookkeeping.

``EngineManager`` caches the store's engines in display order and keeps
the default-engine invariant: whenever at least one engine is enabled,
exactly one engine is the default.  Every mutation goes through the
store and then reloads the cache, so callers never see stale state.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import ValidationError

from searchdeck.errors import EngineManagerError, PerItemDefectError
from searchdeck.models import EngineRecord
from searchdeck.store import SearchStore, build_engine_record
from searchdeck.sync.resolver import find_duplicate
from searchdeck.validators import check_engine

logger = logging.getLogger(__name__)

# Fields callers may change through modify_engine().  The default flag is
# managed by set_default() only.
_EDITABLE_FIELDS = frozenset(
    {"name", "url", "icon", "color", "enabled", "sortOrder"}
)


def _choose_default(engines: Sequence[EngineRecord]) -> EngineRecord | None:
    """Return the engine that should carry the default flag.

    The first enabled default wins; otherwise the first enabled engine
    is promoted.  With nothing enabled, the first existing default (if
    any) is kept.
    """
    enabled = [e for e in engines if e.enabled]
    for engine in enabled:
        if engine.is_default:
            return engine
    if enabled:
        return enabled[0]
    for engine in engines:
        if engine.is_default:
            return engine
    return None


class EngineManager:
    """Cached, invariant-preserving access to the store's engines.

    Args:
        store: Backing ``SearchStore``.
    """

    def __init__(self, store: SearchStore) -> None:
        self.store = store
        self._engines: list[EngineRecord] | None = None

    # ------------------------------------------------------------------
    # Cache management
    # ------------------------------------------------------------------

    async def load_engines(self) -> list[EngineRecord]:
        """Reload engines from the store and repair the default flag."""
        engines = await self.store.get_all_engines()
        target = _choose_default(engines)
        defaults = [e for e in engines if e.is_default]
        if target is not None and (
            len(defaults) != 1 or defaults[0].id != target.id
        ):
            logger.info("Promoting '%s' to default engine", target.name)
            await self.store.set_default_engine(target.id)
            engines = await self.store.get_all_engines()
        self._engines = engines
        logger.debug("Loaded %d engines", len(engines))
        return list(engines)

    def invalidate(self) -> None:
        """Drop the cached view; the next read reloads from the store."""
        self._engines = None

    async def _cached(self) -> list[EngineRecord]:
        if self._engines is None:
            return await self.load_engines()
        return self._engines

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_all_engines(self) -> list[EngineRecord]:
        return list(await self._cached())

    async def get_enabled_engines(self) -> list[EngineRecord]:
        return [e for e in await self._cached() if e.enabled]

    async def get_default_engine(self) -> EngineRecord | None:
        for engine in await self._cached():
            if engine.is_default:
                return engine
        return None

    async def get_engine(self, engine_id: str) -> EngineRecord | None:
        for engine in await self._cached():
            if engine.id == engine_id:
                return engine
        return None

    async def search_engines(self, text: str) -> list[EngineRecord]:
        """Return engines whose name or URL contains *text* (case-insensitive)."""
        needle = text.strip().casefold()
        if not needle:
            return await self.get_all_engines()
        return [
            e
            for e in await self._cached()
            if needle in e.name.casefold() or needle in e.url.casefold()
        ]

    async def get_stats(self) -> dict[str, Any]:
        engines = await self._cached()
        enabled = sum(1 for e in engines if e.enabled)
        default = await self.get_default_engine()
        return {
            "total": len(engines),
            "enabled": enabled,
            "disabled": len(engines) - enabled,
            "default": default.name if default else None,
        }

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def _require(self, engine_id: str) -> EngineRecord:
        engine = await self.get_engine(engine_id)
        if engine is None:
            raise EngineManagerError(f"Engine '{engine_id}' not found")
        return engine

    async def add_engine(self, config: Mapping[str, Any]) -> EngineRecord:
        """Validate and add a new engine.

        Raises:
            EngineManagerError: If the config is invalid or duplicates an
                existing engine by name or URL.
        """
        valid, reason = check_engine(config)
        if not valid:
            raise EngineManagerError(f"Invalid engine configuration: {reason}")

        engines = await self._cached()
        duplicate = find_duplicate(config, engines)
        if duplicate is not None:
            raise EngineManagerError(
                f"Engine '{config['name']}' duplicates existing engine "
                f"'{duplicate.name}'"
            )

        fields = {**config, "isDefault": False}
        if fields.get("id") in {e.id for e in engines}:
            fields.pop("id")
        record = build_engine_record(fields)
        if "sortOrder" not in config and engines:
            record = record.model_copy(
                update={"sort_order": max(e.sort_order for e in engines) + 1}
            )
        try:
            await self.store.add_engine(record)
        except PerItemDefectError as exc:
            raise EngineManagerError(str(exc)) from exc
        await self.load_engines()
        return await self._require(record.id)

    async def modify_engine(
        self, engine_id: str, updates: Mapping[str, Any]
    ) -> EngineRecord:
        """Apply camelCase *updates* to an engine.

        Only name, url, icon, color, enabled and sortOrder may change.
        """
        existing = await self._require(engine_id)
        changes = {k: v for k, v in updates.items() if k in _EDITABLE_FIELDS}
        candidate = {**existing.to_external(), **changes}

        valid, reason = check_engine(candidate)
        if not valid:
            raise EngineManagerError(f"Invalid engine configuration: {reason}")

        others = [e for e in await self._cached() if e.id != engine_id]
        duplicate = find_duplicate(candidate, others)
        if duplicate is not None:
            raise EngineManagerError(
                f"Engine '{candidate['name']}' duplicates existing engine "
                f"'{duplicate.name}'"
            )
        if changes.get("enabled") is False and existing.enabled:
            if not any(e.enabled for e in others):
                raise EngineManagerError("Cannot disable all engines")

        try:
            normalized = EngineRecord.model_validate(
                {**candidate, "name": str(candidate["name"]).strip()}
            )
        except ValidationError as exc:
            raise EngineManagerError(
                f"Invalid engine configuration: {exc}"
            ) from exc
        try:
            await self.store.update_engine(
                engine_id,
                normalized.model_dump(
                    exclude={"id", "is_default", "created_at", "modified_at"}
                ),
            )
        except PerItemDefectError as exc:
            raise EngineManagerError(str(exc)) from exc
        await self.load_engines()
        return await self._require(engine_id)

    async def delete_engine(self, engine_id: str) -> None:
        """Delete an engine, promoting a successor if it was the default.

        Raises:
            EngineManagerError: If it is the only engine.
        """
        engine = await self._require(engine_id)
        engines = await self._cached()
        if len(engines) <= 1:
            raise EngineManagerError("Cannot delete the only engine")
        await self.store.delete_engine(engine_id)
        if engine.is_default:
            logger.info("Deleted default engine '%s'", engine.name)
        await self.load_engines()

    async def remove_all_engines(self) -> int:
        """Delete every engine.  Used by replace-mode import."""
        engines = await self.store.get_all_engines()
        for engine in engines:
            await self.store.delete_engine(engine.id)
        self._engines = []
        logger.debug("Removed %d engines", len(engines))
        return len(engines)

    async def set_default(self, engine_id: str) -> None:
        """Make *engine_id* the only default engine."""
        engine = await self._require(engine_id)
        if not engine.enabled:
            raise EngineManagerError(
                f"Cannot make disabled engine '{engine.name}' the default"
            )
        await self.store.set_default_engine(engine_id)
        await self.load_engines()

    async def toggle_engine(self, engine_id: str, enabled: bool) -> None:
        """Enable or disable an engine.

        Disabling the default engine promotes the next enabled engine.
        """
        engine = await self._require(engine_id)
        if engine.enabled == enabled:
            return
        if not enabled:
            others = [
                e for e in await self._cached()
                if e.enabled and e.id != engine_id
            ]
            if not others:
                raise EngineManagerError("Cannot disable all engines")
        updates: dict[str, Any] = {"enabled": enabled}
        if not enabled:
            updates["is_default"] = False
        await self.store.update_engine(engine_id, updates)
        await self.load_engines()

    async def update_sort_order(self, engine_ids: Sequence[str]) -> None:
        """Assign sort orders 0..n-1 following *engine_ids*."""
        known = {e.id for e in await self._cached()}
        unknown = [eid for eid in engine_ids if eid not in known]
        if unknown:
            raise EngineManagerError(
                f"Unknown engine ids: {', '.join(unknown)}"
            )
        for index, engine_id in enumerate(engine_ids):
            await self.store.update_engine(engine_id, {"sort_order": index})
        await self.load_engines()
