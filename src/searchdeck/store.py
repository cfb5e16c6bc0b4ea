"""Persistent store for engines, preferences and search history.

``SearchStore`` is the collaborator interface consumed by the sync
layer and the engine manager.  Two implementations are provided:

* ``MemoryStore`` -- process-local state; also used as a disposable
  snapshot when previewing an import.
* ``JsonFileStore`` -- ``MemoryStore`` persisted to a single JSON file.

Key design choices:

* **Atomic writes** -- ``file_handler.write_file`` writes a temp file then calls
  ``os.replace()`` so readers never see partial data.
* **Serialize on the loop** -- state is rendered to text on the event
  loop thread; only the disk write runs in the thread pool.
* **Lazy load** -- the file is read on first access, and re-read after
  a failed write so memory never runs ahead of disk.
"""

from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any, Protocol

from pydantic import ValidationError

from .core.async_utils import run_sync
from .errors import PerItemDefectError, StoreFailureError
from .file_handler import decode_text, write_file
from .models import (
    EngineRecord,
    HistoryEntry,
    PreferencesRecord,
    StoreStats,
    now_iso,
)

logger = logging.getLogger(__name__)

STATE_VERSION = 1


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


class SearchStore(Protocol):
    """Interface every store implementation must satisfy."""

    async def get_all_engines(self) -> list[EngineRecord]:
        """Return all engines ordered by ``(sort_order, name)``."""
        ...  # pragma: no cover

    async def get_engine(self, engine_id: str) -> EngineRecord | None:
        """Return one engine, or ``None`` if absent."""
        ...  # pragma: no cover

    async def add_engine(self, record: EngineRecord) -> str:
        """Insert *record* and return its id."""
        ...  # pragma: no cover

    async def update_engine(
        self, engine_id: str, updates: Mapping[str, Any]
    ) -> EngineRecord:
        """Apply snake_case field *updates* and return the new record."""
        ...  # pragma: no cover

    async def delete_engine(self, engine_id: str) -> None:
        """Remove an engine.  No-op if absent."""
        ...  # pragma: no cover

    async def set_default_engine(self, engine_id: str) -> None:
        """Flag *engine_id* as the only default engine."""
        ...  # pragma: no cover

    async def get_preferences(self) -> PreferencesRecord | None:
        """Return stored preferences, or ``None`` if never saved."""
        ...  # pragma: no cover

    async def update_preferences(self, record: PreferencesRecord) -> None:
        """Persist the full preferences record."""
        ...  # pragma: no cover

    async def get_search_history(
        self, limit: int | None = None
    ) -> list[HistoryEntry]:
        """Return history newest first, at most *limit* entries."""
        ...  # pragma: no cover

    async def add_search_history(
        self,
        query: str,
        engine: str,
        *,
        timestamp: str | None = None,
        results_count: int = 0,
    ) -> bool:
        """Record a search.  Returns False if history is disabled."""
        ...  # pragma: no cover

    async def replace_search_history(
        self, entries: Sequence[HistoryEntry]
    ) -> int:
        """Replace all history in one write.  Returns the number kept."""
        ...  # pragma: no cover

    async def clear_search_history(self) -> None:
        """Remove all history entries."""
        ...  # pragma: no cover

    async def get_stats(self) -> StoreStats:
        """Return record counts and a size estimate."""
        ...  # pragma: no cover


# ---------------------------------------------------------------------------
# Record helpers
# ---------------------------------------------------------------------------


def generate_engine_id() -> str:
    """Return a fresh opaque engine identifier."""
    return uuid.uuid4().hex


def build_engine_record(
    config: Mapping[str, Any], engine_id: str | None = None
) -> EngineRecord:
    """Normalize a camelCase engine mapping into an ``EngineRecord``.

    Fields are defaulted the way a freshly added engine would be:
    enabled unless explicitly ``False``, not default, sort order 0.
    Timestamps from *config* are kept when they are strings.

    Args:
        config: Engine mapping (already validated by the caller).
        engine_id: Explicit id; overrides ``config["id"]``.

    Returns:
        A new ``EngineRecord``.
    """
    now = now_iso()
    raw_id = engine_id or config.get("id")
    sort_order = config.get("sortOrder", 0)
    if not isinstance(sort_order, int) or isinstance(sort_order, bool):
        sort_order = 0
    created_at = config.get("createdAt")
    modified_at = config.get("modifiedAt")
    return EngineRecord(
        id=str(raw_id) if raw_id not in (None, "") else generate_engine_id(),
        name=str(config["name"]).strip(),
        url=config["url"],
        icon=config.get("icon") or None,
        color=config.get("color") or None,
        enabled=config.get("enabled") is not False,
        is_default=config.get("isDefault") is True,
        sort_order=sort_order,
        created_at=created_at if isinstance(created_at, str) else now,
        modified_at=modified_at if isinstance(modified_at, str) else now,
    )


def _format_size(num_bytes: int) -> str:
    if num_bytes > 1024 * 1024:
        return f"{num_bytes / (1024 * 1024):.2f} MB"
    return f"{num_bytes / 1024:.2f} KB"


# ---------------------------------------------------------------------------
# In-memory store
# ---------------------------------------------------------------------------


class MemoryStore:
    """Store that keeps all state in process memory.

    Args:
        engines: Initial engines.
        preferences: Initial preferences (``None`` means never saved).
        history: Initial history, oldest first.
    """

    def __init__(
        self,
        engines: list[EngineRecord] | None = None,
        preferences: PreferencesRecord | None = None,
        history: list[HistoryEntry] | None = None,
    ) -> None:
        self._engines: dict[str, EngineRecord] = {
            e.id: e for e in engines or []
        }
        self._preferences = preferences
        self._history: list[HistoryEntry] = list(history or [])

    @classmethod
    async def snapshot_of(cls, store: SearchStore) -> MemoryStore:
        """Copy the current state of any store into a new ``MemoryStore``."""
        engines = await store.get_all_engines()
        preferences = await store.get_preferences()
        history = await store.get_search_history()
        return cls(engines, preferences, list(reversed(history)))

    # ------------------------------------------------------------------
    # Persistence hooks (no-ops in memory)
    # ------------------------------------------------------------------

    async def _ensure_loaded(self) -> None:
        return None

    async def _commit(self) -> None:
        return None

    # ------------------------------------------------------------------
    # Engines
    # ------------------------------------------------------------------

    async def get_all_engines(self) -> list[EngineRecord]:
        await self._ensure_loaded()
        return sorted(self._engines.values(), key=EngineRecord.sort_key)

    async def get_engine(self, engine_id: str) -> EngineRecord | None:
        await self._ensure_loaded()
        return self._engines.get(engine_id)

    async def add_engine(self, record: EngineRecord) -> str:
        await self._ensure_loaded()
        if record.id in self._engines:
            raise PerItemDefectError(
                f"Engine id '{record.id}' already exists"
            )
        self._engines[record.id] = record
        await self._commit()
        logger.debug("Added engine %s (%s)", record.name, record.id)
        return record.id

    async def update_engine(
        self, engine_id: str, updates: Mapping[str, Any]
    ) -> EngineRecord:
        await self._ensure_loaded()
        existing = self._engines.get(engine_id)
        if existing is None:
            raise PerItemDefectError(f"Engine '{engine_id}' not found")
        merged = {**existing.model_dump(), **updates, "id": engine_id}
        merged["modified_at"] = now_iso()
        try:
            updated = EngineRecord.model_validate(merged)
        except ValidationError as exc:
            raise PerItemDefectError(
                f"Invalid update for engine '{engine_id}': {exc}"
            ) from exc
        self._engines[engine_id] = updated
        await self._commit()
        return updated

    async def delete_engine(self, engine_id: str) -> None:
        await self._ensure_loaded()
        if self._engines.pop(engine_id, None) is not None:
            await self._commit()
            logger.debug("Deleted engine %s", engine_id)

    async def set_default_engine(self, engine_id: str) -> None:
        await self._ensure_loaded()
        if engine_id not in self._engines:
            raise PerItemDefectError(f"Engine '{engine_id}' not found")
        for eid, engine in list(self._engines.items()):
            flag = eid == engine_id
            if engine.is_default != flag:
                self._engines[eid] = engine.model_copy(
                    update={"is_default": flag, "modified_at": now_iso()}
                )
        await self._commit()

    # ------------------------------------------------------------------
    # Preferences
    # ------------------------------------------------------------------

    async def get_preferences(self) -> PreferencesRecord | None:
        await self._ensure_loaded()
        return self._preferences

    async def update_preferences(self, record: PreferencesRecord) -> None:
        await self._ensure_loaded()
        self._preferences = record
        await self._commit()

    # ------------------------------------------------------------------
    # Search history
    # ------------------------------------------------------------------

    async def get_search_history(
        self, limit: int | None = None
    ) -> list[HistoryEntry]:
        await self._ensure_loaded()
        newest_first = sorted(
            self._history, key=lambda h: h.timestamp, reverse=True
        )
        if limit is not None:
            return newest_first[:limit]
        return newest_first

    async def add_search_history(
        self,
        query: str,
        engine: str,
        *,
        timestamp: str | None = None,
        results_count: int = 0,
    ) -> bool:
        await self._ensure_loaded()
        preferences = self._preferences or PreferencesRecord()
        if not preferences.enable_history:
            return False

        self._history.append(
            HistoryEntry(
                query=query.strip(),
                engine=engine,
                timestamp=timestamp or now_iso(),
                results_count=results_count,
            )
        )
        self._trim_history(preferences.max_history_items)
        await self._commit()
        return True

    async def replace_search_history(
        self, entries: Sequence[HistoryEntry]
    ) -> int:
        """Swap in *entries* with a single commit.

        Nothing is kept when the stored preferences disable history;
        otherwise the oldest entries beyond ``maxHistoryItems`` are dropped.
        """
        await self._ensure_loaded()
        preferences = self._preferences or PreferencesRecord()
        self._history = list(entries) if preferences.enable_history else []
        self._trim_history(preferences.max_history_items)
        await self._commit()
        return len(self._history)

    async def clear_search_history(self) -> None:
        await self._ensure_loaded()
        self._history = []
        await self._commit()

    def _trim_history(self, max_items: int) -> None:
        """Drop the oldest entries beyond *max_items*."""
        if len(self._history) <= max_items:
            return
        ordered = sorted(self._history, key=lambda h: h.timestamp)
        self._history = ordered[len(ordered) - max_items :]

    # ------------------------------------------------------------------
    # Stats / serialization
    # ------------------------------------------------------------------

    async def get_stats(self) -> StoreStats:
        await self._ensure_loaded()
        return StoreStats(
            engines=len(self._engines),
            search_history=len(self._history),
            size=self._estimate_size(),
        )

    def _estimate_size(self) -> str:
        payload = json.dumps(self._to_state())
        return _format_size(len(payload.encode("utf-8")))

    def _to_state(self) -> dict[str, Any]:
        return {
            "version": STATE_VERSION,
            "engines": [
                e.to_external()
                for e in sorted(
                    self._engines.values(), key=EngineRecord.sort_key
                )
            ],
            "preferences": (
                self._preferences.to_external()
                if self._preferences is not None
                else None
            ),
            "searchHistory": [
                h.model_dump(by_alias=True) for h in self._history
            ],
        }

    def _load_state(self, state: Mapping[str, Any]) -> None:
        engines = [
            EngineRecord.model_validate(e)
            for e in state.get("engines") or []
        ]
        preferences = state.get("preferences")
        self._engines = {e.id: e for e in engines}
        self._preferences = (
            PreferencesRecord.model_validate(preferences)
            if preferences is not None
            else None
        )
        self._history = [
            HistoryEntry.model_validate(h)
            for h in state.get("searchHistory") or []
        ]


# ---------------------------------------------------------------------------
# JSON file store
# ---------------------------------------------------------------------------


class JsonFileStore(MemoryStore):
    """``MemoryStore`` persisted to a JSON file.

    Args:
        path: Location of the store file.  The parent directory is
            created on first write.
    """

    def __init__(self, path: Path | str) -> None:
        super().__init__()
        self._path = Path(path)
        self._loaded = False

    @property
    def path(self) -> Path:
        return self._path

    async def _ensure_loaded(self) -> None:
        if self._loaded:
            return
        try:
            state = await run_sync(self._read_state)
        except OSError as exc:
            raise StoreFailureError(
                f"Failed to read store {self._path}: {exc}"
            ) from exc
        except ValueError as exc:
            raise StoreFailureError(
                f"Store file {self._path} is corrupt: {exc}"
            ) from exc

        if state is None:
            logger.debug("No store file at %s -- starting empty", self._path)
            self._load_state({})
        elif not isinstance(state, dict):
            raise StoreFailureError(
                f"Store file {self._path} has non-object root"
            )
        else:
            try:
                self._load_state(state)
            except ValidationError as exc:
                raise StoreFailureError(
                    f"Store file {self._path} is corrupt: {exc}"
                ) from exc
        self._loaded = True

    async def _commit(self) -> None:
        payload = json.dumps(self._to_state(), indent=2, ensure_ascii=False)
        try:
            await run_sync(write_file, self._path, payload)
        except OSError as exc:
            # Force a re-read so memory does not run ahead of disk.
            self._loaded = False
            raise StoreFailureError(
                f"Failed to write store {self._path}: {exc}"
            ) from exc

    def _estimate_size(self) -> str:
        try:
            return _format_size(self._path.stat().st_size)
        except OSError:
            return super()._estimate_size()

    def _read_state(self) -> Any:
        if not self._path.exists():
            return None
        text, _ = decode_text(self._path.read_bytes())
        return json.loads(text)

