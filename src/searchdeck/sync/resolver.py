"""Conflict resolution for imported engines.

The decision layer is pure and store-free:

- ``find_duplicate()``: name (case-insensitive) OR exact URL match.
- ``classify_engine()``: ADD / SKIP / REJECT for one candidate.
- ``plan_engine_import()``: decisions for a whole list, simulating
  sequential application so earlier additions are seen by later ones.
- ``should_import_preferences()`` / ``should_import_history()``: the
  per-resource import gates.

The strategy layer applies decisions to a store:

- ``MergeStrategy``: adds only non-duplicate, valid engines.
- ``ReplaceStrategy``: clears all engines, then adds every valid one.

The ``create_strategy()`` factory maps mode strings to strategy instances.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any, Protocol

from searchdeck.errors import PerItemDefectError
from searchdeck.models import (
    EngineAction,
    EngineDecision,
    EngineImportOutcome,
    EngineRecord,
)
from searchdeck.store import SearchStore, build_engine_record, generate_engine_id
from searchdeck.validators import check_engine

if TYPE_CHECKING:
    from searchdeck.engine_manager import EngineManager

logger = logging.getLogger(__name__)

MERGE = "merge"
REPLACE = "replace"


# ---------------------------------------------------------------------------
# Pure decisions
# ---------------------------------------------------------------------------


def candidate_label(candidate: Any) -> str:
    """Return a display label for an imported engine."""
    if isinstance(candidate, Mapping):
        name = candidate.get("name")
        if isinstance(name, str) and name.strip():
            return name.strip()
    return "<unnamed>"


def find_duplicate(
    candidate: Any, current: Sequence[EngineRecord]
) -> EngineRecord | None:
    """Return the existing engine *candidate* duplicates, if any.

    A candidate is a duplicate when its name matches case-insensitively
    OR its URL matches exactly.  Either key alone is sufficient, so a
    name collision with a different URL still counts.
    """
    if not isinstance(candidate, Mapping):
        return None
    name = candidate.get("name")
    url = candidate.get("url")
    name_key = (
        name.strip().casefold()
        if isinstance(name, str) and name.strip()
        else None
    )
    for engine in current:
        if name_key is not None and engine.name.strip().casefold() == name_key:
            return engine
        if isinstance(url, str) and url and engine.url == url:
            return engine
    return None


def classify_engine(
    candidate: Any, current: Sequence[EngineRecord], mode: str
) -> EngineDecision:
    """Decide what to do with one imported engine.

    Merge mode checks duplicates first, then validity.  Replace mode
    only checks validity since the existing engines are cleared.

    Raises:
        ValueError: If *mode* is not ``"merge"`` or ``"replace"``.
    """
    if mode not in _STRATEGY_MAP:
        raise ValueError(
            f"Unknown import mode: '{mode}'. Valid modes: {sorted(_STRATEGY_MAP.keys())}"
        )
    label = candidate_label(candidate)

    if mode == MERGE:
        duplicate = find_duplicate(candidate, current)
        if duplicate is not None:
            return EngineDecision(
                name=label,
                action=EngineAction.SKIP,
                message=f"Skipped duplicate engine: {label}",
                duplicate_of=duplicate.id,
            )

    valid, reason = check_engine(candidate)
    if not valid:
        return EngineDecision(
            name=label,
            action=EngineAction.REJECT,
            message=f"Invalid engine configuration: {label} ({reason})",
        )
    return EngineDecision(name=label, action=EngineAction.ADD)


def plan_engine_import(
    incoming: Sequence[Any], current: Sequence[EngineRecord], mode: str
) -> list[EngineDecision]:
    """Classify every candidate as if they were applied in order."""
    simulated = [] if mode == REPLACE else list(current)
    decisions: list[EngineDecision] = []
    for candidate in incoming:
        decision = classify_engine(candidate, simulated, mode)
        if decision.action is EngineAction.ADD:
            simulated.append(build_engine_record(candidate))
        decisions.append(decision)
    return decisions


def should_import_preferences(
    incoming: Any, has_existing: bool, replace: bool
) -> bool:
    """Preferences are imported only when present AND (forced OR none stored)."""
    return incoming is not None and (replace or not has_existing)


def should_import_history(history: Any, replace: bool) -> bool:
    """History is all-or-nothing: imported only as a list with replace set."""
    return isinstance(history, list) and replace


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------


class EngineImportStrategy(Protocol):
    """Protocol that all engine import strategies must satisfy."""

    mode: str

    async def apply(
        self,
        incoming: Sequence[Any],
        store: SearchStore,
        engine_manager: EngineManager,
    ) -> EngineImportOutcome:
        """Import *incoming* engines into *store*.

        Per-item problems are recorded in the outcome.  Store failures
        propagate.
        """
        ...  # pragma: no cover


async def _add_candidate(
    candidate: Mapping[str, Any],
    current: Sequence[EngineRecord],
    store: SearchStore,
    warnings: list[str],
    *,
    keep_default: bool = True,
) -> None:
    record = build_engine_record(candidate)
    if record.is_default and not keep_default:
        record = record.model_copy(update={"is_default": False})
    if record.id in {e.id for e in current}:
        new_id = generate_engine_id()
        warnings.append(
            f"Engine id '{record.id}' already in use; "
            f"imported {record.name} as '{new_id}'"
        )
        record = record.model_copy(update={"id": new_id})
    await store.add_engine(record)


class MergeStrategy:
    """Add non-duplicate engines; never touch existing ones.

    An imported ``isDefault`` flag is dropped when the store already has
    a default engine.
    """

    mode = MERGE

    async def apply(
        self,
        incoming: Sequence[Any],
        store: SearchStore,
        engine_manager: EngineManager,
    ) -> EngineImportOutcome:
        imported = 0
        errors: list[str] = []
        warnings: list[str] = []

        for candidate in incoming:
            # Re-read per candidate so earlier additions are visible.
            current = await store.get_all_engines()
            decision = classify_engine(candidate, current, MERGE)
            if decision.action is EngineAction.SKIP:
                logger.debug("%s", decision.message)
                warnings.append(decision.message or "")
                continue
            if decision.action is EngineAction.REJECT:
                errors.append(decision.message or "")
                continue
            # An existing default keeps its flag.
            has_default = any(e.is_default for e in current)
            try:
                await _add_candidate(
                    candidate, current, store, warnings,
                    keep_default=not has_default,
                )
            except PerItemDefectError as exc:
                errors.append(
                    f"Failed to import engine {decision.name}: {exc}"
                )
                continue
            imported += 1

        return EngineImportOutcome(
            imported=imported, errors=errors, warnings=warnings
        )


class ReplaceStrategy:
    """Clear every engine, then add each valid imported engine."""

    mode = REPLACE

    async def apply(
        self,
        incoming: Sequence[Any],
        store: SearchStore,
        engine_manager: EngineManager,
    ) -> EngineImportOutcome:
        removed = await engine_manager.remove_all_engines()
        logger.info("Replace import: removed %d existing engines", removed)

        imported = 0
        errors: list[str] = []
        warnings: list[str] = []

        for candidate in incoming:
            decision = classify_engine(candidate, [], REPLACE)
            if decision.action is EngineAction.REJECT:
                errors.append(decision.message or "")
                continue
            current = await store.get_all_engines()
            try:
                await _add_candidate(candidate, current, store, warnings)
            except PerItemDefectError as exc:
                errors.append(
                    f"Failed to import engine {decision.name}: {exc}"
                )
                continue
            imported += 1

        return EngineImportOutcome(
            imported=imported, errors=errors, warnings=warnings
        )


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


_STRATEGY_MAP: dict[str, type] = {
    MERGE: MergeStrategy,
    REPLACE: ReplaceStrategy,
}


def create_strategy(mode: str) -> EngineImportStrategy:
    """Create an engine import strategy for the given mode string.

    Args:
        mode: ``"merge"`` or ``"replace"``.

    Returns:
        An ``EngineImportStrategy`` implementation instance.

    Raises:
        ValueError: If the mode string is not recognised.
    """
    cls = _STRATEGY_MAP.get(mode)
    if cls is None:
        raise ValueError(
            f"Unknown import mode: '{mode}'. Valid modes: {sorted(_STRATEGY_MAP.keys())}"
        )
    return cls()  # type: ignore[return-value]
