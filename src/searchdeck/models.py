"""Pydantic models shared by the store, the engine manager and the sync layer.

Defines the core data contracts:

- ``EngineRecord``: a search-engine URL template owned by the store.
- ``PreferencesRecord``: the fixed set of user preferences.
- ``HistoryEntry``: one recorded search.
- ``ConfigurationDocument``: the portable export/import snapshot.
- ``ImportOptions``, ``ImportResult``: import request and outcome.
- ``ValidationReport``: result of validating a raw document.
- ``EngineAction``, ``EngineDecision``, ``EngineImportOutcome``:
  per-engine conflict resolution results.
- ``StoreStats``: counts reported by a store.

Attribute names are snake_case; the external JSON shape is camelCase via
the ``to_camel`` alias generator.  Models are frozen.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

CONFIG_VERSION = "1.0"

_CAMEL = {
    "frozen": True,
    "alias_generator": to_camel,
    "populate_by_name": True,
}


def now_iso() -> str:
    """Return the current UTC time as an ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Store-owned records
# ---------------------------------------------------------------------------


class EngineRecord(BaseModel):
    """A named search provider template.

    Attributes:
        id: Opaque identifier, stable across edits.
        name: Display name, unique case-insensitively.
        url: Search template containing one ``{query}`` placeholder.
        icon: Optional icon URL.
        color: Optional ``#RRGGBB`` colour.
        enabled: Whether the engine is offered for searching.
        is_default: Whether this is the default engine.
        sort_order: Display position (ascending).
        created_at: ISO 8601 creation timestamp.
        modified_at: ISO 8601 last-modification timestamp.
    """

    id: str
    name: str
    url: str
    icon: str | None = None
    color: str | None = None
    enabled: bool = True
    is_default: bool = False
    sort_order: int = 0
    created_at: str | None = None
    modified_at: str | None = None

    model_config = _CAMEL

    def sort_key(self) -> tuple[int, str]:
        """Key used everywhere engines are ordered."""
        return (self.sort_order, self.name.casefold())

    def to_external(self) -> dict[str, Any]:
        """Project to the camelCase shape used in configuration documents."""
        return self.model_dump(by_alias=True)


class PreferencesRecord(BaseModel):
    """User preferences with documented defaults."""

    default_engine: str = "google"
    theme: Literal["light", "dark", "auto"] = "light"
    results_per_page: int = Field(default=10, ge=5, le=100)
    open_in_new_tab: bool = True
    show_previews: bool = True
    auto_complete: bool = True
    enable_history: bool = True
    max_history_items: int = Field(default=1000, ge=0, le=10000)

    model_config = _CAMEL

    def to_external(self) -> dict[str, Any]:
        """Project to exactly the recognized camelCase key set."""
        return self.model_dump(by_alias=True)


class HistoryEntry(BaseModel):
    """One recorded search.  Immutable once created."""

    query: str
    engine: str
    timestamp: str
    results_count: int = 0

    model_config = _CAMEL


class StoreStats(BaseModel):
    """Record counts and an approximate size for a store.

    Attributes:
        engines: Number of engine records.
        search_history: Number of history entries.
        size: Human-readable size estimate (``"12.34 KB"``) or
            ``"Unknown"``.
    """

    engines: int
    search_history: int
    size: str = "Unknown"

    model_config = _CAMEL


# ---------------------------------------------------------------------------
# Configuration document
# ---------------------------------------------------------------------------


class DocumentMetadata(BaseModel):
    """Summary counts embedded in an exported document."""

    total_engines: int
    enabled_engines: int
    default_engine: str | None = None
    history_entries: int = 0
    includes_history: bool = False

    model_config = _CAMEL


class ConfigurationDocument(BaseModel):
    """Versioned, portable snapshot of engines, preferences and history.

    ``search_history`` is ``None`` (and omitted from the external shape)
    unless history was requested and at least one entry exists.
    """

    version: str = CONFIG_VERSION
    exported_at: str
    metadata: DocumentMetadata
    engines: list[EngineRecord] = []
    preferences: PreferencesRecord = Field(
        default_factory=PreferencesRecord
    )
    search_history: list[HistoryEntry] | None = None

    model_config = _CAMEL

    def to_dict(self) -> dict[str, Any]:
        """Return the external document shape as plain JSON-ready data."""
        data = self.model_dump(by_alias=True)
        if self.search_history is None:
            data.pop("searchHistory", None)
        return data


# ---------------------------------------------------------------------------
# Validation / import results
# ---------------------------------------------------------------------------


class ValidationReport(BaseModel):
    """Outcome of ``validate_document``."""

    valid: bool
    errors: list[str] = []
    warnings: list[str] = []

    model_config = {"frozen": True}


class ImportOptions(BaseModel):
    """Flags controlling an import.

    Attributes:
        replace_engines: Clear existing engines first (replace mode)
            instead of merging.
        replace_preferences: Overwrite preferences even when the store
            already holds some.
        replace_history: Replace search history with the imported one.
        skip_validation: Bypass document validation.
    """

    replace_engines: bool = False
    replace_preferences: bool = False
    replace_history: bool = False
    skip_validation: bool = False

    model_config = _CAMEL


class ImportCounts(BaseModel):
    """What an import actually wrote."""

    engines: int = 0
    preferences: bool = False
    history: int = 0

    model_config = _CAMEL


class SkippedResources(BaseModel):
    """Sub-resources present in the document but deliberately not imported."""

    preferences: bool = False
    history: bool = False

    model_config = _CAMEL


class ImportResult(BaseModel):
    """Structured summary of an import call.

    ``success`` means the call completed; callers must inspect
    ``errors`` for per-item or per-resource failures.
    """

    success: bool = True
    imported: ImportCounts = Field(default_factory=ImportCounts)
    errors: list[str] = []
    warnings: list[str] = []
    skipped: SkippedResources = Field(default_factory=SkippedResources)
    dry_run: bool = False

    model_config = _CAMEL

    @property
    def has_errors(self) -> bool:
        """True when at least one error was recorded."""
        return bool(self.errors)

    def to_dict(self) -> dict[str, Any]:
        """Return the camelCase shape for JSON output."""
        return self.model_dump(by_alias=True)


class EngineAction(str, Enum):
    """Possible outcomes for one imported engine."""

    ADD = "add"
    SKIP = "skip"
    REJECT = "reject"


class EngineDecision(BaseModel):
    """Conflict-resolution decision for one imported engine.

    Attributes:
        name: Display label of the candidate (``"<unnamed>"`` if absent).
        action: What should happen to the candidate.
        message: Warning (for SKIP) or error (for REJECT) text.
        duplicate_of: Id of the existing engine it collides with.
    """

    name: str
    action: EngineAction
    message: str | None = None
    duplicate_of: str | None = None

    model_config = {"frozen": True}


class EngineImportOutcome(BaseModel):
    """Aggregate result of importing a list of engines."""

    imported: int = 0
    errors: list[str] = []
    warnings: list[str] = []

    model_config = {"frozen": True}
