"""Unified configuration schema for searchdeck.

Defines Pydantic models for the YAML config structure with dedicated
sections for the store, exports and logging, plus an adapter that
flattens them into fallback values for ``load_settings()``.

Usage:
    from searchdeck.config_schema import build_config, to_fallbacks

    raw = load_hierarchical_config()
    unified = build_config(raw)
    settings = load_settings(yaml_fallbacks=to_fallbacks(unified))
"""

from __future__ import annotations

import logging
from typing import Any, Literal

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class StoreConfig(BaseModel):
    """Persistent store settings.

    All fields are optional: env vars and CLI args can supply them at
    runtime instead.
    """

    path: str | None = Field(
        default=None, description="Path of the JSON store file"
    )
    history_limit: int | None = Field(
        default=None,
        ge=1,
        le=10000,
        description="Maximum history entries included in exports",
    )

    model_config = {"frozen": True}


class ExportConfig(BaseModel):
    """Export and backup settings."""

    pretty: bool = Field(
        default=True, description="Indent exported documents"
    )
    include_history: bool = Field(
        default=False, description="Include search history in exports"
    )
    directory: str | None = Field(
        default=None, description="Directory for exports and backups"
    )

    model_config = {"frozen": True}


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
        format: ``"text"`` or ``"json"``.
    """

    level: str = Field(default="WARNING", description="Log level")
    file: str | None = Field(default=None, description="Log file path")
    format: Literal["text", "json"] = Field(
        default="text", description="Log record format"
    )

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level unified configuration.

    Every section has defaults, so ``UnifiedConfig()`` (zero-config) is
    always valid.
    """

    store: StoreConfig = Field(default_factory=StoreConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Factory function
# ---------------------------------------------------------------------------


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Missing sections get defaults.

    Args:
        raw_data: Merged configuration dictionary.

    Returns:
        Validated ``UnifiedConfig`` instance.
    """
    if not raw_data:
        return UnifiedConfig()

    return UnifiedConfig(**raw_data)


# ---------------------------------------------------------------------------
# Adapter: UnifiedConfig -> load_settings() fallbacks
# ---------------------------------------------------------------------------


def to_fallbacks(unified: UnifiedConfig) -> dict[str, Any]:
    """Flatten a ``UnifiedConfig`` into the fallback dict for
    ``load_settings()``.

    Only values that were actually set are included, so built-in
    defaults in ``load_settings()`` still apply for the rest.
    """
    fallbacks: dict[str, Any] = {
        "export_pretty": unified.export.pretty,
        "include_history": unified.export.include_history,
    }
    if unified.store.path:
        fallbacks["store_path"] = unified.store.path
    if unified.store.history_limit is not None:
        fallbacks["history_limit"] = unified.store.history_limit
    if unified.export.directory:
        fallbacks["export_directory"] = unified.export.directory
    return fallbacks
