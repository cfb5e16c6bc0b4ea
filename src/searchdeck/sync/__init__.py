"""Configuration export/import for searchdeck.

Modules:

- ``resolver``  -- duplicate detection, per-engine decisions, and the
  merge/replace import strategies.
- ``exporter``  -- ``ConfigExporter``: store -> ``ConfigurationDocument``.
- ``importer``  -- ``ConfigImporter``: validate -> resolve -> apply ->
  ``ImportResult``, plus dry-run preview and reset to defaults.
- ``codec``     -- document <-> JSON text, pretty or compact.
- ``reporter``  -- human-readable and JSON report formatting.

Usage example
-------------
::

    from searchdeck.engine_manager import EngineManager
    from searchdeck.models import ImportOptions
    from searchdeck.store import JsonFileStore
    from searchdeck.sync import ConfigExporter, ConfigImporter, parse_document

    store = JsonFileStore("store.json")
    manager = EngineManager(store)

    doc = await ConfigExporter(store).export_config(include_history=True)

    importer = ConfigImporter(store, manager)
    preview = await importer.preview_import(parse_document(text))
    result = await importer.import_config(
        parse_document(text), ImportOptions(replace_engines=True)
    )
"""

from .codec import (
    parse_document,
    read_document,
    serialize_document,
    write_document,
)
from .exporter import ConfigExporter, default_export_filename
from .importer import ConfigImporter, load_default_document
from .reporter import (
    format_config_summary,
    format_import_preview,
    format_import_result,
    format_validation_report,
    result_to_json,
)
from .resolver import (
    MergeStrategy,
    ReplaceStrategy,
    classify_engine,
    create_strategy,
    find_duplicate,
    plan_engine_import,
    should_import_history,
    should_import_preferences,
)

__all__ = [
    "ConfigExporter",
    "ConfigImporter",
    "MergeStrategy",
    "ReplaceStrategy",
    "classify_engine",
    "create_strategy",
    "default_export_filename",
    "find_duplicate",
    "format_config_summary",
    "format_import_preview",
    "format_import_result",
    "format_validation_report",
    "load_default_document",
    "parse_document",
    "plan_engine_import",
    "read_document",
    "result_to_json",
    "serialize_document",
    "should_import_history",
    "should_import_preferences",
    "write_document",
]
