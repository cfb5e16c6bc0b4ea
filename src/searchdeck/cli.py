"""Command line front end for searchdeck.

Subcommands: export, import, validate, backup, summary, reset.

Exit codes:
    0  success
    1  fatal error (malformed/invalid document, store or export failure,
       bad configuration)
    2  import completed but recorded errors
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from searchdeck import __version__
from searchdeck.config import Settings, load_settings
from searchdeck.config_loader import (
    discover_config_files,
    load_hierarchical_config,
)
from searchdeck.config_schema import UnifiedConfig, build_config, to_fallbacks
from searchdeck.engine_manager import EngineManager
from searchdeck.errors import SearchDeckError
from searchdeck.logger import setup_logging
from searchdeck.models import ImportOptions
from searchdeck.store import JsonFileStore
from searchdeck.sync import (
    ConfigExporter,
    ConfigImporter,
    default_export_filename,
    format_config_summary,
    format_import_preview,
    format_import_result,
    format_validation_report,
    plan_engine_import,
    read_document,
    result_to_json,
    serialize_document,
    write_document,
)
from searchdeck.sync.resolver import MERGE, REPLACE
from searchdeck.validators import validate_document

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_PARTIAL = 2


def _stderr_print(msg: str) -> None:
    print(msg, file=sys.stderr, flush=True)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


def load_runtime_config(
    overrides: dict[str, Any] | None = None,
) -> tuple[Settings, UnifiedConfig]:
    """Resolve settings from CLI > env (.env loaded first) > YAML > defaults.

    Raises:
        ValueError: If a configuration value is invalid.
    """
    # .env first so ${VAR} interpolation in YAML can use its values
    load_dotenv()

    unified = UnifiedConfig()
    config_files = discover_config_files()
    if config_files:
        unified = build_config(load_hierarchical_config())
        logger.debug("Configuration file: %s", config_files[0])

    overrides = overrides or {}
    settings = load_settings(
        store=overrides.get("store"),
        compact=overrides.get("compact", False),
        debug=overrides.get("debug", False),
        yaml_fallbacks=to_fallbacks(unified),
    )
    return settings, unified


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


async def _cmd_export(
    args: argparse.Namespace, settings: Settings, store: JsonFileStore
) -> int:
    exporter = ConfigExporter(store, history_limit=settings.history_limit)
    doc = await exporter.export_config(
        include_history=args.include_history or settings.include_history
    )
    if args.output == "-":
        print(serialize_document(doc, pretty=settings.export_pretty))
        return EXIT_OK

    target = Path(args.output) if args.output else (
        Path(settings.export_directory) / default_export_filename()
    )
    path, _ = await write_document(target, doc, pretty=settings.export_pretty)
    print(f"Exported {doc.metadata.total_engines} engines to {path}")
    return EXIT_OK


async def _cmd_import(
    args: argparse.Namespace, settings: Settings, store: JsonFileStore
) -> int:
    doc = await read_document(args.file)
    options = ImportOptions(
        replace_engines=args.replace_engines,
        replace_preferences=args.replace_preferences,
        replace_history=args.replace_history,
        skip_validation=args.skip_validation,
    )
    importer = ConfigImporter(store, EngineManager(store))

    decisions = []
    if args.dry_run:
        result = await importer.preview_import(doc, options)
        engines = doc.get("engines")
        if isinstance(engines, list):
            decisions = plan_engine_import(
                engines,
                await store.get_all_engines(),
                REPLACE if options.replace_engines else MERGE,
            )
    else:
        result = await importer.import_config(doc, options)

    if args.json:
        print(json.dumps(result_to_json(result, decisions), indent=2))
    elif args.dry_run:
        print(format_import_preview(result, decisions))
    else:
        print(format_import_result(result))
    return EXIT_PARTIAL if result.has_errors else EXIT_OK


async def _cmd_validate(
    args: argparse.Namespace, settings: Settings, store: JsonFileStore
) -> int:
    report = validate_document(await read_document(args.file))
    print(format_validation_report(report))
    return EXIT_OK if report.valid else EXIT_FATAL


async def _cmd_backup(
    args: argparse.Namespace, settings: Settings, store: JsonFileStore
) -> int:
    directory = Path(args.directory or settings.export_directory).expanduser()
    directory.mkdir(parents=True, exist_ok=True)
    exporter = ConfigExporter(store, history_limit=settings.history_limit)
    doc = await exporter.export_config(include_history=True)
    path, _ = await write_document(
        directory / default_export_filename(backup=True), doc, pretty=True
    )
    print(f"Backup written to {path}")
    return EXIT_OK


async def _cmd_summary(
    args: argparse.Namespace, settings: Settings, store: JsonFileStore
) -> int:
    summary = await ConfigExporter(store).summarize_config()
    if summary is None:
        _stderr_print("ERROR: Failed to read configuration summary")
        return EXIT_FATAL
    if args.json:
        print(json.dumps(summary, indent=2))
    else:
        print(format_config_summary(summary))
    return EXIT_OK


async def _cmd_reset(
    args: argparse.Namespace, settings: Settings, store: JsonFileStore
) -> int:
    importer = ConfigImporter(store, EngineManager(store))
    result = await importer.reset_to_defaults()
    print(format_import_result(result))
    return EXIT_PARTIAL if result.has_errors else EXIT_OK


_COMMANDS = {
    "export": _cmd_export,
    "import": _cmd_import,
    "validate": _cmd_validate,
    "backup": _cmd_backup,
    "summary": _cmd_summary,
    "reset": _cmd_reset,
}


async def main(args: argparse.Namespace, settings: Settings) -> int:
    """Run one subcommand and return its exit code."""
    store = JsonFileStore(settings.store_path)
    logger.debug("Running '%s' against %s", args.command, store.path)
    return await _COMMANDS[args.command](args, settings, store)


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="searchdeck",
        description="searchdeck - export and import search engine configurations",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Export engines and preferences to today's file
  searchdeck export

  # Export everything, including history, to stdout
  searchdeck export --include-history --output -

  # Preview an import without changing anything
  searchdeck import backup.json --dry-run

  # Replace all engines with the ones in a file
  searchdeck import team-engines.json --replace-engines
        """,
    )
    parser.add_argument(
        "--store",
        help="Store file path (takes precedence over SEARCHDECK_STORE env var and config files)",
    )
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug logging"
    )
    parser.add_argument("--log-file", help="Also write logs to this file")
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        default=None,
        help="Log record format (default: text)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"searchdeck version {__version__}",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    export = sub.add_parser("export", help="Export configuration to JSON")
    export.add_argument(
        "--output", "-o", help="Output file ('-' for stdout)"
    )
    export.add_argument(
        "--include-history",
        action="store_true",
        help="Include search history",
    )
    export.add_argument(
        "--compact", action="store_true", help="Write single-line JSON"
    )

    imp = sub.add_parser("import", help="Import configuration from JSON")
    imp.add_argument("file", help="Configuration document to import")
    imp.add_argument(
        "--replace-engines",
        action="store_true",
        help="Delete existing engines before importing",
    )
    imp.add_argument(
        "--replace-preferences",
        action="store_true",
        help="Overwrite existing preferences",
    )
    imp.add_argument(
        "--replace-history",
        action="store_true",
        help="Replace search history with the imported one",
    )
    imp.add_argument(
        "--skip-validation",
        action="store_true",
        help="Do not validate the document first",
    )
    imp.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would change without writing",
    )
    imp.add_argument(
        "--json", action="store_true", help="Print the result as JSON"
    )

    validate = sub.add_parser("validate", help="Validate a configuration document")
    validate.add_argument("file", help="Configuration document to check")

    backup = sub.add_parser("backup", help="Write a timestamped full backup")
    backup.add_argument("--directory", "-d", help="Backup directory")

    summary = sub.add_parser("summary", help="Show a configuration overview")
    summary.add_argument(
        "--json", action="store_true", help="Print the summary as JSON"
    )

    sub.add_parser("reset", help="Replace everything with the built-in defaults")

    return parser


def run(argv: list[str] | None = None) -> None:
    """Entry point that handles errors gracefully and parses CLI arguments."""
    parser = build_parser()
    args = parser.parse_args(argv)

    overrides: dict[str, Any] = {"debug": args.debug}
    if args.store:
        overrides["store"] = args.store
    if getattr(args, "compact", False):
        overrides["compact"] = True

    try:
        settings, unified = load_runtime_config(overrides)
    except (ValueError, OSError, yaml.YAMLError) as e:
        _stderr_print(f"ERROR: Configuration error: {e}")
        sys.exit(EXIT_FATAL)

    # YAML level applies unless LOG_LEVEL is set
    os.environ.setdefault("LOG_LEVEL", unified.logging.level)
    setup_logging(
        mode="cli",
        debug=args.debug,
        log_file=args.log_file or unified.logging.file,
        debug_format=args.log_format or unified.logging.format,
    )

    try:
        code = asyncio.run(main(args, settings))
    except (SearchDeckError, ValueError) as e:
        logger.debug("Command failed", exc_info=True)
        _stderr_print(f"ERROR: {e}")
        sys.exit(EXIT_FATAL)
    except KeyboardInterrupt:
        _stderr_print("\nInterrupted.")
        sys.exit(EXIT_FATAL)
    sys.exit(code)


if __name__ == "__main__":
    run()
