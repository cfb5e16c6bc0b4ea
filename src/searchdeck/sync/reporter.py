"""Import and export report formatting functions.

Provides human-readable and machine-readable output:

- ``format_import_result`` -- post-import summary.
- ``format_import_preview`` -- dry-run preview grouped by engine action.
- ``format_validation_report`` -- validation errors and warnings.
- ``format_config_summary`` -- overview of the current configuration.
- ``result_to_json`` -- structured dict for ``--json`` output.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from searchdeck.models import EngineAction

if TYPE_CHECKING:
    from searchdeck.models import (
        EngineDecision,
        ImportResult,
        ValidationReport,
    )

# ------------------------------------------------------------------
# Human-readable report
# ------------------------------------------------------------------


def _append_messages(lines: list[str], title: str, messages: list[str]) -> None:
    if not messages:
        return
    lines.append(f"{title}:")
    for message in messages:
        lines.append(f"  {message}")
    lines.append("")


def format_import_result(result: ImportResult) -> str:
    """Format an import result as human-readable text.

    Error and warning sections are only included when non-empty.

    Args:
        result: The completed import result.

    Returns:
        Multi-line formatted string.
    """
    lines: list[str] = []

    header = "Import report"
    if result.dry_run:
        header += " (DRY RUN)"
    lines.append(header)
    lines.append("")

    imported = result.imported
    lines.append(
        f"Imported {imported.engines} engines, "
        f"preferences: {'yes' if imported.preferences else 'no'}, "
        f"{imported.history} history entries"
    )
    skipped = [
        name
        for name, flag in (
            ("preferences", result.skipped.preferences),
            ("history", result.skipped.history),
        )
        if flag
    ]
    if skipped:
        lines.append(f"Not imported (already set or not requested): {', '.join(skipped)}")
    lines.append("")

    _append_messages(lines, "Errors", result.errors)
    _append_messages(lines, "Warnings", result.warnings)

    return "\n".join(lines).rstrip()


# ------------------------------------------------------------------
# Dry-run preview
# ------------------------------------------------------------------


def format_import_preview(
    result: ImportResult, decisions: Sequence[EngineDecision] = ()
) -> str:
    """Format a dry-run preview grouped by engine action.

    Args:
        result: Result of ``ConfigImporter.preview_import``.
        decisions: Per-engine plan from ``plan_engine_import``.

    Returns:
        Multi-line formatted string.
    """
    lines: list[str] = []
    lines.append("DRY RUN -- No changes will be made")
    lines.append("")

    groups: dict[EngineAction, list[EngineDecision]] = defaultdict(list)
    for decision in decisions:
        groups[decision.action].append(decision)

    for action in (EngineAction.ADD, EngineAction.SKIP, EngineAction.REJECT):
        if action not in groups:
            continue
        lines.append(f"[{action.value.upper()}]")
        for decision in groups[action]:
            if decision.message and action is not EngineAction.SKIP:
                lines.append(f"  {decision.message}")
            else:
                lines.append(f"  {decision.name}")
        lines.append("")

    if decisions and EngineAction.ADD not in groups:
        lines.append("No engines would be added.")
        lines.append("")

    lines.append(format_import_result(result))
    return "\n".join(lines).rstrip()


# ------------------------------------------------------------------
# Validation / summary
# ------------------------------------------------------------------


def format_validation_report(report: ValidationReport) -> str:
    """Format a validation report as human-readable text."""
    lines = ["Configuration is valid" if report.valid else "Configuration is INVALID"]
    lines.append("")
    _append_messages(lines, "Errors", report.errors)
    _append_messages(lines, "Warnings", report.warnings)
    return "\n".join(lines).rstrip()


def format_config_summary(summary: dict[str, Any]) -> str:
    """Format the dict returned by ``ConfigExporter.summarize_config``."""
    engines = summary["engines"]
    preferences = summary["preferences"]
    database = summary["database"]
    lines = [
        f"Engines: {engines['total']} total, {engines['enabled']} enabled",
        f"Default engine: {engines['default']}",
        f"Theme: {preferences['theme']}",
        f"Open in new tab: {preferences['openInNewTab']}",
        f"History: {'on' if preferences['enableHistory'] else 'off'} "
        f"(max {preferences['maxHistoryItems']} items)",
        f"History entries: {database['historyEntries']}",
        f"Estimated size: {database['estimatedSize']}",
    ]
    return "\n".join(lines)


# ------------------------------------------------------------------
# JSON output
# ------------------------------------------------------------------


def result_to_json(
    result: ImportResult, decisions: Sequence[EngineDecision] = ()
) -> dict:
    """Convert an import result to a structured dict for JSON serialisation.

    Args:
        result: The import result.
        decisions: Optional per-engine plan, included under ``"plan"``.

    Returns:
        The camelCase result shape, plus ``plan`` when decisions are given.
    """
    data = result.to_dict()
    if decisions:
        data["plan"] = [
            {
                "name": d.name,
                "action": d.action.value,
                **({"message": d.message} if d.message else {}),
                **({"duplicateOf": d.duplicate_of} if d.duplicate_of else {}),
            }
            for d in decisions
        ]
    return data
