"""
Input validation functions for searchdeck.

Pure checks (no I/O) for a single engine record, a preferences object
and a whole configuration document.  Engine checks return a boolean
or an ``(is_valid, reason)`` tuple; preferences are sanitized rather
than rejected; documents produce a ``ValidationReport``.
"""

import re
from collections.abc import Mapping
from typing import Any
from urllib.parse import urlsplit

from .models import CONFIG_VERSION, PreferencesRecord, ValidationReport

QUERY_PLACEHOLDER = "{query}"
MAX_ENGINE_NAME_LENGTH = 50

_COLOR_PATTERN = re.compile(r"#[0-9A-Fa-f]{6}")
_SCHEME_PATTERN = re.compile(r"[A-Za-z][A-Za-z0-9+.\-]*")
_HOST_SCHEMES = frozenset({"http", "https", "ftp", "ws", "wss"})


# ---------------------------------------------------------------------------
# Error message formatting helpers
# ---------------------------------------------------------------------------


def format_validation_error(field_name: str, reason: str) -> str:
    """
    Generate consistent error message for validation failures.

    Args:
        field_name: Human-readable field name (e.g., "Engine name")
        reason: Description of validation failure (e.g., "cannot be empty")

    Returns:
        Formatted error message string
    """
    return f"{field_name} {reason}"


# ---------------------------------------------------------------------------
# URL checks
# ---------------------------------------------------------------------------


def is_valid_url(value: Any) -> bool:
    """Return True if *value* parses as an absolute URL.

    Network schemes (http, https, ftp, ws, wss) need a hostname; other
    schemes (``data:``, ``mailto:``) need a non-empty body.
    """
    if not isinstance(value, str):
        return False
    text = value.strip()
    if not text or any(ch.isspace() for ch in text):
        return False
    try:
        parts = urlsplit(text)
        # Accessing .port raises ValueError for a malformed port.
        parts.port
    except ValueError:
        return False
    if not parts.scheme or not _SCHEME_PATTERN.fullmatch(parts.scheme):
        return False
    if parts.scheme.lower() in _HOST_SCHEMES:
        return bool(parts.hostname)
    return bool(parts.netloc or parts.path)


def is_valid_search_template(template: Any) -> bool:
    """Return True if *template* is a usable search URL template.

    Rules:
        - Starts with ``http://`` or ``https://``
        - Contains exactly one ``{query}`` placeholder
        - Parses as a URL once the placeholder is replaced by ``test``
    """
    if not isinstance(template, str):
        return False
    if not template.startswith(("http://", "https://")):
        return False
    if template.count(QUERY_PLACEHOLDER) != 1:
        return False
    return is_valid_url(template.replace(QUERY_PLACEHOLDER, "test"))


# ---------------------------------------------------------------------------
# Engine checks
# ---------------------------------------------------------------------------


def check_engine(candidate: Any) -> tuple[bool, str]:
    """
    Validate a single engine configuration.

    Args:
        candidate: Raw engine mapping (typically from an imported document)

    Returns:
        Tuple of (is_valid, error_message).
        Returns (True, "") if valid, (False, reason) if invalid.

    Validation rules:
        - Must be a mapping
        - Name must be a non-empty string of at most 50 characters
        - URL must be a valid search template (see is_valid_search_template)
        - Icon, if given, must parse as a URL
        - Color, if given, must be #RRGGBB
    """
    if not isinstance(candidate, Mapping):
        return (False, "Engine must be an object")

    name = candidate.get("name")
    if not isinstance(name, str) or not name.strip():
        return (
            False,
            format_validation_error("Engine name", "cannot be empty"),
        )
    if len(name.strip()) > MAX_ENGINE_NAME_LENGTH:
        return (
            False,
            format_validation_error(
                "Engine name",
                f"exceeds {MAX_ENGINE_NAME_LENGTH} characters",
            ),
        )

    url = candidate.get("url")
    if not url or not is_valid_search_template(url):
        return (
            False,
            format_validation_error(
                "Search URL",
                "must start with http(s):// and contain one {query} placeholder",
            ),
        )

    icon = candidate.get("icon")
    if icon and not is_valid_url(icon):
        return (
            False,
            format_validation_error("Icon URL", "is not a valid URL"),
        )

    color = candidate.get("color")
    if color and not (
        isinstance(color, str) and _COLOR_PATTERN.fullmatch(color)
    ):
        return (
            False,
            format_validation_error("Color", "must be in #RRGGBB format"),
        )

    return (True, "")


def validate_engine(candidate: Any) -> bool:
    """Return True if *candidate* is a valid engine configuration."""
    valid, _ = check_engine(candidate)
    return valid


# ---------------------------------------------------------------------------
# Preferences sanitizer
# ---------------------------------------------------------------------------


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


_PREFERENCE_RULES: dict[str, Any] = {
    "defaultEngine": lambda v: isinstance(v, str),
    "theme": lambda v: v in ("light", "dark", "auto"),
    "resultsPerPage": lambda v: _is_int(v) and 5 <= v <= 100,
    "openInNewTab": lambda v: isinstance(v, bool),
    "showPreviews": lambda v: isinstance(v, bool),
    "autoComplete": lambda v: isinstance(v, bool),
    "enableHistory": lambda v: isinstance(v, bool),
    "maxHistoryItems": lambda v: _is_int(v) and 0 <= v <= 10000,
}


def validate_preferences(candidate: Any) -> PreferencesRecord:
    """Sanitize a raw preferences object into a ``PreferencesRecord``.

    Never raises.  Starts from the defaults and overlays only the
    recognized keys whose values pass their type/range check; unknown
    keys and bad values are dropped (not clamped).

    Args:
        candidate: Anything; non-mappings yield the defaults.

    Returns:
        A fully valid ``PreferencesRecord``.
    """
    accepted: dict[str, Any] = {}
    if isinstance(candidate, Mapping):
        for key, rule in _PREFERENCE_RULES.items():
            if key not in candidate:
                continue
            value = candidate[key]
            try:
                ok = rule(value)
            except TypeError:
                ok = False
            if ok:
                accepted[key] = value
    return PreferencesRecord(**accepted)


# ---------------------------------------------------------------------------
# Whole-document validation
# ---------------------------------------------------------------------------


def validate_document(doc: Any) -> ValidationReport:
    """
    Validate a parsed configuration document.

    Args:
        doc: Parsed document (expected to be a mapping)

    Returns:
        ValidationReport with ``valid`` False when any error was found.

    Validation rules:
        - Document must be a mapping
        - Missing or mismatched ``version`` is a warning only
        - ``engines``, if present, must be a list; each element is checked
          and failures are reported with their index
        - ``preferences``, if present, must be a mapping
        - ``searchHistory``, if present and not a list, is a warning
    """
    if not isinstance(doc, Mapping):
        return ValidationReport(
            valid=False, errors=["Configuration must be an object"]
        )

    errors: list[str] = []
    warnings: list[str] = []

    version = doc.get("version")
    if not version:
        warnings.append("No version specified in configuration")
    elif version != CONFIG_VERSION:
        warnings.append(
            f"Configuration version {version} may not be fully "
            f"compatible with current version {CONFIG_VERSION}"
        )

    engines = doc.get("engines")
    if engines is not None:
        if not isinstance(engines, list):
            errors.append("Engines must be an array")
        else:
            for index, engine in enumerate(engines):
                valid, reason = check_engine(engine)
                if not valid:
                    errors.append(
                        f"Invalid engine configuration at index {index}: {reason}"
                    )

    # Individual preference values are sanitized on import, never rejected.
    preferences = doc.get("preferences")
    if preferences is not None and not isinstance(preferences, Mapping):
        errors.append(
            "Invalid preferences: "
            + format_validation_error("Preferences", "must be an object")
        )

    history = doc.get("searchHistory")
    if history is not None and not isinstance(history, list):
        warnings.append("Search history should be an array")

    return ValidationReport(
        valid=not errors, errors=errors, warnings=warnings
    )
