"""Exception types for searchdeck.

Callers branch on the exception class rather than on message text:

- ``MalformedDocumentError``: document text is not parseable JSON.
- ``InvalidDocumentError``: document parses but fails validation.
- ``StoreFailureError``: the persistent store could not be read or written.
- ``PerItemDefectError``: a single engine or history row was rejected.
- ``ExportError``: an export could not be assembled.
- ``EngineManagerError``: an engine management operation was refused.
"""

from __future__ import annotations


class SearchDeckError(Exception):
    """Base class for all searchdeck errors."""


class MalformedDocumentError(SearchDeckError):
    """Configuration document text failed to parse.

    Attributes:
        line: 1-based line of the syntax error, when known.
        column: 1-based column of the syntax error, when known.
    """

    def __init__(
        self,
        message: str,
        line: int | None = None,
        column: int | None = None,
    ) -> None:
        super().__init__(message)
        self.line = line
        self.column = column


class InvalidDocumentError(SearchDeckError):
    """Configuration document is structurally invalid.

    Attributes:
        errors: Validation errors that made the document invalid.
        warnings: Non-fatal validation findings.
    """

    def __init__(
        self,
        errors: list[str],
        warnings: list[str] | None = None,
    ) -> None:
        super().__init__("Invalid configuration: " + ", ".join(errors))
        self.errors = list(errors)
        self.warnings = list(warnings or [])


class StoreFailureError(SearchDeckError):
    """The persistent store is unavailable or a read/write failed."""


class PerItemDefectError(SearchDeckError):
    """A single record was rejected; sibling records are unaffected."""


class ExportError(SearchDeckError):
    """Building an export document failed."""


class EngineManagerError(SearchDeckError, ValueError):
    """An engine management operation was refused or failed."""
