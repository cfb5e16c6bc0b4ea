"""Configuration document <-> JSON text.

Serialization comes in two variants: pretty (2-space indented,
multi-line) and compact (single line, no whitespace).  Parsing only
checks syntax; syntax errors raise ``MalformedDocumentError`` and never
reach validation.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from searchdeck.errors import MalformedDocumentError
from searchdeck.file_handler import (
    decode_text,
    read_bytes_async,
    write_file_async,
)
from searchdeck.models import ConfigurationDocument

logger = logging.getLogger(__name__)


def serialize_document(
    doc: ConfigurationDocument | Mapping[str, Any], pretty: bool = True
) -> str:
    """Render *doc* as JSON text.

    Args:
        doc: A ``ConfigurationDocument`` or an already-external mapping.
        pretty: Multi-line 2-space indentation when True, single line
            otherwise.
    """
    data = doc.to_dict() if isinstance(doc, ConfigurationDocument) else doc
    if pretty:
        return json.dumps(data, indent=2, ensure_ascii=False)
    return json.dumps(data, separators=(",", ":"), ensure_ascii=False)


def parse_document(text: str | bytes) -> Any:
    """Parse JSON text into plain data.  Does not validate.

    Raises:
        MalformedDocumentError: On a syntax error or undecodable bytes.
    """
    try:
        text, _ = decode_text(text)
    except ValueError as exc:
        raise MalformedDocumentError(
            f"Configuration could not be decoded: {exc}"
        ) from exc
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise MalformedDocumentError(
            f"Malformed configuration document: {exc.msg} "
            f"(line {exc.lineno}, column {exc.colno})",
            line=exc.lineno,
            column=exc.colno,
        ) from exc


async def read_document(path: str | Path) -> Any:
    """Read and parse a document file.

    Raises:
        ValueError: If the path does not name an existing file.
        MalformedDocumentError: If the content is not valid JSON.
    """
    data, resolved = await read_bytes_async(path)
    logger.debug("Read %s (%d bytes)", resolved, len(data))
    return parse_document(data)


async def write_document(
    path: str | Path,
    doc: ConfigurationDocument | Mapping[str, Any],
    pretty: bool = True,
) -> tuple[Path, int]:
    """Serialize *doc* and write it as UTF-8.

    A *path* without any suffix gets ``.json`` appended.

    Returns:
        Tuple of (resolved_path, bytes_written).
    """
    text = serialize_document(doc, pretty=pretty)
    if pretty:
        text += "\n"
    resolved, count = await write_file_async(path, text)
    logger.info("Wrote configuration to %s (%d bytes)", resolved, count)
    return (resolved, count)
