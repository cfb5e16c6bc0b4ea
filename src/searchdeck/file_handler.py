"""File handler module: document decoding and atomic file writes.

Everything that touches configuration files on disk goes through here:
exports, backups, imports and the JSON store file.  Sync functions do
nothing besides file I/O; async wrappers compose validation + I/O via
run_sync().
"""

import codecs
import os
import tempfile
from pathlib import Path

from charset_normalizer import from_bytes

from searchdeck.core.async_utils import run_sync

DOCUMENT_SUFFIX = ".json"

# Longest marks first: the UTF-32 LE mark starts with the UTF-16 LE one.
_BOMS = (
    (codecs.BOM_UTF32_LE, "utf-32-le"),
    (codecs.BOM_UTF32_BE, "utf-32-be"),
    (codecs.BOM_UTF8, "utf-8"),
    (codecs.BOM_UTF16_LE, "utf-16-le"),
    (codecs.BOM_UTF16_BE, "utf-16-be"),
)

# =============================================================================
# Path Validation
# =============================================================================


def validate_file_path(path_str: str | Path) -> Path:
    """Resolve an input document path (``~`` expanded, relative to CWD).

    Raises:
        ValueError: If path doesn't exist or is not a file.
    """
    resolved = Path(path_str).expanduser().resolve()
    if not resolved.exists():
        raise ValueError(f"File not found: {path_str}")
    if not resolved.is_file():
        raise ValueError(f"Path is not a file: {path_str}")
    return resolved


def with_document_suffix(path: str | Path) -> Path:
    """Append ``.json`` to a path that has no suffix at all.

    ``backup`` becomes ``backup.json``; ``backup.txt`` is left alone.
    """
    path = Path(path)
    if path.suffix:
        return path
    return path.with_name(path.name + DOCUMENT_SUFFIX)


def validate_output_path(path_str: str | Path) -> Path:
    """Resolve an export/backup target.  The file need not exist.

    Raises:
        ValueError: If the parent directory is missing or the path is a
            directory.
    """
    resolved = with_document_suffix(Path(path_str).expanduser()).resolve()
    if not resolved.parent.is_dir():
        raise ValueError(
            f"Output parent directory not found: {resolved.parent}"
        )
    if resolved.is_dir():
        raise ValueError(f"Output path is a directory: {path_str}")
    return resolved


# =============================================================================
# Decoding
# =============================================================================


def decode_text(data: bytes | str) -> tuple[str, str]:
    """Decode document content, dropping any byte order mark.

    Byte order marks decide the encoding when present.  Otherwise strict
    UTF-8 is tried first, then charset-normalizer detection.

    Returns:
        Tuple of (text, encoding).

    Raises:
        UnicodeDecodeError: If the bytes cannot be decoded with the
            chosen encoding.
        ValueError: If no encoding could be detected.
    """
    if isinstance(data, str):
        return (data.removeprefix("\ufeff"), "utf-8")
    if not data:
        return ("", "utf-8")

    for bom, encoding in _BOMS:
        if data.startswith(bom):
            return (data[len(bom):].decode(encoding), encoding)

    try:
        return (data.decode("utf-8"), "utf-8")
    except UnicodeDecodeError:
        pass

    match = from_bytes(data).best()
    if match is None:
        raise ValueError("Unable to detect the document encoding")
    return (str(match), match.encoding)


# =============================================================================
# File Read/Write
# =============================================================================


def read_bytes(path: Path) -> bytes:
    return path.read_bytes()


def write_file(path: Path, content: str, encoding: str = "utf-8") -> int:
    """Atomically replace *path* with *content*.

    The content goes to a temp file in the same directory which is then
    moved over the target with ``os.replace()``, so readers see either
    the old file or the new one.  Parent directories are created.

    Returns:
        Number of bytes written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    encoded = content.encode(encoding)
    fd, tmp_path = tempfile.mkstemp(
        dir=str(path.parent), prefix=f"{path.name}.", suffix=".tmp"
    )
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(encoded)
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise
    return len(encoded)


# =============================================================================
# Async Wrappers
# =============================================================================


async def read_bytes_async(path_str: str | Path) -> tuple[bytes, Path]:
    """Validate an input path and read its raw bytes.

    Raises:
        ValueError: If path validation fails.
    """
    resolved = await run_sync(validate_file_path, path_str)
    data = await run_sync(read_bytes, resolved)
    return (data, resolved)


async def write_file_async(
    path_str: str | Path, content: str, encoding: str = "utf-8"
) -> tuple[Path, int]:
    """Validate an output path (adding ``.json`` if needed) and write it.

    Returns:
        Tuple of (resolved_path, bytes_written).

    Raises:
        ValueError: If output path validation fails.
    """
    resolved = await run_sync(validate_output_path, path_str)
    count = await run_sync(write_file, resolved, content, encoding)
    return (resolved, count)
