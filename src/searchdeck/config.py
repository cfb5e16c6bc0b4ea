"""Runtime settings for the searchdeck command line.

Resolves the store location and export options from CLI args,
environment variables, .env files and YAML config fallbacks.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    SEARCHDECK_STORE: Path of the JSON store file
        (default: $XDG_DATA_HOME/searchdeck/store.json)
    SEARCHDECK_HISTORY_LIMIT: Max history entries per export (1-10000)
    SEARCHDECK_EXPORT_COMPACT: Write single-line JSON exports (true/false)
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


def default_store_path() -> Path:
    """Return ``$XDG_DATA_HOME/searchdeck/store.json``."""
    data_home = os.getenv("XDG_DATA_HOME") or str(
        Path.home() / ".local" / "share"
    )
    return Path(data_home) / "searchdeck" / "store.json"


@dataclass
class Settings:
    store_path: str
    history_limit: int | None = None
    export_pretty: bool = True
    include_history: bool = False
    export_directory: str = "."
    debug: bool = False


def validate_settings(settings: Settings) -> None:
    """Validate settings values and raise ValueError if invalid.

    Args:
        settings: Settings instance to validate.

    Raises:
        ValueError: If the store path is empty or a directory, the history
            limit is out of range, or the export directory is a file.
    """
    settings.store_path = settings.store_path.strip()
    if not settings.store_path:
        raise ValueError(
            "Store path cannot be empty. Set SEARCHDECK_STORE or pass --store."
        )
    if Path(settings.store_path).expanduser().is_dir():
        raise ValueError(
            f"Invalid store path '{settings.store_path}': is a directory"
        )

    if settings.history_limit is not None and not (
        1 <= settings.history_limit <= 10000
    ):
        raise ValueError(
            f"Invalid history limit '{settings.history_limit}': must be a number between 1 and 10000"
        )

    if Path(settings.export_directory).expanduser().is_file():
        raise ValueError(
            f"Invalid export directory '{settings.export_directory}': is a file"
        )


def _get_bool_env(key: str) -> bool | None:
    """Return True/False from env var, or None if unset."""
    val = os.getenv(key)
    if val is None:
        return None
    return val.lower() in ("true", "1", "yes", "on")


def load_settings(
    store: str | None = None,
    compact: bool = False,
    debug: bool = False,
    yaml_fallbacks: dict | None = None,
) -> Settings:
    """Load settings with unified precedence.

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        store: Override store path (takes precedence over env var and YAML).
        compact: Force compact exports (CLI flag).
        debug: Enable debug logging (CLI flag).
        yaml_fallbacks: Flat dict produced by
            ``config_schema.to_fallbacks()``.

    Returns:
        Validated Settings instance.

    Raises:
        ValueError: If a value is malformed or out of range.
    """
    fb = yaml_fallbacks or {}

    store_path = (
        store
        or os.getenv("SEARCHDECK_STORE")
        or fb.get("store_path")
        or str(default_store_path())
    )
    store_path = str(Path(store_path).expanduser())

    limit_raw = os.getenv("SEARCHDECK_HISTORY_LIMIT")
    if limit_raw is not None:
        try:
            history_limit: int | None = int(limit_raw)
        except ValueError:
            raise ValueError(
                f"Invalid SEARCHDECK_HISTORY_LIMIT '{limit_raw}': must be a number between 1 and 10000"
            ) from None
    elif "history_limit" in fb:
        history_limit = int(fb["history_limit"])
    else:
        history_limit = None

    if compact:
        export_pretty = False
    else:
        env_compact = _get_bool_env("SEARCHDECK_EXPORT_COMPACT")
        if env_compact is not None:
            export_pretty = not env_compact
        else:
            export_pretty = bool(fb.get("export_pretty", True))

    settings = Settings(
        store_path=store_path,
        history_limit=history_limit,
        export_pretty=export_pretty,
        include_history=bool(fb.get("include_history", False)),
        export_directory=str(
            Path(fb.get("export_directory", ".")).expanduser()
        ),
        debug=debug,
    )

    validate_settings(settings)
    logger.debug("Store path: %s", settings.store_path)

    return settings
