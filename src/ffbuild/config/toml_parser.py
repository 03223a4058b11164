"""TOML config file parsing."""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class TomlParseError(Exception):
    """Config file exists but could not be parsed."""

    def __init__(self, message: str, path: Path | None = None) -> None:
        self.message = message
        self.path = path
        super().__init__(message)


def parse_toml(content: str) -> dict[str, Any]:
    """Parse TOML text.

    Raises:
        TomlParseError: If the text is not valid TOML.
    """
    try:
        return tomllib.loads(content)
    except tomllib.TOMLDecodeError as e:
        raise TomlParseError(f"Invalid TOML: {e}") from e


def load_toml_file(path: Path, *, strict: bool = False) -> dict[str, Any]:
    """Load a TOML file.

    Args:
        path: File to read.
        strict: If True, raise on parse or read errors. If False, log a
            warning and return an empty dict.

    Returns:
        Parsed dict, or empty dict if the file does not exist.

    Raises:
        TomlParseError: When strict=True and the file cannot be parsed.
    """
    if not path.exists():
        return {}
    try:
        return parse_toml(path.read_text(encoding="utf-8"))
    except (TomlParseError, OSError) as e:
        if strict:
            if isinstance(e, TomlParseError):
                raise TomlParseError(f"{path}: {e.message}", path=path) from e
            raise TomlParseError(f"Cannot read {path}: {e}", path=path) from e
        logger.warning("Ignoring unreadable config file %s: %s", path, e)
        return {}
