"""Environment variable reading.

EnvReader wraps a mapping (os.environ by default) so configuration code
can be tested without touching the real process environment.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

logger = logging.getLogger(__name__)

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


class EnvReader:
    """Typed accessors over an environment mapping."""

    def __init__(self, env: Mapping[str, str] | None = None) -> None:
        self._env = env if env is not None else os.environ

    def get_str(self, key: str) -> str | None:
        """Return the value, or None if unset or empty."""
        value = self._env.get(key)
        return value if value else None

    def get_path(self, key: str) -> Path | None:
        """Return the value as an expanded Path, or None."""
        value = self.get_str(key)
        return Path(value).expanduser() if value else None

    def get_int(self, key: str) -> int | None:
        """Return the value as int, or None if unset or invalid."""
        value = self.get_str(key)
        if value is None:
            return None
        try:
            return int(value)
        except ValueError:
            logger.warning("Ignoring %s: %r is not an integer", key, value)
            return None

    def get_float(self, key: str) -> float | None:
        """Return the value as float, or None if unset or invalid."""
        value = self.get_str(key)
        if value is None:
            return None
        try:
            return float(value)
        except ValueError:
            logger.warning("Ignoring %s: %r is not a number", key, value)
            return None

    def get_bool(self, key: str) -> bool | None:
        """Return the value as bool, or None if unset or unrecognized."""
        value = self.get_str(key)
        if value is None:
            return None
        lowered = value.strip().lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        logger.warning("Ignoring %s: %r is not a boolean", key, value)
        return None
