"""Logging configuration.

Installs handlers on the ffbuild logger according to LoggingConfig.
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler

from ffbuild.config.models import LoggingConfig
from ffbuild.logging.context import StepContextFilter
from ffbuild.logging.handlers import JSONFormatter

TEXT_FORMAT = "%(asctime)s %(levelname)-7s %(step_tag)s%(message)s"
TEXT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Marker attribute so repeated configuration replaces only our handlers
_HANDLER_MARKER = "_ffbuild_handler"


def _make_formatter(config: LoggingConfig) -> logging.Formatter:
    if config.format == "json":
        return JSONFormatter()
    return logging.Formatter(TEXT_FORMAT, datefmt=TEXT_DATE_FORMAT)


def configure_logging(config: LoggingConfig) -> logging.Logger:
    """Configure the package logger.

    Safe to call more than once: handlers installed by a previous call
    are removed first.

    Args:
        config: Logging settings.

    Returns:
        The configured "ffbuild" logger.
    """
    root = logging.getLogger("ffbuild")
    root.setLevel(getattr(logging, config.level.upper()))
    root.propagate = False

    for handler in list(root.handlers):
        if getattr(handler, _HANDLER_MARKER, False):
            root.removeHandler(handler)
            handler.close()

    formatter = _make_formatter(config)
    context_filter = StepContextFilter()
    handlers: list[logging.Handler] = []

    if config.file is not None:
        config.file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                config.file,
                maxBytes=config.max_bytes,
                backupCount=config.backup_count,
                encoding="utf-8",
            )
        )

    if config.include_stderr or config.file is None:
        handlers.append(logging.StreamHandler(sys.stderr))

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(context_filter)
        setattr(handler, _HANDLER_MARKER, True)
        root.addHandler(handler)

    return root
