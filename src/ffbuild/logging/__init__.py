"""Structured logging for the build orchestrator.

Provides configurable logging with JSON format support, file rotation and
stage/step context tagging.
"""

from ffbuild.logging.config import configure_logging
from ffbuild.logging.context import (
    StepContextFilter,
    clear_step_context,
    get_step_context,
    set_step_context,
    step_context,
)
from ffbuild.logging.handlers import JSONFormatter

__all__ = [
    "JSONFormatter",
    "StepContextFilter",
    "clear_step_context",
    "configure_logging",
    "get_step_context",
    "set_step_context",
    "step_context",
]
