"""Stage and step context for structured logging.

Provides context propagation using contextvars, enabling automatic
injection of the current pipeline stage and build step into log records.
"""

from __future__ import annotations

import contextvars
import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Generator

_stage: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "stage", default=None
)
_step: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "step", default=None
)


def set_step_context(stage: str, step: str | None = None) -> None:
    """Set the current stage and step.

    Args:
        stage: Pipeline stage name (e.g., "build").
        step: Build step name (e.g., "x264"), or None.
    """
    _stage.set(stage)
    _step.set(step)


def clear_step_context() -> None:
    """Clear the current stage and step."""
    _stage.set(None)
    _step.set(None)


@contextmanager
def step_context(
    stage: str | None = None, step: str | None = None
) -> Generator[None, None, None]:
    """Context manager for stage/step context.

    A None stage keeps the enclosing stage, so steps can be nested inside
    a stage block without repeating it.

    Example:
        with step_context("build"):
            with step_context(step="x264"):
                logger.info("Compiling")  # tagged [build:x264]
    """
    old_stage = _stage.get()
    old_step = _step.get()
    try:
        set_step_context(stage if stage is not None else old_stage, step)
        yield
    finally:
        _stage.set(old_stage)
        _step.set(old_step)


def get_step_context() -> tuple[str | None, str | None]:
    """Return (stage, step), either may be None."""
    return _stage.get(), _step.get()


class StepContextFilter(logging.Filter):
    """Logging filter that injects stage/step context into log records.

    Adds stage and step attributes plus a compact step_tag for text
    output such as [build:x264].
    """

    def filter(self, record: logging.LogRecord) -> bool:
        stage, step = get_step_context()

        record.stage = stage
        record.step = step

        if stage:
            if step:
                record.step_tag = f"[{stage}:{step}] "
            else:
                record.step_tag = f"[{stage}] "
        else:
            record.step_tag = ""

        return True
