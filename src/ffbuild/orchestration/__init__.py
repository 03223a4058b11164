"""Retry and fallback control for pipeline operations."""

from ffbuild.orchestration.retry import (
    ControllerState,
    RetryController,
    RetryOutcome,
)

__all__ = ["ControllerState", "RetryController", "RetryOutcome"]
