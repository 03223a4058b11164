"""Error taxonomy for build orchestration.

Three classes of failure are distinguished:

- Missing prerequisites: a prior stage's artifact is absent. Fatal, the
  pipeline halts immediately.
- Step execution failures: an external command failed. Retryable up to a
  fixed bound by the caller, then fatal.
- Optional feature failures: an optional component failed to build or
  configure. Recovered locally by disabling the feature with a warning.
"""

from __future__ import annotations

from pathlib import Path


class BuildError(Exception):
    """Base class for all orchestration errors."""


class MissingPrerequisiteError(BuildError):
    """A required artifact from a prior stage is missing."""

    def __init__(
        self,
        message: str,
        stage: str | None = None,
        artifact: Path | None = None,
    ) -> None:
        self.message = message
        self.stage = stage
        self.artifact = artifact
        super().__init__(message)


class StepExecutionError(BuildError):
    """An external build step exited unsuccessfully."""

    def __init__(
        self,
        message: str,
        step_name: str | None = None,
        returncode: int | None = None,
        output: str = "",
    ) -> None:
        self.message = message
        self.step_name = step_name
        self.returncode = returncode
        self.output = output
        super().__init__(message)


class RetryExhaustedError(BuildError):
    """All attempts (including any fallback) failed."""

    def __init__(
        self,
        message: str,
        attempts: int,
        last_error: BaseException | None = None,
    ) -> None:
        self.message = message
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(message)


class OptionalFeatureError(BuildError):
    """An optional component could not be built or enabled."""

    def __init__(self, message: str, feature: str) -> None:
        self.message = message
        self.feature = feature
        super().__init__(message)
