"""Build step data model.

A BuildStep is one discrete, idempotent unit of the pipeline: a list of
external commands plus the artifacts it needs and produces. Results are
frozen dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from ffbuild.errors import StepExecutionError

# Captured output kept in error messages
OUTPUT_TAIL_LINES = 20


class StepStatus(Enum):
    """Outcome of running (or skipping) a step."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class BuildStep:
    """One external build step.

    Attributes:
        name: Short identifier used in logs (e.g., "x264-configure").
        commands: Argument lists run in order; the first failure stops the step.
        cwd: Working directory for every command.
        inputs: Paths that must exist before the step can run.
        outputs: Artifacts the step produces. When all exist the step is
            skipped unless forced.
        optional: Failure of an optional step disables a feature instead
            of failing the pipeline.
        description: Human-readable summary.
    """

    name: str
    commands: tuple[tuple[str, ...], ...]
    cwd: Path | None = None
    inputs: tuple[Path, ...] = ()
    outputs: tuple[Path, ...] = ()
    optional: bool = False
    description: str = ""

    @classmethod
    def create(
        cls,
        name: str,
        commands: list[list[str | Path]],
        cwd: Path | None = None,
        inputs: list[Path] | None = None,
        outputs: list[Path] | None = None,
        optional: bool = False,
        description: str = "",
    ) -> BuildStep:
        """Build a step from lists, normalizing arguments to strings."""
        return cls(
            name=name,
            commands=tuple(tuple(str(arg) for arg in cmd) for cmd in commands),
            cwd=cwd,
            inputs=tuple(inputs or ()),
            outputs=tuple(outputs or ()),
            optional=optional,
            description=description,
        )

    @property
    def is_idempotent(self) -> bool:
        """True when the step declares outputs that can be checked."""
        return bool(self.outputs)


@dataclass(frozen=True)
class StepResult:
    """Result of one step."""

    step_name: str
    status: StepStatus
    returncode: int | None = None
    output: str = ""
    message: str = ""
    elapsed_seconds: float = 0.0

    @property
    def succeeded(self) -> bool:
        """True for succeeded and skipped steps."""
        return self.status in (StepStatus.SUCCEEDED, StepStatus.SKIPPED)

    @property
    def skipped(self) -> bool:
        return self.status == StepStatus.SKIPPED

    def output_tail(self, lines: int = OUTPUT_TAIL_LINES) -> str:
        """Last lines of captured output."""
        return "\n".join(self.output.splitlines()[-lines:])

    def raise_for_status(self) -> None:
        """Raise StepExecutionError if the step failed."""
        if self.status == StepStatus.FAILED:
            raise StepExecutionError(
                self.message or f"Step '{self.step_name}' failed",
                step_name=self.step_name,
                returncode=self.returncode,
                output=self.output_tail(),
            )


@dataclass(frozen=True)
class CapabilityResult:
    """Whether an optional component ended up usable.

    Returned by every codec library build attempt and consumed by the
    feature negotiator, so availability is decided once.
    """

    feature: str
    available: bool
    artifact: Path | None = None
    reason: str = ""

    @classmethod
    def from_step(
        cls, feature: str, result: StepResult, artifact: Path
    ) -> CapabilityResult:
        """Derive capability from a step result and its artifact."""
        if not result.succeeded:
            return cls(feature, False, None, result.message or "build failed")
        if not artifact.exists():
            return cls(
                feature, False, None, f"build finished but {artifact.name} is missing"
            )
        reason = "already built" if result.skipped else "built"
        return cls(feature, True, artifact, reason)


@dataclass
class StepLog:
    """Ordered record of step results for one stage."""

    results: list[StepResult] = field(default_factory=list)

    def add(self, result: StepResult) -> StepResult:
        self.results.append(result)
        return result

    def names(self, status: StepStatus) -> list[str]:
        """Names of steps with the given status, in run order."""
        return [r.step_name for r in self.results if r.status == status]
