"""Step Executor: run one build step's commands.

Commands run strictly in order with an explicit environment. The first
non-zero exit stops the step. The executor never retries; that is the
caller's decision (see ffbuild.orchestration.retry).
"""

from __future__ import annotations

import logging
import subprocess  # nosec B404 - needed for TimeoutExpired
import time
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path

from ffbuild.core.subprocess_utils import run_command
from ffbuild.errors import MissingPrerequisiteError
from ffbuild.logging.context import step_context
from ffbuild.steps.environment import BuildEnvironment
from ffbuild.steps.models import BuildStep, StepResult, StepStatus
from ffbuild.steps.prober import DependencyProber

logger = logging.getLogger(__name__)

Runner = Callable[..., tuple[str, str, int]]


class StepExecutor:
    """Runs BuildSteps through an injectable command runner.

    Args:
        environment: Search paths and flags passed to every command.
        log_file: Build log that receives each command and its output.
        timeout: Per-command timeout in seconds (None waits indefinitely).
        runner: Function with the run_command signature. Tests inject a fake.
    """

    def __init__(
        self,
        environment: BuildEnvironment,
        log_file: Path | None = None,
        timeout: float | None = None,
        runner: Runner = run_command,
    ) -> None:
        self.environment = environment
        self.log_file = log_file
        self.timeout = timeout
        self._runner = runner

    def execute(self, step: BuildStep) -> StepResult:
        """Run every command of a step.

        Returns:
            SUCCEEDED when all commands exit 0, otherwise FAILED with the
            output of the failing command. Timeouts and missing executables
            are reported as FAILED rather than raised.
        """
        env = self.environment.to_env()
        start = time.monotonic()
        outputs: list[str] = []

        with step_context(step=step.name):
            logger.info("Running %s", step.description or step.name)
            for command in step.commands:
                self._log_line(f"$ {' '.join(command)}")
                try:
                    stdout, stderr, rc = self._runner(
                        list(command), timeout=self.timeout, cwd=step.cwd, env=env
                    )
                except subprocess.TimeoutExpired:
                    message = f"{command[0]} timed out after {self.timeout}s"
                    self._log_line(message)
                    return self._failed(step, None, "\n".join(outputs), message, start)
                except FileNotFoundError:
                    message = f"Command not found: {command[0]}"
                    self._log_line(message)
                    return self._failed(step, None, "\n".join(outputs), message, start)

                combined = "\n".join(part for part in (stdout, stderr) if part)
                outputs.append(combined)
                self._log_line(combined)

                if rc != 0:
                    message = (
                        f"Step '{step.name}' failed: {command[0]} exited with {rc}"
                    )
                    return self._failed(step, rc, combined, message, start)

            elapsed = time.monotonic() - start
            logger.debug("%s finished in %.1fs", step.name, elapsed)
            return StepResult(
                step_name=step.name,
                status=StepStatus.SUCCEEDED,
                returncode=0,
                output="\n".join(outputs),
                elapsed_seconds=elapsed,
            )

    def run(
        self,
        step: BuildStep,
        prober: DependencyProber | None = None,
        force: bool = False,
    ) -> StepResult:
        """Probe, then execute a step.

        Raises:
            MissingPrerequisiteError: If a declared input does not exist.
        """
        prober = prober or DependencyProber()
        decision = prober.probe(step, force=force)
        if not decision.should_run:
            logger.info("Skipping %s: %s", step.name, decision.reason)
            return StepResult(
                step_name=step.name,
                status=StepStatus.SKIPPED,
                message=decision.reason,
            )

        missing = prober.missing_inputs(step)
        if missing:
            raise MissingPrerequisiteError(
                f"Step '{step.name}' requires {missing[0]}, which does not exist",
                artifact=missing[0],
            )
        return self.execute(step)

    def _failed(
        self,
        step: BuildStep,
        returncode: int | None,
        output: str,
        message: str,
        start: float,
    ) -> StepResult:
        level = logging.WARNING if step.optional else logging.ERROR
        logger.log(level, message)
        return StepResult(
            step_name=step.name,
            status=StepStatus.FAILED,
            returncode=returncode,
            output=output,
            message=message,
            elapsed_seconds=time.monotonic() - start,
        )

    def _log_line(self, text: str) -> None:
        if self.log_file is None or not text:
            return
        self.log_file.parent.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
        with self.log_file.open("a", encoding="utf-8") as fh:
            for line in text.splitlines():
                fh.write(f"{stamp} {line}\n")
