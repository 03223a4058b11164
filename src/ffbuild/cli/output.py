"""Unified CLI output formatting for JSON and human-readable output."""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, NoReturn

import click

from ffbuild.cli.exit_codes import ExitCode
from ffbuild.config.toml_parser import TomlParseError
from ffbuild.errors import (
    BuildError,
    MissingPrerequisiteError,
    RetryExhaustedError,
    StepExecutionError,
)
from ffbuild.recipe.loader import RecipeValidationError

logger = logging.getLogger(__name__)


@dataclass
class CLIResult:
    """Result object for CLI operations."""

    success: bool
    message: str
    data: dict[str, Any] = field(default_factory=dict)
    exit_code: int = 0

    def to_json(self) -> str:
        """Serialize to JSON string.

        Returns:
            JSON string with status, message, and optional data fields.
        """
        output: dict[str, Any] = {
            "status": "completed" if self.success else "failed",
        }
        if self.success:
            output["message"] = self.message
            output.update(self.data)
        else:
            if isinstance(self.exit_code, ExitCode):
                code_name = self.exit_code.name
            else:
                code_name = "UNKNOWN_ERROR"
            output["error"] = {
                "code": code_name,
                "message": self.message,
            }
        return json.dumps(output, indent=2, default=str)


def error_exit(
    message: str,
    code: ExitCode | int,
    json_output: bool = False,
) -> NoReturn:
    """Exit with formatted error message.

    Args:
        message: Error message to display.
        code: Exit code to use (ExitCode enum or int).
        json_output: Whether to format output as JSON.

    Note:
        This function never returns; it always calls sys.exit().
    """
    if isinstance(code, ExitCode):
        code_name = code.name
        exit_value = int(code)
    else:
        code_name = "UNKNOWN_ERROR"
        exit_value = code

    if json_output:
        click.echo(
            json.dumps(
                {
                    "status": "failed",
                    "error": {
                        "code": code_name,
                        "message": message,
                    },
                }
            ),
            err=True,
        )
    else:
        click.echo(f"Error: {message}", err=True)

    sys.exit(exit_value)


def success_output(
    result: CLIResult,
    json_output: bool = False,
) -> None:
    """Output successful result in appropriate format."""
    if json_output:
        click.echo(result.to_json())
    else:
        click.echo(result.message)


def warning_output(
    message: str,
    json_output: bool = False,
) -> None:
    """Output a warning message (suppressed in JSON mode)."""
    if not json_output:
        click.echo(f"Warning: {message}", err=True)


def exit_code_for(error: BaseException) -> ExitCode:
    """Map an exception to its exit code."""
    if isinstance(error, (RecipeValidationError, TomlParseError)):
        return ExitCode.CONFIG_ERROR
    if isinstance(error, MissingPrerequisiteError):
        return ExitCode.MISSING_PREREQUISITE
    if isinstance(error, RetryExhaustedError):
        return ExitCode.RETRIES_EXHAUSTED
    if isinstance(error, StepExecutionError):
        return ExitCode.STEP_FAILED
    if isinstance(error, KeyboardInterrupt):
        return ExitCode.INTERRUPTED
    return ExitCode.GENERAL_ERROR


@contextmanager
def report_errors(json_output: bool = False) -> Generator[None, None, None]:
    """Turn orchestration errors into an error message and exit code."""
    try:
        yield
    except KeyboardInterrupt:
        error_exit("Interrupted", ExitCode.INTERRUPTED, json_output)
    except (BuildError, RecipeValidationError, TomlParseError) as e:
        message = getattr(e, "message", str(e))
        if isinstance(e, StepExecutionError) and e.output:
            logger.debug("Output of failed step:\n%s", e.output)
        error_exit(message, exit_code_for(e), json_output)
    except OSError as e:
        logger.debug("Filesystem error", exc_info=True)
        error_exit(str(e), ExitCode.GENERAL_ERROR, json_output)
