"""Subprocess utilities for external tool invocation.

This module provides the standard subprocess wrapper used for every
external build command (git, make, cmake, dpkg-deb, docker, ldconfig) so
that timeouts, encoding and logging are handled consistently.
"""

from __future__ import annotations

import logging
import subprocess  # nosec B404 - subprocess is required for build tool invocation
import time
from collections.abc import Mapping
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def run_command(
    args: list[str | Path],
    timeout: float | None = None,
    cwd: Path | None = None,
    env: Mapping[str, str] | None = None,
    capture_output: bool = True,
    text: bool = True,
    errors: str = "replace",
    **kwargs: Any,
) -> tuple[str, str, int]:
    """Run external command with standard error handling.

    Args:
        args: Command and arguments. Path objects are converted to strings.
        timeout: Timeout in seconds. None waits indefinitely, which is the
            normal case for compilation steps.
        cwd: Working directory for the command.
        env: Complete environment for the child process. None inherits.
        capture_output: Capture stdout/stderr (default True).
        text: Return text instead of bytes (default True).
        errors: Error handling mode for text decoding (default "replace").
        **kwargs: Additional subprocess.run arguments.

    Returns:
        Tuple of (stdout, stderr, returncode).

    Raises:
        subprocess.TimeoutExpired: If command times out. subprocess.run()
            kills the child before raising.
        FileNotFoundError: If the executable does not exist.

    Example:
        >>> stdout, stderr, rc = run_command(["make", "--version"])
        >>> if rc == 0:
        ...     print(stdout.splitlines()[0])
    """
    str_args = [str(arg) for arg in args]
    command_name = str_args[0].split("/")[-1] if str_args else "unknown"

    logger.debug(
        "Executing command: %s",
        " ".join(str_args),
        extra={"command": command_name, "arg_count": len(str_args)},
    )

    start_time = time.monotonic()

    try:
        result = subprocess.run(  # nosec B603 - callers build argv lists
            str_args,
            capture_output=capture_output,
            text=text,
            errors=errors,
            timeout=timeout,
            cwd=str(cwd) if cwd is not None else None,
            env=dict(env) if env is not None else None,
            **kwargs,
        )

        elapsed = time.monotonic() - start_time
        logger.debug(
            "Command completed",
            extra={
                "command": command_name,
                "elapsed_seconds": round(elapsed, 3),
                "returncode": result.returncode,
            },
        )

        return result.stdout or "", result.stderr or "", result.returncode
    except subprocess.TimeoutExpired:
        elapsed = time.monotonic() - start_time
        logger.warning(
            "Command timed out after %ss: %s",
            timeout,
            " ".join(str_args[:3]) + ("..." if len(str_args) > 3 else ""),
            extra={
                "command": command_name,
                "timeout_seconds": timeout,
                "elapsed_seconds": round(elapsed, 3),
            },
        )
        raise
