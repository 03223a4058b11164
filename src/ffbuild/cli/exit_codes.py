"""Centralized exit codes for all CLI commands.

Exit code ranges:
    0: Success
    1-9: General errors
    10-19: Configuration and recipe errors
    30-39: Tool/prerequisite errors
    40-49: Build step errors
    130: Interrupted (SIGINT)
"""

from enum import IntEnum


class ExitCode(IntEnum):
    """Exit codes for ffbuild commands."""

    # Success (0)
    SUCCESS = 0

    # General errors (1-9)
    GENERAL_ERROR = 1

    # Configuration errors (10-19)
    CONFIG_ERROR = 10

    # Tool/prerequisite errors (30-39)
    MISSING_PREREQUISITE = 30

    # Build step errors (40-49)
    STEP_FAILED = 40
    RETRIES_EXHAUSTED = 41

    # Ctrl+C
    INTERRUPTED = 130
