"""Retry/Fallback Controller.

Wraps a fallible operation with a bounded retry loop and an optional
single fallback attempt:

    RETRYING ──(attempt fails, attempts left)──> RETRYING
    RETRYING ──(last attempt fails, fallback)──> FALLING_BACK
    RETRYING | FALLING_BACK ──(success or exhaustion)──> TERMINAL

Only StepExecutionError is retried. Any other BuildError, notably
MissingPrerequisiteError, propagates on the first occurrence.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, TypeVar

from ffbuild.errors import RetryExhaustedError, StepExecutionError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ControllerState(Enum):
    RETRYING = "retrying"
    FALLING_BACK = "falling_back"
    TERMINAL = "terminal"


@dataclass
class RetryOutcome(Generic[T]):
    """Successful result of a controlled operation.

    Attributes:
        value: Return value of the attempt that succeeded.
        attempts: Total attempts made, fallback included.
        used_fallback: True if the fallback produced the value.
        errors: Failures seen before success, in order.
    """

    value: T
    attempts: int
    used_fallback: bool = False
    errors: list[StepExecutionError] = field(default_factory=list)


class RetryController:
    """Bounded retry with teardown between attempts and one fallback.

    Args:
        max_retries: Maximum attempts of the primary operation (>= 1).
        teardown: Called after every failed attempt, before the next one.
        delay_seconds: Pause between attempts.
        sleep: Sleep function, injectable for tests.
        name: Label used in log messages.
    """

    def __init__(
        self,
        max_retries: int,
        teardown: Callable[[], None] | None = None,
        delay_seconds: float = 0,
        sleep: Callable[[float], None] = time.sleep,
        name: str = "operation",
    ) -> None:
        if max_retries < 1:
            raise ValueError(f"max_retries must be at least 1, got {max_retries}")
        self.max_retries = max_retries
        self.teardown = teardown
        self.delay_seconds = delay_seconds
        self.name = name
        self._sleep = sleep
        self.state = ControllerState.RETRYING

    def run(
        self,
        primary: Callable[[], T],
        fallback: Callable[[], T] | None = None,
    ) -> RetryOutcome[T]:
        """Run primary up to max_retries times, then fallback once.

        Raises:
            RetryExhaustedError: If every attempt failed.
            BuildError: Non-retryable errors from any attempt, unchanged.
        """
        self.state = ControllerState.RETRYING
        errors: list[StepExecutionError] = []
        attempts = 0

        for attempt in range(1, self.max_retries + 1):
            attempts += 1
            try:
                value = primary()
            except StepExecutionError as e:
                errors.append(e)
                logger.warning(
                    "%s attempt %d/%d failed: %s",
                    self.name,
                    attempt,
                    self.max_retries,
                    e.message,
                )
                self._teardown()
                if attempt < self.max_retries and self.delay_seconds > 0:
                    self._sleep(self.delay_seconds)
                continue
            except BaseException:
                self.state = ControllerState.TERMINAL
                raise
            self.state = ControllerState.TERMINAL
            return RetryOutcome(value=value, attempts=attempts, errors=errors)

        if fallback is not None:
            self.state = ControllerState.FALLING_BACK
            logger.warning("%s failed %d times; trying fallback", self.name, attempts)
            attempts += 1
            try:
                value = fallback()
            except StepExecutionError as e:
                errors.append(e)
                self._teardown()
            except BaseException:
                self.state = ControllerState.TERMINAL
                raise
            else:
                self.state = ControllerState.TERMINAL
                return RetryOutcome(
                    value=value, attempts=attempts, used_fallback=True, errors=errors
                )

        self.state = ControllerState.TERMINAL
        last = errors[-1]
        raise RetryExhaustedError(
            f"{self.name} failed after {attempts} attempt(s): {last.message}",
            attempts=attempts,
            last_error=last,
        )

    def _teardown(self) -> None:
        if self.teardown is None:
            return
        logger.debug("Tearing down after failed %s attempt", self.name)
        self.teardown()
