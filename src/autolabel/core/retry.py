"""Bounded retry with exponential backoff."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TypeVar

import logfire

T = TypeVar("T")

# Error text fragments meaning the request itself is bad
DEFAULT_NON_RETRYABLE_MARKERS = ("Invalid label", "InvalidRequest", "400")


class RetryExhaustedError(Exception):
    """All attempts failed, or the failure was not retryable.

    Attributes:
        attempts: Number of attempts made
        last_error: The final underlying error
    """

    def __init__(self, attempts: int, last_error: Exception) -> None:
        super().__init__(f"Failed after {attempts} attempt(s): {last_error}")
        self.attempts = attempts
        self.last_error = last_error


@dataclass(frozen=True)
class RetryPolicy:
    """Retry configuration for a single operation.

    Backoff formula: delay = min(base_delay * 2^(attempt - 1), max_delay),
    applied after every failed retryable attempt (1s, 2s, 4s by default).

    Attributes:
        max_attempts: Total attempts before giving up
        base_delay: Delay after the first failed attempt, in seconds
        max_delay: Upper bound for any single delay, in seconds
        non_retryable_markers: Error text fragments that stop retrying
        sleep: Awaitable sleep, injectable for tests
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 60.0
    non_retryable_markers: tuple[str, ...] = DEFAULT_NON_RETRYABLE_MARKERS
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep, compare=False)

    def is_retryable(self, exc: Exception) -> bool:
        """Check whether an error may succeed on another attempt."""
        text = str(exc)
        return not any(marker in text for marker in self.non_retryable_markers)

    def delay_for(self, attempt: int) -> float:
        """Get the backoff delay after a failed attempt (1-based)."""
        return min(self.base_delay * 2 ** (attempt - 1), self.max_delay)

    async def run(self, operation: Callable[[], Awaitable[T]], name: str = "operation") -> T:
        """Run an operation under this policy.

        Args:
            operation: Zero-argument coroutine factory, called once per attempt
            name: Operation name for logs

        Returns:
            The operation's result

        Raises:
            RetryExhaustedError: If the operation never succeeded
        """
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await operation()
            except Exception as e:
                if not self.is_retryable(e):
                    logfire.warning(
                        "Operation failed with non-retryable error",
                        operation=name,
                        attempt=attempt,
                        error=str(e),
                    )
                    raise RetryExhaustedError(attempt, e) from e

                delay = self.delay_for(attempt)
                logfire.warning(
                    "Operation failed, backing off",
                    operation=name,
                    attempt=attempt,
                    max_attempts=self.max_attempts,
                    delay=delay,
                    error=str(e),
                )
                await self.sleep(delay)
                if attempt == self.max_attempts:
                    raise RetryExhaustedError(attempt, e) from e

        msg = "max_attempts must be at least 1"
        raise ValueError(msg)
