"""Exponential backoff retry wrapper for Gemini calls (async).

ResilientInvoker runs any zero-argument coroutine factory and retries it on
failure. Delays double after each failed attempt (1s → 2s → 4s → 8s with the
default policy) and are capped at ``max_delay``. Errors that carry
``retryable=False`` (see GenerationError) fail immediately.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar, Union

from culinary.utils.logger import logger

T = TypeVar("T")


class ResilientInvoker:
    """Retry an async operation with exponential backoff.

    Waits with ``asyncio.sleep`` so other tasks on the event loop keep
    running between attempts.
    """

    def __init__(
        self,
        max_attempts: int = 5,
        initial_delay: float = 1.0,
        max_delay: Optional[float] = 30.0,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
    ) -> None:
        """Initialize retry policy.

        Args:
            max_attempts: Total attempts including the first call (default: 5).
            initial_delay: Seconds to wait before the first retry (default: 1.0).
            max_delay: Upper bound for a single delay in seconds, None for no cap (default: 30.0).
            sleep: Awaitable sleep function, defaults to asyncio.sleep.

        Raises:
            ValueError: If max_attempts < 1 or initial_delay < 0.
        """
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got: {max_attempts}")
        if initial_delay < 0:
            raise ValueError(f"initial_delay must not be negative, got: {initial_delay}")

        self.max_attempts = max_attempts
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self._sleep = sleep or asyncio.sleep

    @classmethod
    def from_config(cls, config) -> "ResilientInvoker":
        """Build the retry policy from application Config."""
        return cls(
            max_attempts=config.MAX_ATTEMPTS,
            initial_delay=config.INITIAL_RETRY_DELAY,
            max_delay=config.MAX_RETRY_DELAY,
        )

    def _bounded(self, delay: float) -> float:
        if self.max_delay is None:
            return delay
        return min(delay, self.max_delay)

    async def invoke(
        self,
        operation: Callable[[], Awaitable[T]],
        operation_name: str = "operation",
        log: Optional[Union[logging.Logger, logging.LoggerAdapter]] = None,
    ) -> T:
        """Run operation, retrying failures until the attempt budget is spent.

        Args:
            operation: Zero-argument callable returning a fresh awaitable per attempt.
            operation_name: Description for logging (e.g., "Recipe request").
            log: Logger for retry lines, e.g. one bound to a generation (default: module logger).

        Returns:
            Result of the first successful attempt.

        Raises:
            Exception: The last error, unchanged, once attempts are exhausted,
                or immediately when the error is marked ``retryable=False``.
        """
        log = log or logger
        delay = self._bounded(self.initial_delay)

        for attempt in range(1, self.max_attempts + 1):
            try:
                return await operation()
            except Exception as e:
                context = {"attempt": f"{attempt}/{self.max_attempts}"}

                if not getattr(e, "retryable", True):
                    log.warning(f"{operation_name} failed with a non-retryable error: {e}", extra=context)
                    raise

                if attempt >= self.max_attempts:
                    log.error(f"{operation_name} failed after {self.max_attempts} attempts: {e}", extra=context)
                    raise

                log.warning(f"{operation_name} failed, retrying in {delay:g}s...: {e}", extra=context)
                await self._sleep(delay)
                delay = self._bounded(delay * 2)

        # Unreachable: the loop either returns or raises
        raise RuntimeError(f"{operation_name} exhausted retries without a result")
