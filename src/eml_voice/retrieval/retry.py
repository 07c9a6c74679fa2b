"""
Retry helper for transient I/O failures (embedding provider, vector index).

Only TransientError subclasses are retried; validation errors propagate on
the first attempt.
"""

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

import structlog

from ..config import settings
from ..errors import TransientError


logger = structlog.get_logger(__name__)

T = TypeVar("T")


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_attempts: Optional[int] = None,
    delay_seconds: Optional[float] = None,
    backoff_factor: Optional[float] = None,
    operation_name: str = "operation",
) -> T:
    """
    Await `operation()` with exponential backoff retry logic.

    Args:
        operation: Zero-argument callable returning a fresh awaitable per attempt
        max_attempts: Total attempts (default: settings.retry_max_attempts)
        delay_seconds: Wait before the first retry (default: settings.retry_delay_seconds)
        backoff_factor: Multiplier applied to the wait after each retry
        operation_name: Name used in log events

    Returns:
        Result of the first successful attempt

    Raises:
        Last TransientError after all attempts are exhausted, or any
        non-transient error immediately

    Examples:
        >>> vector = await with_retry(lambda: provider.embed(text), operation_name="embed")
    """
    max_attempts = max(1, max_attempts or settings.retry_max_attempts)
    delay = settings.retry_delay_seconds if delay_seconds is None else delay_seconds
    factor = settings.retry_backoff_factor if backoff_factor is None else backoff_factor

    for attempt in range(max_attempts):
        try:
            return await operation()
        except TransientError as e:
            if attempt == max_attempts - 1:
                logger.error(
                    "operation_failed_after_retries",
                    operation=operation_name,
                    attempts=max_attempts,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                raise

            wait_time = delay * (factor ** attempt)
            logger.warning(
                "operation_retry",
                operation=operation_name,
                attempt=attempt + 1,
                max_attempts=max_attempts,
                error=str(e),
                wait_seconds=wait_time,
            )
            await asyncio.sleep(wait_time)

    # Unreachable: the loop either returns or raises
    raise RuntimeError("with_retry exhausted without result")
