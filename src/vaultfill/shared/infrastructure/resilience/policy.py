"""
Call policy for backend requests.

Every exchange with a secret backend is bounded by a per-attempt timeout
and retried with exponential backoff when it raises a retryable error or
returns a result the caller marks as transient (rate limiting, a sealed
or standby Vault node, a failing gateway).
"""

from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from vaultfill.shared.infrastructure.config import Settings
from vaultfill.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

R = TypeVar("R")


class OperationTimeoutError(Exception):
    """
    Raised when one attempt exceeds its time budget.

    Named to avoid shadowing Python's built-in TimeoutError.
    """

    def __init__(self, operation: str, timeout_seconds: float):
        self.operation = operation
        self.timeout_seconds = timeout_seconds
        super().__init__(f"Operation '{operation}' timed out after {timeout_seconds}s")


class RetryExhausted(Exception):
    """Raised when every attempt failed with a retryable error."""

    def __init__(self, operation: str, attempts: int, last_error: Exception):
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Operation '{operation}' failed after {attempts} attempts: {last_error}")


@dataclass(frozen=True)
class CallPolicy:
    """Timeout and retry budget for one kind of backend call."""

    timeout_seconds: float = 10.0
    max_attempts: int = 3
    initial_delay: float = 0.5
    max_delay: float = 5.0
    jitter: bool = True
    retry_on: tuple[type[Exception], ...] = (OperationTimeoutError,)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    @classmethod
    def from_settings(cls, settings: Settings, retry_on: tuple[type[Exception], ...] = ()) -> CallPolicy:
        """Policy for backend fetches; timeouts are always retryable."""
        return cls(
            timeout_seconds=settings.fetch_timeout_seconds,
            max_attempts=settings.fetch_retries,
            initial_delay=settings.fetch_retry_delay_seconds,
            retry_on=(OperationTimeoutError, *retry_on),
        )

    def delay_before(self, attempt: int) -> float:
        """Backoff after failed attempt number ``attempt`` (1-based)."""
        delay = min(self.initial_delay * 2 ** (attempt - 1), self.max_delay)
        if self.jitter:
            delay *= 0.5 + random.random()
        return delay


async def _attempt(factory: Callable[[], Awaitable[R]], timeout_seconds: float, operation: str) -> R:
    try:
        return await asyncio.wait_for(factory(), timeout=timeout_seconds)
    except asyncio.TimeoutError as e:
        logger.warning("backend_call_timeout", operation=operation, timeout=timeout_seconds)
        raise OperationTimeoutError(operation, timeout_seconds) from e


async def call_with_policy(
    factory: Callable[[], Awaitable[R]],
    policy: CallPolicy,
    operation: str = "operation",
    retry_result: Callable[[R], bool] | None = None,
) -> R:
    """
    Run ``factory()`` under ``policy``.

    Args:
        factory: Builds a fresh awaitable for each attempt
        policy: Timeout and retry budget
        operation: Name used in logs and errors
        retry_result: Optional predicate marking a result as transient; a
            transient result is retried like an error and returned as-is
            once the attempts run out

    Returns:
        The first non-transient result

    Raises:
        RetryExhausted: When every attempt raised a retryable error
        Exception: Any error outside ``policy.retry_on``, immediately
    """
    attempt = 0
    while True:
        attempt += 1
        last_attempt = attempt >= policy.max_attempts
        try:
            result = await _attempt(factory, policy.timeout_seconds, operation)
        except policy.retry_on as e:
            if last_attempt:
                logger.warning("backend_call_exhausted", operation=operation, attempts=attempt, error=str(e))
                raise RetryExhausted(operation, attempt, e) from e
            cause: Any = str(e)
        else:
            if last_attempt or retry_result is None or not retry_result(result):
                return result
            cause = repr(result)

        delay = policy.delay_before(attempt)
        logger.info(
            "backend_call_retry",
            operation=operation,
            attempt=attempt,
            max_attempts=policy.max_attempts,
            delay=f"{delay:.2f}s",
            cause=cause,
        )
        await asyncio.sleep(delay)
