"""
Parallel Batch Executor.

Runs one coroutine per item with a concurrency limit and returns results
in input order. Failures in one item do not cascade to the others: with
``return_exceptions=True`` an item's exception becomes its result.
"""

import asyncio
import time
from collections.abc import Callable, Coroutine
from typing import Any, TypeVar

from vaultfill.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class ParallelBatchExecutor:
    """Executes a batch of async tasks with bounded concurrency."""

    def __init__(self, concurrency_limit: int = 4, return_exceptions: bool = True):
        self.semaphore = asyncio.Semaphore(concurrency_limit)
        self.return_exceptions = return_exceptions

    async def execute_batch(
        self, items: list[T], task_fn: Callable[[T], Coroutine[Any, Any, R]], batch_name: str = "batch"
    ) -> list[R | BaseException]:
        """Execute ``task_fn`` across ``items`` in parallel, preserving order."""
        start_time = time.time()
        logger.debug("parallel_batch_started", batch=batch_name, count=len(items))

        async def _guarded(item: T) -> R:
            async with self.semaphore:
                return await task_fn(item)

        results = await asyncio.gather(
            *(_guarded(item) for item in items),
            return_exceptions=self.return_exceptions,
        )

        duration = int((time.time() - start_time) * 1000)
        logger.debug("parallel_batch_completed", batch=batch_name, count=len(items), duration_ms=duration)

        return list(results)
