"""
Resilience patterns for backend calls.

Provides:
- Call policy (per-attempt timeout, retry with backoff)
- Bounded parallel batch execution
"""

from .parallel import ParallelBatchExecutor
from .policy import CallPolicy, OperationTimeoutError, RetryExhausted, call_with_policy

__all__ = [
    "CallPolicy",
    "OperationTimeoutError",
    "RetryExhausted",
    "call_with_policy",
    "ParallelBatchExecutor",
]
