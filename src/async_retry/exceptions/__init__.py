"""
Async Retry - Exception Hierarchy.

Errors raised by the retry engine itself. Failures of the retried task are
propagated unchanged unless error wrapping is enabled.
"""

from .base import (
    ABORTED,
    EXHAUSTED,
    TIMEOUT,
    AsyncRetryError,
    RetryCancelledError,
    RetryBudgetExceededError,
    RetryExhaustedError,
)

__all__ = [
    "ABORTED",
    "EXHAUSTED",
    "TIMEOUT",
    "AsyncRetryError",
    "RetryCancelledError",
    "RetryBudgetExceededError",
    "RetryExhaustedError",
]
