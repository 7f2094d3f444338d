"""
Async Retry - retry policy engine for asyncio.

Re-invokes transiently failing async work with exponential backoff, full
jitter, Retry-After hints, a global time budget and cooperative cancellation.
"""

from .exceptions import (
    AsyncRetryError,
    RetryCancelledError,
    RetryBudgetExceededError,
    RetryExhaustedError,
)
from .policy import (
    AttemptContext,
    CancellationSignal,
    JitterMode,
    RetryConfig,
    RetryEvent,
    RetryFn,
    RetryHintUnit,
    RetryReason,
    create_retry,
    default_should_retry,
    retry,
    with_retry,
)

__version__ = "0.1.0"

__all__ = [
    # Version
    "__version__",
    # Retry
    "retry",
    "with_retry",
    "create_retry",
    "default_should_retry",
    "RetryFn",
    # Configuration
    "RetryConfig",
    "JitterMode",
    "RetryHintUnit",
    # Context
    "AttemptContext",
    "CancellationSignal",
    "RetryEvent",
    "RetryReason",
    # Exceptions
    "AsyncRetryError",
    "RetryCancelledError",
    "RetryBudgetExceededError",
    "RetryExhaustedError",
]
