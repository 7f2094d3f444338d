"""
Async Retry - Retry Policy.

Retry loop with exponential backoff, full jitter, Retry-After hints,
time budgets and cooperative cancellation.
"""

from .config import JitterMode, RetryConfig, RetryHintUnit, normalize_options
from .context import AttemptContext, CancellationSignal, RetryEvent, RetryReason
from .classify import default_should_retry, is_cancellation_like
from .backoff import apply_full_jitter, calculate_backoff, plan_delay
from .sleep import sleep
from .engine import retry, with_retry
from .factory import RetryFn, create_retry

__all__ = [
    "JitterMode",
    "RetryConfig",
    "RetryHintUnit",
    "normalize_options",
    "AttemptContext",
    "CancellationSignal",
    "RetryEvent",
    "RetryReason",
    "default_should_retry",
    "is_cancellation_like",
    "apply_full_jitter",
    "calculate_backoff",
    "plan_delay",
    "sleep",
    "retry",
    "with_retry",
    "RetryFn",
    "create_retry",
]
