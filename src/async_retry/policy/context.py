"""
Per-attempt context, retry events and the cancellation signal protocol.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Protocol, runtime_checkable


@runtime_checkable
class CancellationSignal(Protocol):
    """
    Externally owned cancellation flag.

    `asyncio.Event` satisfies this protocol. The engine only observes the
    signal; setting it is up to the caller.
    """

    def is_set(self) -> bool: ...

    def wait(self) -> Awaitable[Any]: ...


class RetryReason(str, Enum):
    """Why a particular delay was chosen."""

    RETRY_AFTER = "retry-after"  # server-supplied hint
    BACKOFF = "backoff"  # exponential backoff, possibly jittered


@dataclass(frozen=True)
class AttemptContext:
    """Snapshot passed to the task and to the retriability predicate."""

    attempt: int
    max_attempts: int
    started_at: float
    elapsed_ms: int
    signal: CancellationSignal | None = None


@dataclass(frozen=True)
class RetryEvent:
    """Emitted to the `on_retry` hook right before sleeping."""

    error: BaseException
    reason: RetryReason
    delay_ms: int
    next_attempt: int
    ctx: AttemptContext
