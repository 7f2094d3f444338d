"""
Exception taxonomy for the retry engine.

Each exception carries a stable `code` and, where it replaces another failure,
the original error as `cause` (also chained as `__cause__`).
"""

ABORTED = "ERR_ASYNC_RETRY_ABORTED"
TIMEOUT = "ERR_ASYNC_RETRY_TIMEOUT"
EXHAUSTED = "ERR_ASYNC_RETRY_EXHAUSTED"


class AsyncRetryError(Exception):
    """Base exception for all errors raised by the retry engine."""

    def __init__(
        self,
        message: str,
        *,
        code: str,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        return f"{self.message} [{self.code}]"


class RetryCancelledError(AsyncRetryError):
    """Raised when the cancellation signal is observed. Never retried."""

    def __init__(self, message: str = "Retry aborted"):
        super().__init__(message, code=ABORTED)


class RetryBudgetExceededError(AsyncRetryError):
    """Raised when the elapsed-time budget is (or would be) exceeded."""

    def __init__(
        self,
        *,
        attempts: int,
        elapsed_ms: int,
        max_elapsed_ms: float,
        cause: BaseException | None = None,
    ):
        super().__init__(
            f"Retry timeout: elapsed={elapsed_ms}ms exceeded budget={max_elapsed_ms}ms",
            code=TIMEOUT,
            cause=cause,
        )
        self.attempts = attempts
        self.elapsed_ms = elapsed_ms
        self.max_elapsed_ms = max_elapsed_ms


class RetryExhaustedError(AsyncRetryError):
    """Raised in place of the last failure when error wrapping is enabled."""

    def __init__(
        self,
        *,
        attempts: int,
        elapsed_ms: int,
        max_attempts: int,
        started_at: float,
        cause: BaseException | None = None,
    ):
        super().__init__(
            f"Retry exhausted: attempts={attempts}/{max_attempts}, elapsed={elapsed_ms}ms",
            code=EXHAUSTED,
            cause=cause,
        )
        self.attempts = attempts
        self.elapsed_ms = elapsed_ms
        self.max_attempts = max_attempts
        self.started_at = started_at
