"""
The retry loop and its decorator form.
"""

import functools
import inspect
import logging
from dataclasses import replace
from typing import Any, Awaitable, Callable, Mapping, ParamSpec, TypeVar

from .backoff import plan_delay, to_int_ms
from .classify import is_cancellation_like
from .config import RetryConfig, normalize_options
from .context import AttemptContext, RetryEvent
from .sleep import check_cancelled, sleep
from ..exceptions import RetryBudgetExceededError, RetryExhaustedError

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")

Task = Callable[[AttemptContext], "T | Awaitable[T]"]


async def _resolve(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


def _give_up(
    error: Exception,
    config: RetryConfig,
    attempt: int,
    elapsed_ms: int,
    started_at: float,
) -> Exception:
    logger.debug(
        f"Giving up after attempt {attempt}/{config.max_attempts} "
        f"({elapsed_ms}ms elapsed): {error!r}"
    )
    if not config.wrap_error:
        return error
    return RetryExhaustedError(
        attempts=attempt,
        elapsed_ms=elapsed_ms,
        max_attempts=config.max_attempts,
        started_at=started_at,
        cause=error,
    )


async def retry(
    task: Task,
    config: RetryConfig | Mapping[str, Any] | None = None,
    **options: Any,
) -> T:
    """
    Run `task` until it succeeds or the retry policy gives up.

    Args:
        task: Callable receiving an AttemptContext; may return a value or an awaitable
        config: RetryConfig or mapping of options (default: RetryConfig())
        **options: Per-field overrides applied on top of `config`

    Returns:
        The task's result from the first successful attempt

    Raises:
        ValueError: If the configuration is invalid; the task is not invoked
        RetryCancelledError: If the cancellation signal fires
        RetryBudgetExceededError: If `max_elapsed_ms` is or would be exceeded
        RetryExhaustedError: On give-up when `wrap_error` is enabled
        Exception: The task's last failure on give-up when `wrap_error` is disabled,
            or a cancellation-like failure raised by the task
    """
    opts = normalize_options(config, **options)

    clock = opts.clock
    started_at = clock()
    attempt = 0

    def elapsed() -> int:
        return to_int_ms(clock() - started_at)

    while True:
        check_cancelled(opts.signal)

        elapsed_ms = elapsed()
        if opts.max_elapsed_ms is not None and elapsed_ms > opts.max_elapsed_ms:
            logger.debug(f"Retry budget of {opts.max_elapsed_ms}ms exhausted before attempt {attempt + 1}")
            raise RetryBudgetExceededError(
                attempts=attempt,
                elapsed_ms=elapsed_ms,
                max_elapsed_ms=opts.max_elapsed_ms,
            )

        attempt += 1
        ctx = AttemptContext(
            attempt=attempt,
            max_attempts=opts.max_attempts,
            started_at=started_at,
            elapsed_ms=elapsed(),
            signal=opts.signal,
        )

        try:
            return await _resolve(task(ctx))
        except Exception as exc:
            error = exc

        # Cancellation reported by the task itself is never retried or wrapped
        if is_cancellation_like(error):
            raise error

        elapsed_ms = elapsed()
        if attempt >= opts.max_attempts:
            raise _give_up(error, opts, attempt, elapsed_ms, started_at)

        check_cancelled(opts.signal)

        ctx = replace(ctx, elapsed_ms=elapsed_ms)
        if not await _resolve(opts.should_retry(error, ctx)):
            raise _give_up(error, opts, attempt, elapsed_ms, started_at)

        reason, delay_ms = plan_delay(error, attempt, opts, clock())

        if opts.max_elapsed_ms is not None and elapsed_ms + delay_ms > opts.max_elapsed_ms:
            logger.debug(
                f"Retry budget of {opts.max_elapsed_ms}ms would be exceeded by a "
                f"{delay_ms}ms wait after attempt {attempt}"
            )
            raise RetryBudgetExceededError(
                attempts=attempt,
                elapsed_ms=elapsed_ms,
                max_elapsed_ms=opts.max_elapsed_ms,
                cause=error,
            )

        if opts.on_retry is not None:
            await _resolve(
                opts.on_retry(
                    RetryEvent(
                        error=error,
                        reason=reason,
                        delay_ms=delay_ms,
                        next_attempt=attempt + 1,
                        ctx=ctx,
                    )
                )
            )

        logger.debug(
            f"Retry {attempt + 1}/{opts.max_attempts} after {error!r}, "
            f"waiting {delay_ms}ms ({reason.value})"
        )
        await sleep(delay_ms, opts.signal)


def with_retry(
    config: RetryConfig | Mapping[str, Any] | None = None,
    **options: Any,
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """
    Decorator for async functions with retry logic.

    The decorated function is called with its own arguments on every
    attempt; it does not receive the AttemptContext.

    Args:
        config: Retry configuration (default: RetryConfig())
        **options: Per-field overrides applied on top of `config`

    Returns:
        Decorated async function with retry behavior
    """

    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            return await retry(lambda ctx: func(*args, **kwargs), config, **options)

        return wrapper

    return decorator
