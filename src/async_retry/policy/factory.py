"""
Retry functions with pre-bound default options.
"""

from typing import Any, Awaitable, Mapping, Protocol

from .config import RetryConfig, as_options
from .engine import Task, retry


class RetryFn(Protocol):
    """Same call signature as `retry`."""

    def __call__(
        self,
        task: Task,
        config: RetryConfig | Mapping[str, Any] | None = None,
        **options: Any,
    ) -> Awaitable[Any]: ...


def create_retry(
    defaults: RetryConfig | Mapping[str, Any] | None = None,
    **options: Any,
) -> RetryFn:
    """
    Create a retry function with default options.

    Per-call options override the defaults field by field. Nothing is merged
    deeply: a per-call value (a hook, a signal, a predicate) replaces the
    default one wholesale. Defaults are validated on every call, so an invalid
    default surfaces as a ValueError from the returned function.

    Example:
        retry_api = create_retry(max_attempts=5, respect_retry_after=True)
        data = await retry_api(fetch_data, base_delay_ms=50)
    """
    base = {**as_options(defaults), **options}

    async def retry_fn(
        task: Task,
        config: RetryConfig | Mapping[str, Any] | None = None,
        **overrides: Any,
    ) -> Any:
        return await retry(task, {**base, **as_options(config), **overrides})

    return retry_fn
