"""
Retry configuration, option normalization and presets.
"""

import math
import random
import time
from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Awaitable, Callable, Mapping

from .classify import default_should_retry
from .context import AttemptContext, CancellationSignal, RetryEvent

DEFAULT_RETRY_AFTER_HEADER = "retry-after"

ShouldRetry = Callable[[BaseException, AttemptContext], "bool | Awaitable[bool]"]
OnRetry = Callable[[RetryEvent], "None | Awaitable[None]"]


class JitterMode(str, Enum):
    """Jitter applied to computed backoff delays."""

    FULL = "full"  # delay = floor(random() * backoff)
    NONE = "none"  # delay = backoff


class RetryHintUnit(str, Enum):
    """Unit of a `retry_after` value found in a response body."""

    SECONDS = "seconds"
    MILLISECONDS = "milliseconds"


def now_ms() -> int:
    """Wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def _require_finite(name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise ValueError(f"{name} must be a finite number. Received: {value!r}")


def _check_non_negative(name: str, value: Any) -> None:
    if value is None:
        return
    _require_finite(name, value)
    if value < 0:
        raise ValueError(f"{name} must be a finite number >= 0 (or None). Received: {value!r}")


def _check_positive(name: str, value: Any) -> None:
    _require_finite(name, value)
    if value <= 0:
        raise ValueError(f"{name} must be a finite number > 0. Received: {value!r}")


def _check_max_attempts(value: Any) -> int:
    if (
        isinstance(value, bool)
        or not isinstance(value, (int, float))
        or not math.isfinite(value)
        or value < 1
        or int(value) != value
    ):
        raise ValueError(f"max_attempts must be an integer >= 1. Received: {value!r}")
    return int(value)


@dataclass(frozen=True)
class RetryConfig:
    """
    Configuration for a retry loop.

    All durations are in milliseconds.

    Attributes:
        max_attempts: Total attempts including the first one (default: 3)
        base_delay_ms: Backoff delay after the first failure (default: 200)
        cap_delay_ms: Upper bound for computed backoff (default: 2000)
        backoff_factor: Exponential growth factor (default: 2)
        jitter: Jitter mode applied to backoff (default: full)
        rng: Random source producing floats in [0, 1) (default: random.random)
        signal: Optional cancellation signal, e.g. an asyncio.Event
        max_elapsed_ms: Optional total time budget across attempts and waits
        should_retry: Retriability predicate, may be async
        on_retry: Optional hook called with a RetryEvent before each sleep
        respect_retry_after: Honor Retry-After hints on 429 failures (default: True)
        retry_after_header_name: Header carrying the hint, case-insensitive
        retry_after_body_unit: Unit of a body `retry_after` field; None disables
            body inspection (default: None)
        wrap_error: Wrap give-up failures into RetryExhaustedError (default: False)
        clock: Wall-clock source in epoch milliseconds
    """

    max_attempts: int = 3
    base_delay_ms: float = 200
    cap_delay_ms: float = 2000
    backoff_factor: float = 2
    jitter: JitterMode = JitterMode.FULL
    rng: Callable[[], float] = random.random
    signal: CancellationSignal | None = None
    max_elapsed_ms: float | None = None
    should_retry: ShouldRetry = default_should_retry
    on_retry: OnRetry | None = None
    respect_retry_after: bool = True
    retry_after_header_name: str = DEFAULT_RETRY_AFTER_HEADER
    retry_after_body_unit: RetryHintUnit | None = None
    wrap_error: bool = False
    clock: Callable[[], float] = now_ms

    def __post_init__(self) -> None:
        object.__setattr__(self, "max_attempts", _check_max_attempts(self.max_attempts))
        _check_non_negative("base_delay_ms", self.base_delay_ms)
        _check_non_negative("cap_delay_ms", self.cap_delay_ms)
        _check_positive("backoff_factor", self.backoff_factor)
        _check_non_negative("max_elapsed_ms", self.max_elapsed_ms)

        object.__setattr__(self, "jitter", JitterMode(self.jitter))
        if self.retry_after_body_unit is not None:
            object.__setattr__(
                self, "retry_after_body_unit", RetryHintUnit(self.retry_after_body_unit)
            )

        # Blank header names fall back to the standard one
        header = (self.retry_after_header_name or "").strip() or DEFAULT_RETRY_AFTER_HEADER
        object.__setattr__(self, "retry_after_header_name", header)

    @classmethod
    def aggressive(cls) -> "RetryConfig":
        """Preset for aggressive retry (more attempts, longer delays)."""
        return cls(
            max_attempts=10,
            base_delay_ms=500,
            cap_delay_ms=30_000,
        )

    @classmethod
    def conservative(cls) -> "RetryConfig":
        """Preset for conservative retry (fewer attempts, shorter delays)."""
        return cls(
            max_attempts=2,
            base_delay_ms=100,
            cap_delay_ms=1000,
        )

    @classmethod
    def no_retry(cls) -> "RetryConfig":
        """Preset for no retry (single attempt only)."""
        return cls(max_attempts=1)


def as_options(config: "RetryConfig | Mapping[str, Any] | None") -> dict[str, Any]:
    """Flatten a config or mapping into a plain dict of option fields."""
    if config is None:
        return {}
    if isinstance(config, RetryConfig):
        return {f.name: getattr(config, f.name) for f in fields(config)}
    return dict(config)


def normalize_options(
    config: "RetryConfig | Mapping[str, Any] | None" = None,
    **options: Any,
) -> RetryConfig:
    """
    Build a validated RetryConfig.

    Keyword options override fields of `config` one by one; values are
    replaced, never merged. Options explicitly set to None fall back to their
    defaults.

    Raises:
        ValueError: If a numeric option is out of range or an enum value is unknown
        TypeError: If an unknown option name is given
    """
    if isinstance(config, RetryConfig) and not options:
        return config

    merged = {**as_options(config), **options}
    return RetryConfig(**{k: v for k, v in merged.items() if v is not None})
