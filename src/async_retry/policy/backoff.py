"""
Delay planning: exponential backoff, full jitter and Retry-After hints.
"""

import logging
import math
import re
from datetime import timezone
from email.utils import parsedate_to_datetime
from typing import Any, Callable, Mapping

from .config import JitterMode, RetryConfig, RetryHintUnit
from .context import RetryReason
from .failure import get_headers, get_status, read_retry_after_body

logger = logging.getLogger(__name__)

# Plain decimal numbers only; no "inf", "nan" or digit separators
_NUMBER = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")

_JITTER_CEILING = 0.999999999


def to_int_ms(ms: Any) -> int:
    """Normalize a duration to non-negative integer milliseconds (non-finite -> 0)."""
    if isinstance(ms, bool) or not isinstance(ms, (int, float)) or not math.isfinite(ms):
        return 0
    return max(0, math.trunc(ms))


def _parse_number(value: str) -> float | None:
    value = value.strip()
    if not _NUMBER.fullmatch(value):
        return None
    number = float(value)
    return number if math.isfinite(number) else None


def calculate_backoff(attempt: int, config: RetryConfig) -> int:
    """
    Calculate the capped exponential backoff after a failed attempt.

    Args:
        attempt: One-based number of the attempt that just failed
        config: Retry configuration

    Returns:
        min(cap_delay_ms, base_delay_ms * backoff_factor ** (attempt - 1)) in ms
    """
    try:
        raw = config.base_delay_ms * config.backoff_factor ** (attempt - 1)
    except OverflowError:
        raw = math.inf if config.base_delay_ms else 0
    return to_int_ms(min(config.cap_delay_ms, raw))


def apply_full_jitter(backoff_ms: int, rng: Callable[[], float]) -> int:
    """Pick a delay uniformly in [0, backoff_ms) using `rng`."""
    r = rng()
    x = r if isinstance(r, (int, float)) and math.isfinite(r) else 0
    clamped = max(0.0, min(_JITTER_CEILING, x))
    return to_int_ms(math.floor(clamped * backoff_ms))


def get_header(headers: Any, name: str) -> str | None:
    """
    Case-insensitive header lookup.

    Objects with their own `get` (httpx.Headers, requests' CaseInsensitiveDict)
    are asked first and only string results count. Mappings are then scanned
    key by key; list values contribute their first element.
    """
    if not headers:
        return None

    if not isinstance(headers, dict):
        getter = getattr(headers, "get", None)
        value = getter(name) if callable(getter) else None
        if isinstance(value, str):
            return value
        if not isinstance(headers, Mapping):
            return None

    target = name.lower()
    for key, value in headers.items():
        if not isinstance(key, str) or key.lower() != target:
            continue
        if isinstance(value, str):
            return value
        if isinstance(value, (list, tuple)) and value and isinstance(value[0], str):
            return value[0]
    return None


def parse_retry_after_header(value: str, now_ms: float) -> int | None:
    """
    Parse a Retry-After header value into milliseconds.

    Accepts delta-seconds ("2", "1.5") or an HTTP date; returns None when
    the value is neither.
    """
    seconds = _parse_number(value)
    if seconds is not None:
        return to_int_ms(seconds * 1000)

    try:
        when = parsedate_to_datetime(value.strip())
    except (TypeError, ValueError, IndexError, OverflowError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return to_int_ms(when.timestamp() * 1000 - now_ms)


def parse_retry_after_body(value: Any, unit: RetryHintUnit) -> int | None:
    """Convert a body `retry_after` value (number or numeric string) into milliseconds."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = value if math.isfinite(value) else None
    elif isinstance(value, str):
        number = _parse_number(value)
    else:
        number = None

    if number is None:
        return None
    return to_int_ms(number * 1000) if unit == RetryHintUnit.SECONDS else to_int_ms(number)


def retry_after_ms(error: Any, config: RetryConfig, now_ms: float) -> int | None:
    """Server-supplied retry hint, header first, then body (if enabled)."""
    header = get_header(get_headers(error), config.retry_after_header_name)
    if header is not None:
        parsed = parse_retry_after_header(header, now_ms)
        if parsed is not None:
            return parsed
        logger.debug(f"Ignoring unparsable {config.retry_after_header_name} value: {header!r}")

    if config.retry_after_body_unit is not None:
        return parse_retry_after_body(read_retry_after_body(error), config.retry_after_body_unit)
    return None


def plan_delay(
    error: Any,
    attempt: int,
    config: RetryConfig,
    now_ms: float,
) -> tuple[RetryReason, int]:
    """
    Decide how long to wait before the attempt after `attempt`.

    Retry-After hints are only honored for 429 failures and are used as-is,
    without jitter. Everything else falls back to capped exponential backoff.
    """
    if config.respect_retry_after and get_status(error) == 429:
        hinted = retry_after_ms(error, config, now_ms)
        if hinted is not None:
            return RetryReason.RETRY_AFTER, to_int_ms(hinted)

    delay = calculate_backoff(attempt, config)
    if config.jitter == JitterMode.FULL:
        delay = apply_full_jitter(delay, config.rng)
    return RetryReason.BACKOFF, delay
