"""
Default retriability heuristic.
"""

import asyncio
import re
from typing import Any

import httpx

from .failure import get_code, get_field, get_message, get_status
from ..exceptions import RetryCancelledError

RETRIABLE_STATUS = frozenset({408, 425, 429, 500, 502, 503, 504})

RETRIABLE_CODES = frozenset(
    {"ECONNRESET", "ETIMEDOUT", "EAI_AGAIN", "ENOTFOUND", "ECONNREFUSED", "EPIPE"}
)

CANCELLED_CODES = frozenset({"ABORT_ERR", "ERR_CANCELED"})

_NETWORK_MESSAGE = re.compile(r"network|fetch|timeout", re.IGNORECASE)


def is_cancellation_like(error: Any) -> bool:
    """True if the failure represents external cancellation, not a transient fault."""
    if isinstance(error, (RetryCancelledError, asyncio.CancelledError)):
        return True
    if type(error).__name__ == "AbortError" or get_field(error, "name") == "AbortError":
        return True
    code = get_field(error, "code")
    return isinstance(code, str) and code in CANCELLED_CODES


def default_should_retry(error: Any, ctx: Any) -> bool:
    """
    Decide whether `error` deserves another attempt.

    First match wins:
    1. cancellation already signalled -> no
    2. cancellation-like error -> no
    3. HTTP-like status -> only for 408, 425, 429 and 5xx gateway/server errors
    4. known network error code or httpx transport error -> yes
    5. TypeError mentioning network/fetch/timeout -> yes
    6. anything else -> yes
    """
    signal = get_field(ctx, "signal")
    if signal is not None and signal.is_set():
        return False
    if is_cancellation_like(error):
        return False

    status = get_status(error)
    if status is not None:
        return status in RETRIABLE_STATUS

    if get_code(error) in RETRIABLE_CODES or isinstance(error, httpx.TransportError):
        return True

    if isinstance(error, TypeError) and _NETWORK_MESSAGE.search(get_message(error) or ""):
        return True

    return True
