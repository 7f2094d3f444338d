"""
Extractors over arbitrary failures.

Thrown errors come in many shapes: `httpx.HTTPStatusError`, OS-level
`OSError`s, SDK exceptions with ad-hoc `status`/`code` attributes, or plain
objects carrying a `response` mapping. Each extractor reads attributes or
mapping keys and returns None when the information is absent.
"""

import errno
import math
import socket
from typing import Any, Mapping

_ERRNO_CODES = {
    errno.ECONNRESET: "ECONNRESET",
    errno.ETIMEDOUT: "ETIMEDOUT",
    errno.ECONNREFUSED: "ECONNREFUSED",
    errno.EPIPE: "EPIPE",
}

_GAI_CODES = {
    socket.EAI_AGAIN: "EAI_AGAIN",
    socket.EAI_NONAME: "ENOTFOUND",
}


def get_field(obj: Any, name: str) -> Any:
    """Read `name` from a mapping key or an attribute, None if missing."""
    if obj is None:
        return None
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


def _to_status(value: Any) -> int | float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
        try:
            value = float(value)
        except ValueError:
            return None
    if not isinstance(value, (int, float)) or not math.isfinite(value):
        return None
    return int(value) if value == int(value) else value


def get_status(error: Any) -> int | float | None:
    """
    HTTP-like status code of a failure.

    Looks at `response.status`, `response.status_code`, `status` and
    `status_code` in that order; the first present value decides.
    Numeric strings are accepted.
    """
    response = get_field(error, "response")
    for source, name in (
        (response, "status"),
        (response, "status_code"),
        (error, "status"),
        (error, "status_code"),
    ):
        value = get_field(source, name)
        if value is not None:
            return _to_status(value)
    return None


def get_code(error: Any) -> str | None:
    """System/network error code such as ``ECONNRESET``."""
    code = get_field(error, "code")
    if isinstance(code, str):
        return code
    if isinstance(error, socket.gaierror):
        return _GAI_CODES.get(error.errno)
    if isinstance(error, OSError):
        return _ERRNO_CODES.get(error.errno)
    return None


def get_message(error: Any) -> str | None:
    message = get_field(error, "message")
    if isinstance(message, str):
        return message
    if isinstance(error, BaseException):
        return str(error)
    return None


def get_headers(error: Any) -> Any:
    """Headers attached to the failure's response, in whatever shape they come."""
    return get_field(get_field(error, "response"), "headers")


def read_retry_after_body(error: Any) -> Any:
    """
    Raw `retry_after` body value.

    Checked in order: `response.data`, `raw_error`, `data`; the first
    non-None value wins.
    """
    for holder in (
        get_field(get_field(error, "response"), "data"),
        get_field(error, "raw_error"),
        get_field(error, "data"),
    ):
        value = get_field(holder, "retry_after")
        if value is not None:
            return value
    return None
