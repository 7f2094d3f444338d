"""
Cancellable sleep between attempts.
"""

import asyncio

from .backoff import to_int_ms
from .context import CancellationSignal
from ..exceptions import RetryCancelledError


def check_cancelled(signal: CancellationSignal | None) -> None:
    """Raise RetryCancelledError if `signal` has been triggered."""
    if signal is not None and signal.is_set():
        raise RetryCancelledError()


async def sleep(ms: float, signal: CancellationSignal | None = None) -> None:
    """
    Suspend for `ms` milliseconds unless `signal` fires first.

    A zero delay still yields to the event loop once. Both helper tasks are
    cancelled and awaited before returning, whatever the outcome.

    Raises:
        RetryCancelledError: If the signal is set before or during the wait
    """
    wait_ms = to_int_ms(ms)

    if wait_ms == 0:
        check_cancelled(signal)
        await asyncio.sleep(0)
        check_cancelled(signal)
        return

    if signal is None:
        await asyncio.sleep(wait_ms / 1000)
        return

    check_cancelled(signal)

    timer = asyncio.ensure_future(asyncio.sleep(wait_ms / 1000))
    watcher = asyncio.ensure_future(signal.wait())
    try:
        done, _ = await asyncio.wait(
            {timer, watcher}, return_when=asyncio.FIRST_COMPLETED
        )
    finally:
        for pending in (timer, watcher):
            if not pending.done():
                pending.cancel()
        await asyncio.gather(timer, watcher, return_exceptions=True)

    if watcher in done:
        raise RetryCancelledError()
