from __future__ import annotations

"""Bounded waiting for capability invocations.

``settle_within`` races an awaitable against a timer. Whichever settles first
decides the outcome. The timer is cleared on every exit path, and an
invocation that loses the race is cancelled with a done-callback attached so
that a late result or exception is consumed silently instead of being
reported by the event loop as "exception was never retrieved".
"""

import asyncio
import logging
from typing import Any, Awaitable, TypeVar

from ..errors import StepTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _discard_late_settlement(task: "asyncio.Future[Any]") -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.debug(f"Ignoring late failure of timed-out invocation: {exc!r}")


async def settle_within(awaitable: Awaitable[T], seconds: float) -> T:
    """Await ``awaitable`` for at most ``seconds``.

    Raises
    ------
    StepTimeoutError
        When the timer fires before the invocation settles.
    """
    loop = asyncio.get_running_loop()
    task = asyncio.ensure_future(awaitable)
    timer: asyncio.Future[None] = loop.create_future()
    handle = loop.call_later(seconds, lambda: timer.done() or timer.set_result(None))
    try:
        await asyncio.wait({task, timer}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        task.add_done_callback(_discard_late_settlement)
        task.cancel()
        raise
    finally:
        handle.cancel()
        if not timer.done():
            timer.cancel()

    if task.done():
        if task.cancelled():
            # Cancelled from inside the invocation, not by our caller.
            raise RuntimeError("Invocation was cancelled")
        return task.result()

    task.add_done_callback(_discard_late_settlement)
    task.cancel()
    raise StepTimeoutError(seconds)
