"""Detached background tasks.

Fire-and-forget work (the startup handshake, scheduled job bodies) runs as an
asyncio task whose failure is routed to an error callback instead of
disappearing as an unretrieved task exception.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Set

logger = logging.getLogger(__name__)

ErrorCallback = Callable[[BaseException], None]

# Strong references so running tasks are not garbage collected mid-flight
_running: Set[asyncio.Task] = set()


def log_error(exc: BaseException) -> None:
    logger.error("Background task failed", exc_info=(type(exc), exc, exc.__traceback__))


def spawn(
    coro: Awaitable,
    *,
    name: Optional[str] = None,
    on_error: Optional[ErrorCallback] = None,
) -> asyncio.Task:
    """Schedule ``coro`` on the running loop without awaiting it."""
    task = asyncio.ensure_future(coro)
    if name:
        task.set_name(name)
    handler = on_error or log_error
    _running.add(task)

    def _done(t: asyncio.Task) -> None:
        _running.discard(t)
        if t.cancelled():
            logger.debug("Background task %s cancelled", t.get_name())
            return
        exc = t.exception()
        if exc is not None:
            handler(exc)

    task.add_done_callback(_done)
    return task
