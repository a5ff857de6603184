"""Detached asyncio tasks.

A detached task is started without anyone awaiting its result. The event
loop only keeps weak references to tasks, so the set below holds them
until they finish, and a done-callback logs failures that would otherwise
surface as "Task exception was never retrieved".
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Coroutine

logger = logging.getLogger(__name__)

_detached: set[asyncio.Task[Any]] = set()


def spawn_detached(coro: Coroutine[Any, Any, Any], what: str) -> asyncio.Task[Any]:
    """Run ``coro`` in the background; its outcome is only logged.

    Args:
        coro: The coroutine to run.
        what: Human-readable description used in log lines.
    """
    task = asyncio.get_running_loop().create_task(coro, name=f"detached: {what}")
    _detached.add(task)
    task.add_done_callback(lambda t: _on_done(t, what))
    return task


def pending_detached() -> set[asyncio.Task[Any]]:
    """Detached tasks that have not finished yet."""
    return {task for task in _detached if not task.done()}


def _on_done(task: asyncio.Task[Any], what: str) -> None:
    _detached.discard(task)
    if task.cancelled():
        logger.debug("Detached task cancelled: %s", what)
        return
    exc = task.exception()
    if exc is not None:
        logger.warning("Detached task failed: %s: %s", what, exc)
    else:
        logger.debug("Detached task finished: %s", what)
