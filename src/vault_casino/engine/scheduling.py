"""Cancellable delayed callbacks used for policy moves and match timeouts."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Protocol

logger = logging.getLogger(__name__)

Callback = Callable[[], Awaitable[None]]


class ScheduledCall(Protocol):
    """Handle of a pending callback."""

    def cancel(self) -> object: ...


class Scheduler(Protocol):
    """Runs an async callback after a delay, unless cancelled first."""

    def call_later(self, delay: float, callback: Callback) -> ScheduledCall: ...


class AsyncioScheduler:
    """Scheduler backed by asyncio tasks on the running event loop."""

    def __init__(self) -> None:
        # Strong references - the loop only keeps weak ones to tasks
        self._tasks: set[asyncio.Task] = set()

    def call_later(self, delay: float, callback: Callback) -> asyncio.Task:
        task = asyncio.create_task(self._run(delay, callback))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def cancel_all(self) -> None:
        for task in list(self._tasks):
            task.cancel()

    @staticmethod
    async def _run(delay: float, callback: Callback) -> None:
        await asyncio.sleep(delay)
        try:
            await callback()
        except Exception:
            logger.exception(f"Scheduled callback {getattr(callback, '__name__', callback)!r} failed")
