from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

logger = logging.getLogger(__name__)


class TaskRegistry:
    """Tracks detached background tasks so shutdown can wait for them."""

    def __init__(self) -> None:
        self._running_tasks: dict[str, asyncio.Task[Any]] = {}

    def start_task(self, key: str, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        """Create an asyncio task and register it by key.

        If a task with the same key is still running, the new coroutine is
        closed and the running task is returned instead.
        """
        running = self._running_tasks.get(key)
        if running is not None and not running.done():
            coro.close()
            return running

        task = asyncio.create_task(coro, name=key)
        self._running_tasks[key] = task
        task.add_done_callback(lambda t: self._forget(key, t))
        return task

    def get_task(self, key: str) -> asyncio.Task[Any] | None:
        return self._running_tasks.get(key)

    def is_running(self, key: str) -> bool:
        task = self._running_tasks.get(key)
        return task is not None and not task.done()

    def __len__(self) -> int:
        return len(self._running_tasks)

    async def drain(self, timeout: float | None = None) -> int:
        """Wait for outstanding tasks, cancelling any still running after ``timeout``.

        Returns the number of tasks that had to be cancelled.
        """
        tasks = [t for t in self._running_tasks.values() if not t.done()]
        if not tasks:
            return 0

        _, pending = await asyncio.wait(tasks, timeout=timeout)
        for task in pending:
            task.cancel()
        if pending:
            logger.warning("Cancelled %d background tasks still running at shutdown", len(pending))
            await asyncio.gather(*pending, return_exceptions=True)
        return len(pending)

    def _forget(self, key: str, task: asyncio.Task[Any]) -> None:
        if self._running_tasks.get(key) is task:
            del self._running_tasks[key]
        if not task.cancelled() and task.exception() is not None:
            logger.error("Background task %s failed: %r", key, task.exception())
