# file: app/tasks.py
import asyncio
import logging
from typing import Awaitable, Set

log = logging.getLogger("tasks")

class TaskRunner:
    """Detached background work with its own error boundary.

    Tasks are tracked until they finish so shutdown and tests can wait on them.
    """

    def __init__(self):
        self._tasks: Set[asyncio.Task] = set()

    def spawn(self, coro: Awaitable, name: str = "background") -> asyncio.Task:
        task = asyncio.create_task(self._guard(coro, name), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _guard(self, coro: Awaitable, name: str):
        try:
            return await coro
        except asyncio.CancelledError:
            raise
        except Exception:
            log.exception("Background task %s failed", name)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self):
        """Wait until every task, including ones spawned while waiting, is done."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def cancel_all(self):
        for task in list(self._tasks):
            task.cancel()
        await self.drain()
