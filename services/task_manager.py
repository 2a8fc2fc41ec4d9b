import asyncio
import inspect
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from core.logger import logger

Callback = Callable[[], Union[None, Awaitable[Any]]]


class TaskManager:
    """
    Keyed asyncio tasks for one owner. Registering a key cancels the task
    already held under it, so at most one task per key is ever pending.
    """

    def __init__(self, owner: str = ""):
        self.owner = owner
        self._tasks: Dict[str, asyncio.Task] = {}

    def schedule(self, key: str, delay_ms: int, callback: Callback) -> asyncio.Task:
        """Run callback after delay_ms, superseding any pending task for the same key."""
        return self.register_task(key, self._delayed(delay_ms, callback))

    def spawn(self, key: str, coro: Awaitable[Any]) -> asyncio.Task:
        return self.register_task(key, coro)

    def register_task(self, key: str, coro: Awaitable[Any]) -> asyncio.Task:
        self.cancel_task(key)
        task = asyncio.ensure_future(coro)
        self._tasks[key] = task
        logger.debug("Registered task", owner=self.owner, key=key)

        # Remove from dict when done
        task.add_done_callback(lambda t: self._cleanup_task(key, t))
        return task

    def cancel_task(self, key: str):
        """Cancel the pending task for key, if any."""
        task = self._tasks.pop(key, None)
        if task is None or task.done():
            return
        # A callback superseding its own timer just drops the reference
        if task is asyncio.current_task():
            return
        task.cancel()
        logger.debug("Cancelled task", owner=self.owner, key=key)

    def cancel_all(self):
        for key in list(self._tasks):
            self.cancel_task(key)

    def get(self, key: str) -> Optional[asyncio.Task]:
        return self._tasks.get(key)

    def pending(self, key: str) -> bool:
        task = self._tasks.get(key)
        return task is not None and not task.done()

    def _cleanup_task(self, key: str, task: asyncio.Task):
        """Remove task from dict if it's still the registered one."""
        if self._tasks.get(key) is task:
            del self._tasks[key]
        if not task.cancelled() and task.exception() is not None:
            logger.error("Task failed", owner=self.owner, key=key, error=repr(task.exception()))

    @staticmethod
    async def _delayed(delay_ms: int, callback: Callback):
        await asyncio.sleep(max(0, delay_ms) / 1000)
        result = callback()
        if inspect.isawaitable(result):
            await result
