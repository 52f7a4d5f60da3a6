"""
Scoped concurrent work for the updater.

A TaskScope owns every unit of work started through it. Callers only get a
TaskHandle back; the scope keeps the asyncio.Task. Leaving the scope joins
what is left on success and cancels it on error, so no unit outlives the run.
"""

import asyncio
import functools
import itertools
from dataclasses import dataclass
from typing import Any, Callable, Coroutine, Dict, Optional

_handle_ids = itertools.count(1)


@dataclass(frozen=True)
class TaskHandle:
    """Non-owning reference to a unit of work in a TaskScope."""
    id: int
    name: str


class TaskScope:
    """
    Async context manager that owns spawned tasks.

        async with TaskScope() as scope:
            handle = scope.spawn(fetch(), name="listing")
            listing = await scope.wait_for(handle)
    """

    def __init__(self, name: str = ""):
        self.name = name
        self._tasks: Dict[TaskHandle, asyncio.Task] = {}
        self._closed = False

    async def __aenter__(self) -> "TaskScope":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        try:
            if exc_type is None:
                await self.join_all()
            else:
                await self.terminate_all()
        finally:
            self._closed = True
        return False

    @property
    def outstanding(self) -> int:
        """Units spawned but not yet joined or terminated."""
        return len(self._tasks)

    def spawn(self, coro: Coroutine, name: str = "") -> TaskHandle:
        """Start a coroutine as a unit of work owned by this scope."""
        if self._closed:
            coro.close()
            raise RuntimeError(f"TaskScope {self.name!r} is closed")
        handle = TaskHandle(id=next(_handle_ids), name=name)
        self._tasks[handle] = asyncio.create_task(coro, name=name or None)
        return handle

    def spawn_blocking(self, func: Callable[..., Any], *args, name: str = "") -> TaskHandle:
        """Run a blocking callable in the default executor as a unit of work."""
        loop = asyncio.get_running_loop()
        return self.spawn(self._in_executor(loop, functools.partial(func, *args)), name=name)

    @staticmethod
    async def _in_executor(loop: asyncio.AbstractEventLoop, call: Callable[[], Any]):
        return await loop.run_in_executor(None, call)

    async def wait_for(self, handle: TaskHandle):
        """
        Wait for a unit to finish and return its result.

        Waiting does not cancel the unit, even if the waiter itself is
        cancelled. Once joined the unit is released from the scope.

        Raises:
            KeyError: if the handle does not belong to this scope
            Exception: whatever the unit raised
        """
        task = self._tasks[handle]
        await asyncio.wait({task})
        del self._tasks[handle]
        return task.result()

    async def join_all(self):
        """Wait for every outstanding unit, re-raising the first failure."""
        first_error: Optional[BaseException] = None
        for handle in list(self._tasks):
            try:
                await self.wait_for(handle)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                if first_error is None:
                    first_error = e
        if first_error is not None:
            raise first_error

    async def terminate_all(self):
        """Cancel every outstanding unit and wait for each to finish."""
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
