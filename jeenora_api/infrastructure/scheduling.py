"""Cancellable delayed tasks on the running event loop."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger(__name__)

Callback = Callable[[], Awaitable[Any] | Any]


class ScheduledTask:
    """Handle for a callback scheduled to run after a delay."""

    def __init__(self, name: str, delay: float) -> None:
        self.name = name
        self.delay = delay
        self._task: asyncio.Task | None = None
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def done(self) -> bool:
        return self._cancelled or (self._task is not None and self._task.done())

    def cancel(self) -> None:
        self._cancelled = True
        if self._task is not None and not self._task.done():
            self._task.cancel()


class TaskScheduler:
    """Run callbacks after a delay and keep track of the pending handles."""

    def __init__(self) -> None:
        self._pending: set[ScheduledTask] = set()

    def schedule(self, delay: float, callback: Callback, *, name: str) -> ScheduledTask:
        handle = ScheduledTask(name, delay)
        handle._task = asyncio.get_running_loop().create_task(
            self._run(handle, callback), name=name
        )
        self._pending.add(handle)
        return handle

    def cancel_all(self) -> None:
        for handle in list(self._pending):
            handle.cancel()
        self._pending.clear()

    @property
    def pending(self) -> list[ScheduledTask]:
        return [handle for handle in self._pending if not handle.done()]

    async def _run(self, handle: ScheduledTask, callback: Callback) -> None:
        try:
            await asyncio.sleep(handle.delay)
            if handle.cancelled:
                return
            result = callback()
            if inspect.isawaitable(result):
                await result
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Scheduled task %s failed", handle.name)
        finally:
            self._pending.discard(handle)


__all__ = ["ScheduledTask", "TaskScheduler"]
