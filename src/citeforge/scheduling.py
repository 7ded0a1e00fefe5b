"""
Cancellation tokens for timer-based suspensions.

Every jump and every background extraction owns a token. Sleeps, delayed
callbacks and child tasks started through the token die with it, so a
superseded operation cannot touch shared state after a newer one started.
"""
from __future__ import annotations

import asyncio
import itertools
from typing import Any, Awaitable, Callable

from .errors import OperationCancelled
from .observability import get_logger

logger = get_logger(__name__)

_token_ids = itertools.count(1)


class CancellationToken:
    def __init__(self, label: str = ""):
        self.id = next(_token_ids)
        self.label = label
        self._cancelled = False
        self._timers: set[asyncio.TimerHandle] = set()
        self._tasks: set[asyncio.Task] = set()
        self._waiters: set[asyncio.Future] = set()
        self._on_cancel: list[Callable[[], Any]] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def raise_if_cancelled(self):
        if self._cancelled:
            raise OperationCancelled(f"{self.label or 'operation'} #{self.id} was superseded")

    def cancel(self):
        if self._cancelled:
            return
        self._cancelled = True
        for timer in list(self._timers):
            timer.cancel()
        self._timers.clear()
        current = _current_task()
        for task in list(self._tasks):
            if task is not current and not task.done():
                task.cancel()
        self._tasks.clear()
        for waiter in list(self._waiters):
            _release(waiter)
        self._waiters.clear()
        callbacks, self._on_cancel = self._on_cancel, []
        for callback in callbacks:
            callback()
        logger.info("operation_cancelled", label=self.label, token=self.id)

    def on_cancel(self, callback: Callable[[], Any]):
        """Registers cleanup that runs once if the token is cancelled."""
        if self._cancelled:
            callback()
            return
        self._on_cancel.append(callback)

    async def sleep(self, delay: float):
        """Sleeps for ``delay`` seconds; wakes early and raises if the token is cancelled."""
        self.raise_if_cancelled()
        loop = asyncio.get_running_loop()
        waiter = loop.create_future()
        handle = loop.call_later(max(0.0, float(delay)), _release, waiter)
        self._waiters.add(waiter)
        try:
            await waiter
        finally:
            handle.cancel()
            self._waiters.discard(waiter)
        self.raise_if_cancelled()

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> asyncio.TimerHandle | None:
        """Schedules ``callback`` on the running loop unless the token dies first."""
        if self._cancelled:
            return None
        loop = asyncio.get_running_loop()
        handle: asyncio.TimerHandle | None = None

        def _fire():
            self._timers.discard(handle)
            if not self._cancelled:
                callback(*args)

        handle = loop.call_later(max(0.0, float(delay)), _fire)
        self._timers.add(handle)
        return handle

    def spawn(self, coro: Awaitable[Any]) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        if self._cancelled:
            task.cancel()
            return task
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @property
    def pending_timers(self) -> int:
        return len(self._timers)


def _release(waiter: asyncio.Future):
    if not waiter.done():
        waiter.set_result(None)


def _current_task() -> asyncio.Task | None:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None
