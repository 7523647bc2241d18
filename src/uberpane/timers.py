"""Named, re-armable one-shot timers on the asyncio loop."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable

_logger = logging.getLogger(__name__)

TimerCallback = Callable[[], Awaitable[None] | None]


class TimerSet:
    """A set of independent one-shot timers keyed by name.

    Each pending timer is an asyncio task that sleeps and then runs its
    callback.  Arming a name that is already pending cancels the pending
    fire first, so a callback never runs twice for one arm.  Callbacks may
    be plain functions or coroutine functions; they run outside any lock
    and must take whatever lock guards the state they touch.

    Must be used from within a running event loop.
    """

    def __init__(self, name: str = "timers") -> None:
        self._name = name
        self._tasks: dict[str, asyncio.Task[None]] = {}
        self._closed = False

    def arm(self, name: str, delay: float, callback: TimerCallback) -> None:
        """Schedule *callback* to run once after *delay* seconds."""
        if self._closed:
            _logger.debug("%s: ignoring arm(%s) after close", self._name, name)
            return
        self.disarm(name)
        task = asyncio.get_running_loop().create_task(
            self._fire(name, max(0.0, delay), callback),
            name=f"{self._name}:{name}",
        )
        self._tasks[name] = task

    def disarm(self, name: str) -> None:
        """Cancel a pending fire.  No effect if already fired or never armed."""
        task = self._tasks.pop(name, None)
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    def is_armed(self, name: str) -> bool:
        task = self._tasks.get(name)
        return task is not None and not task.done()

    async def close(self) -> None:
        """Cancel every pending timer and wait for them to unwind."""
        self._closed = True
        tasks = list(self._tasks.values())
        self._tasks.clear()
        current = asyncio.current_task()
        for task in tasks:
            if task is not current:
                task.cancel()
        await asyncio.gather(*(t for t in tasks if t is not current), return_exceptions=True)

    async def _fire(self, name: str, delay: float, callback: TimerCallback) -> None:
        await asyncio.sleep(delay)
        # Once fired the timer is no longer pending; the callback may re-arm it.
        if self._tasks.get(name) is asyncio.current_task():
            del self._tasks[name]
        try:
            result = callback()
            if inspect.isawaitable(result):
                await result
        except asyncio.CancelledError:
            raise
        except Exception:
            _logger.exception("%s: timer %s callback failed", self._name, name)
