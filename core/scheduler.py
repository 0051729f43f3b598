"""
Task Scheduler

Named, cancellable timers and tracked background tasks on the asyncio loop.
Every timer the player runs is owned here, so a single shutdown() tears
all of them down.
"""
import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Set


class TaskScheduler:
    """Owns every timer handle and background task of the player loop"""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop
        self._timers: Dict[str, asyncio.TimerHandle] = {}
        self._delays: Dict[str, float] = {}
        self._tasks: Set[asyncio.Task] = set()
        self.closed = False

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def call_later(self, name: str, delay: float, callback: Callable[..., Any], *args) -> None:
        """
        Arm a one-shot timer, replacing any timer already registered under name.

        Args:
            name: Timer name (e.g. "poll", "retry", "slide")
            delay: Seconds until the callback fires
            callback: Plain function or coroutine function
        """
        if self.closed:
            logging.debug(f"Scheduler closed, not arming timer '{name}'")
            return
        self.cancel(name)
        self._timers[name] = self.loop.call_later(delay, self._fire, name, callback, args)
        self._delays[name] = delay

    def every(self, name: str, interval: float, callback: Callable[[], Any]) -> None:
        """Arm a repeating timer; it re-arms before each callback runs"""
        def tick():
            self.call_later(name, interval, tick)
            return callback()

        self.call_later(name, interval, tick)

    def spawn(self, coro) -> Optional[asyncio.Task]:
        """Run a coroutine as a tracked background task"""
        if self.closed:
            coro.close()
            return None
        task = self.loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def cancel(self, name: str) -> bool:
        """Cancel a timer by name; returns True if one was pending"""
        handle = self._timers.pop(name, None)
        self._delays.pop(name, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def is_scheduled(self, name: str) -> bool:
        return name in self._timers

    def delay_of(self, name: str) -> Optional[float]:
        """Delay the named timer was armed with, or None"""
        return self._delays.get(name)

    def pending(self) -> List[str]:
        return sorted(self._timers)

    def cancel_all(self) -> None:
        for name in list(self._timers):
            self.cancel(name)

    async def shutdown(self) -> None:
        """Cancel all timers and tasks; nothing fires after this returns"""
        self.closed = True
        self.cancel_all()

        tasks = [t for t in self._tasks if not t.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
        logging.debug("Task scheduler shut down")

    def _fire(self, name: str, callback: Callable[..., Any], args: tuple) -> None:
        self._timers.pop(name, None)
        self._delays.pop(name, None)
        if self.closed:
            return
        try:
            result = callback(*args)
        except Exception as e:
            logging.error(f"Timer '{name}' callback failed: {e}")
            return
        if asyncio.iscoroutine(result):
            self.spawn(result)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logging.error(f"Background task failed: {error!r}")
