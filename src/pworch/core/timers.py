"""Arm/refresh/fire timer on the event loop."""

import asyncio
import inspect
import logging
from collections.abc import Callable
from typing import Any, Optional

logger = logging.getLogger(__name__)


class ResettableTimer:
    """A one-shot timer that can be re-armed before it fires.

    ``callback`` may return a coroutine; it is then run as a task.
    """

    def __init__(self, delay: float, callback: Callable[[], Any], name: str = "timer"):
        self.delay = delay
        self.name = name
        self._callback = callback
        self._handle: Optional[asyncio.TimerHandle] = None
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def start(self) -> None:
        """Arm the timer, restarting the countdown if already armed."""
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay, self._fire)

    def refresh(self) -> None:
        """Restart the countdown; arms the timer if it is idle."""
        self.start()

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        try:
            result = self._callback()
        except Exception as e:
            logger.error(f"[{self.name}] callback failed: {e}", exc_info=True)
            return

        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._tasks.add(task)
            task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"[{self.name}] callback failed: {exc}", exc_info=exc)

    async def wait_fired(self) -> None:
        """Wait for callbacks started by the last firing to finish."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
