"""Cancellable periodic tasks for polling loops."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

logger = logging.getLogger(__name__)


class PeriodicTask:
    """Calls a function at a fixed interval until cancelled.

    The function is called on the event loop thread. It should not block; to
    do I/O it schedules its own task. An exception from the function is logged
    and the loop keeps running.

    Args:
        interval: Seconds between calls.
        func: Function to call.
        name: Task name used in log messages.

    Example:
        >>> task = PeriodicTask(0.05, read_pin)
        >>> task.start()
        >>> # ... later ...
        >>> task.cancel()
    """

    def __init__(self, interval: float, func: Callable[[], None], name: str = "") -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._interval = interval
        self._func = func
        self._name = name or getattr(func, "__name__", "periodic")
        self._task: asyncio.Task[None] | None = None
        self._cancelled = False

    @property
    def interval(self) -> float:
        """Seconds between calls."""
        return self._interval

    @property
    def cancelled(self) -> bool:
        """Return True once cancel() has been called."""
        return self._cancelled

    @property
    def running(self) -> bool:
        """Return True while the loop task is alive."""
        return self._task is not None and not self._task.done()

    def start(self) -> PeriodicTask:
        """Start the loop on the running event loop.

        Returns:
            Self, for chaining.

        Raises:
            RuntimeError: If already started or cancelled.
        """
        if self._cancelled:
            raise RuntimeError("PeriodicTask was cancelled")
        if self._task is not None:
            raise RuntimeError("PeriodicTask already started")
        self._task = asyncio.get_running_loop().create_task(self._loop(), name=self._name)
        return self

    def cancel(self) -> None:
        """Stop the loop. Safe to call more than once."""
        self._cancelled = True
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def _loop(self) -> None:
        while not self._cancelled:
            await asyncio.sleep(self._interval)
            if self._cancelled:
                break
            try:
                self._func()
            except Exception:  # pylint: disable=broad-exception-caught
                logger.exception("Error in periodic task %s", self._name)
