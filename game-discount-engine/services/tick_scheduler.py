"""
Repeating clock callbacks on the asyncio event loop.

Game sessions use this to re-evaluate their clock every tick. Each scheduled
callback returns a handle whose cancel() is idempotent; once cancelled the
callback never runs again, even if a pending call was already queued.
"""

from __future__ import annotations

import asyncio
from datetime import timedelta
from typing import Callable, Optional


class RepeatingTick:
    def __init__(self, loop: asyncio.AbstractEventLoop, interval: timedelta, callback: Callable[[], None]) -> None:
        self._loop = loop
        self._interval_seconds = interval.total_seconds()
        self._callback = callback
        self._handle: Optional[asyncio.TimerHandle] = None
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def start(self) -> "RepeatingTick":
        self._schedule_next()
        return self

    def cancel(self) -> None:
        self._cancelled = True
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _schedule_next(self) -> None:
        if self._cancelled:
            return
        self._handle = self._loop.call_later(self._interval_seconds, self._run)

    def _run(self) -> None:
        if self._cancelled:
            return
        # Reschedule first so a raising callback does not stop the clock.
        self._schedule_next()
        self._callback()


class AsyncioTickScheduler:
    """TickScheduler backed by loop.call_later; must be used from the loop's thread."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop

    def schedule_repeating(self, interval: timedelta, callback: Callable[[], None]) -> RepeatingTick:
        if interval <= timedelta(0):
            raise ValueError("interval must be positive")
        loop = self._loop or asyncio.get_running_loop()
        return RepeatingTick(loop, interval, callback).start()


__all__ = ["AsyncioTickScheduler", "RepeatingTick"]
