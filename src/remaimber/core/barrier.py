"""Counting completion barrier for asyncio.

Tracks how many grading tasks of a session are still outstanding. Unlike a
one-shot latch it is reusable: ``add`` may be called again after earlier
``wait`` calls have returned.
"""

from __future__ import annotations

import asyncio


class CompletionBarrier:
    """A counter whose ``wait`` blocks until it reaches zero.

    ``add`` and ``done`` are plain methods so they can be called from
    synchronous code running on the event loop thread. Any number of
    coroutines may ``wait`` at once; all of them are woken when the count
    drops to zero.
    """

    def __init__(self) -> None:
        self._count = 0
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def pending(self) -> int:
        return self._count

    def add(self, n: int = 1) -> None:
        if n < 0:
            raise ValueError("use done() to decrement")
        self._count += n
        if self._count > 0:
            self._idle.clear()

    def done(self) -> None:
        if self._count == 0:
            raise RuntimeError("CompletionBarrier.done() called more times than add()")
        self._count -= 1
        if self._count == 0:
            self._idle.set()

    async def wait(self) -> None:
        """Return once no task is outstanding.

        Re-checks after each wake-up: a new ``add`` may land between the
        event being set and this coroutine resuming.
        """
        while self._count > 0:
            await self._idle.wait()
