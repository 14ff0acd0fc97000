"""Clocks used by the time-driven stages (polling, sampling, timers).

SystemClock follows the event loop's real time. ManualClock only moves
when told to, which lets sampling windows and poll intervals be driven
step by step.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import time
from typing import Protocol

# Event loop passes given to woken tasks after each ManualClock step
_SETTLE_ROUNDS = 20


class Clock(Protocol):
    """Source of time for the pipeline stages."""

    def now(self) -> float:
        """Current time in seconds."""
        ...

    async def sleep(self, seconds: float) -> None:
        """Suspend the calling task for ``seconds``."""
        ...


class SystemClock:
    """Real monotonic time."""

    def now(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


class ManualClock:
    """Virtual time advanced explicitly with ``advance()``.

    Example:
        clock = ManualClock()
        task = asyncio.create_task(clock.sleep(5))
        await clock.advance(5)
        assert task.done()
    """

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self._sleepers: list[tuple[float, int, asyncio.Future[None]]] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    @property
    def pending_sleepers(self) -> int:
        """Number of tasks currently sleeping on this clock."""
        return sum(1 for _, _, fut in self._sleepers if not fut.done())

    async def sleep(self, seconds: float) -> None:
        if seconds <= 0:
            await asyncio.sleep(0)
            return
        fut: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        heapq.heappush(self._sleepers, (self._now + seconds, next(self._seq), fut))
        await fut

    async def advance(self, seconds: float) -> None:
        """Move time forward, waking sleepers in deadline order.

        Woken tasks get a chance to run (and to start new sleeps) before
        time moves past the next deadline.
        """
        target = self._now + seconds
        await settle()
        while self._sleepers and self._sleepers[0][0] <= target:
            deadline, _, fut = heapq.heappop(self._sleepers)
            self._now = max(self._now, deadline)
            if not fut.done():
                fut.set_result(None)
                await settle()
        self._now = target
        await settle()


async def settle(rounds: int = _SETTLE_ROUNDS) -> None:
    """Yield to the event loop several times so woken tasks can run."""
    for _ in range(rounds):
        await asyncio.sleep(0)
