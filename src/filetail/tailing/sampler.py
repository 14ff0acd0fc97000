"""Burst sampling of notification streams.

Modify and Overflow notifications can arrive hundreds of times a second
for a busy file. EventSampler forwards at most one of them per sample
window while letting every other value through immediately.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import AsyncIterable, AsyncIterator, Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from filetail.clock import Clock, SystemClock
from filetail.logging import get_logger
from filetail.watching.events import is_burst_class

log = get_logger("tailing.sampler")

T = TypeVar("T")


@dataclass
class _Failed:
    error: BaseException


class _End:
    pass


_END = _End()


class _Latest(Generic[T]):
    """Slot holding the most recent burst-class value of the window."""

    def __init__(self) -> None:
        self.value: T | None = None
        self.present = False
        self.skipped = 0

    def set(self, value: T) -> None:
        if self.present:
            self.skipped += 1
        self.value = value
        self.present = True

    def pop(self) -> T:
        value = self.value
        self.value = None
        self.present = False
        return value  # type: ignore[return-value]


class EventSampler:
    """Splits a stream into immediate and burst classes and samples the latter.

    Burst-class values are reduced to the latest one seen in each window,
    emitted when the window closes. Immediate-class values are forwarded as
    soon as they arrive. The output interleaves both in arrival order of
    each class.
    """

    def __init__(
        self,
        window: float,
        clock: Clock | None = None,
        is_burst: Callable[[Any], bool] = is_burst_class,
    ) -> None:
        """Initialize the sampler.

        Args:
            window: Sample window in seconds (must be positive)
            clock: Clock driving the windows (default: real time)
            is_burst: Classification predicate
        """
        if window <= 0:
            raise ValueError("sample window must be positive")
        self._window = window
        self._clock = clock or SystemClock()
        self._is_burst = is_burst

    @property
    def window(self) -> float:
        return self._window

    async def sample(self, stream: AsyncIterable[T]) -> AsyncIterator[T]:
        """Sampled view of ``stream``.

        A burst-class value still waiting for its window when the upstream
        ends is emitted before the end. Upstream errors are re-raised after
        everything received before them has been emitted.
        """
        out: asyncio.Queue[Any] = asyncio.Queue()
        latest: _Latest[T] = _Latest()

        async def pump() -> None:
            try:
                async for value in stream:
                    if self._is_burst(value):
                        latest.set(value)
                    else:
                        out.put_nowait(value)
            except Exception as e:
                out.put_nowait(_Failed(e))
            else:
                if latest.present:
                    out.put_nowait(latest.pop())
                out.put_nowait(_END)

        async def tick() -> None:
            while True:
                await self._clock.sleep(self._window)
                if latest.present:
                    if latest.skipped:
                        log.debug("Sampled away %d burst notifications", latest.skipped)
                        latest.skipped = 0
                    out.put_nowait(latest.pop())

        pump_task = asyncio.create_task(pump())
        tick_task = asyncio.create_task(tick())
        try:
            while True:
                item = await out.get()
                if item is _END:
                    return
                if isinstance(item, _Failed):
                    raise item.error
                yield item
        finally:
            for task in (tick_task, pump_task):
                task.cancel()
            for task in (tick_task, pump_task):
                with contextlib.suppress(asyncio.CancelledError):
                    await task
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()
