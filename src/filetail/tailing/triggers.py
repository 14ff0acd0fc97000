"""Helpers for driving a tail from sources other than file notifications."""

from __future__ import annotations

from collections.abc import AsyncIterable, AsyncIterator, Iterable
from typing import TypeVar

from filetail.clock import Clock, SystemClock

T = TypeVar("T")


async def interval(period: float, clock: Clock | None = None) -> AsyncIterator[int]:
    """Emit 0, 1, 2, ... every ``period`` seconds, starting after one period."""
    if period <= 0:
        raise ValueError("period must be positive")
    clock = clock or SystemClock()
    count = 0
    while True:
        await clock.sleep(period)
        yield count
        count += 1


async def as_async(values: Iterable[T] | AsyncIterable[T]) -> AsyncIterator[T]:
    """Adapt a plain iterable (or pass through an async one) as an async iterator."""
    if isinstance(values, AsyncIterable):
        try:
            async for value in values:
                yield value
        finally:
            aclose = getattr(values, "aclose", None)
            if aclose is not None:
                await aclose()
        return
    for value in values:
        yield value
