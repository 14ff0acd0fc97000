"""Shared test utilities for filetail tests."""

from __future__ import annotations

import asyncio
import threading
from collections.abc import AsyncIterator, Iterable
from pathlib import Path
from typing import Any

from filetail.clock import settle
from filetail.errors import WatchClosedError
from filetail.watching.events import ChangeKind, ChangeNotification

_END = object()


def note(kind: str, context: str | None = None) -> ChangeNotification:
    """Shorthand for a ChangeNotification."""
    return ChangeNotification(ChangeKind(kind), Path(context) if context else None)


class ControlledStream:
    """An async stream fed by the test, which records when it is closed.

    Example:
        stream = ControlledStream()
        stream.put("tick")
        stream.end()
    """

    def __init__(self, items: Iterable[Any] = ()) -> None:
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self.closed = False
        self.started = False
        for item in items:
            self._queue.put_nowait(item)

    def put(self, item: Any) -> None:
        self._queue.put_nowait(item)

    def end(self) -> None:
        self._queue.put_nowait(_END)

    def fail(self, error: BaseException) -> None:
        self._queue.put_nowait(error)

    async def stream(self) -> AsyncIterator[Any]:
        self.started = True
        try:
            while True:
                item = await self._queue.get()
                if item is _END:
                    return
                if isinstance(item, BaseException):
                    raise item
                yield item
        finally:
            self.closed = True


class Collector:
    """Consumes an async iterator in a background task."""

    def __init__(self, iterator: AsyncIterator[Any]) -> None:
        self.items: list[Any] = []
        self.error: BaseException | None = None
        self._iterator = iterator
        self.task = asyncio.create_task(self._run())

    async def _run(self) -> None:
        try:
            async for item in self._iterator:
                self.items.append(item)
        except Exception as e:
            self.error = e

    @property
    def done(self) -> bool:
        return self.task.done()

    async def stop(self) -> None:
        self.task.cancel()
        try:
            await self.task
        except asyncio.CancelledError:
            pass
        await self._iterator.aclose()


async def wait_until(predicate, timeout: float = 5.0, interval: float = 0.02) -> None:
    """Poll ``predicate`` in real time until it holds or ``timeout`` passes."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(interval)


class FakeHandle:
    """Stands in for WatchHandle with batches queued by the test."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self._batches: list[list[ChangeNotification]] = []
        self._cond = threading.Condition()
        self.closed = False
        self.polls = 0

    def push(self, *notifications: ChangeNotification) -> None:
        with self._cond:
            self._batches.append(list(notifications))
            self._cond.notify_all()

    def poll(self) -> list[ChangeNotification] | None:
        with self._cond:
            if self.closed:
                raise WatchClosedError()
            self.polls += 1
            return self._batches.pop(0) if self._batches else None

    def take(self, timeout: float | None = None) -> list[ChangeNotification]:
        with self._cond:
            self._cond.wait_for(lambda: self.closed or bool(self._batches), timeout)
            if self.closed:
                raise WatchClosedError()
            return self._batches.pop(0)

    def close(self) -> None:
        with self._cond:
            self.closed = True
            self._cond.notify_all()


__all__ = [
    "Collector",
    "ControlledStream",
    "FakeHandle",
    "note",
    "settle",
    "wait_until",
]
