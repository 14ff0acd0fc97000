"""Output pipeline stages: backpressure and line decoding.

``apply_backpressure`` sits between a producer that runs at its own pace
(a watch source, a sampler or a caller's timer) and the tail cursor, which
only asks for the next trigger once its previous output has been consumed.
``decode_lines`` turns the cursor's byte chunks into text lines.
"""

from __future__ import annotations

import asyncio
import codecs
import contextlib
from collections import deque
from collections.abc import AsyncIterable, AsyncIterator
from enum import Enum
from typing import Any, Generic, TypeVar

from filetail.logging import get_logger

log = get_logger("tailing.pipeline")

T = TypeVar("T")

LINE_TERMINATOR = "\n"


class BackpressureStrategy(str, Enum):
    """What happens to triggers that arrive while the consumer is busy.

    - BUFFER: queue them all and deliver in order
    - DROP: discard them; only triggers arriving while the consumer waits
      get through
    - LATEST: keep only the most recent one
    """

    BUFFER = "buffer"
    DROP = "drop"
    LATEST = "latest"


class _Closed:
    def __init__(self, error: BaseException | None = None) -> None:
        self.error = error


class BackpressureBuffer(Generic[T]):
    """Hand-off point between a free-running producer and a pulling consumer."""

    def __init__(self, strategy: BackpressureStrategy = BackpressureStrategy.BUFFER) -> None:
        self._strategy = BackpressureStrategy(strategy)
        self._items: deque[T] = deque()
        self._waiter: asyncio.Future[Any] | None = None
        self._closed: _Closed | None = None
        self.dropped = 0

    @property
    def strategy(self) -> BackpressureStrategy:
        return self._strategy

    def __len__(self) -> int:
        return len(self._items)

    def offer(self, item: T) -> None:
        """Accept an item from the producer according to the strategy."""
        if self._waiter is not None and not self._waiter.done():
            self._waiter.set_result(item)
            return

        if self._strategy is BackpressureStrategy.BUFFER:
            self._items.append(item)
        elif self._strategy is BackpressureStrategy.DROP:
            self.dropped += 1
        else:
            if self._items:
                self.dropped += len(self._items)
                self._items.clear()
            self._items.append(item)

    def close(self, error: BaseException | None = None) -> None:
        """Signal the end of the producer, optionally with an error.

        Items already accepted are still delivered before the end.
        """
        self._closed = _Closed(error)
        if self._waiter is not None and not self._waiter.done():
            self._waiter.set_result(self._closed)

    async def take(self) -> T:
        """Next item for the consumer.

        Raises:
            StopAsyncIteration: When the producer has ended.
            Exception: The producer's error, once accepted items are drained.
        """
        if self._items:
            return self._items.popleft()
        if self._closed is None:
            self._waiter = asyncio.get_running_loop().create_future()
            try:
                result = await self._waiter
            finally:
                self._waiter = None
            if not isinstance(result, _Closed):
                return result
        assert self._closed is not None
        if self._closed.error is not None:
            raise self._closed.error
        raise StopAsyncIteration


async def apply_backpressure(
    stream: AsyncIterable[T],
    strategy: BackpressureStrategy | str = BackpressureStrategy.BUFFER,
) -> AsyncIterator[T]:
    """Decouple ``stream`` from its consumer using ``strategy``.

    The upstream is consumed eagerly by a background task; what reaches
    the consumer depends on the strategy.
    """
    buffer: BackpressureBuffer[T] = BackpressureBuffer(BackpressureStrategy(strategy))

    async def pump() -> None:
        try:
            async for item in stream:
                buffer.offer(item)
        except Exception as e:
            buffer.close(e)
        else:
            buffer.close()

    task = asyncio.create_task(pump())
    try:
        while True:
            try:
                item = await buffer.take()
            except StopAsyncIteration:
                return
            yield item
    finally:
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        aclose = getattr(stream, "aclose", None)
        if aclose is not None:
            await aclose()
        if buffer.dropped:
            log.debug(
                "Backpressure (%s) discarded %d triggers",
                buffer.strategy.value,
                buffer.dropped,
            )


async def decode_lines(
    chunks: AsyncIterable[bytes],
    encoding: str = "utf-8",
    errors: str = "replace",
) -> AsyncIterator[str]:
    """Decode byte chunks and split the text into lines.

    Multi-byte sequences and lines may span chunk boundaries. Lines are
    emitted without their terminator. Text after the last terminator is
    held back until more arrives; it is emitted as a final line only when
    the chunk stream ends normally.
    """
    decoder = codecs.getincrementaldecoder(encoding)(errors=errors)
    pending = ""
    try:
        async for chunk in chunks:
            pending += decoder.decode(chunk)
            *lines, pending = pending.split(LINE_TERMINATOR)
            for line in lines:
                yield line
        pending += decoder.decode(b"", final=True)
        *lines, pending = pending.split(LINE_TERMINATOR)
        for line in lines:
            yield line
        if pending:
            yield pending
    finally:
        aclose = getattr(chunks, "aclose", None)
        if aclose is not None:
            await aclose()
