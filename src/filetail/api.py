"""Entry points: watch a path, tail its bytes, or tail its lines.

Each call returns a lazy async iterator. Nothing is registered or opened
until iteration starts, and every call builds an independent session.

Pipeline for the tails:

    watch source -> sampler -> backpressure -> cursor [-> line decoder]

When ``events`` is supplied it replaces the watch source and the sampler:

    events -> backpressure -> cursor [-> line decoder]
"""

from __future__ import annotations

from collections.abc import AsyncIterable, AsyncIterator, Iterable
from pathlib import Path

from filetail.clock import Clock
from filetail.config.schema import LinesConfig, TailConfig, WatchConfig
from filetail.tailing.cursor import TailCursor
from filetail.tailing.pipeline import apply_backpressure, decode_lines
from filetail.tailing.sampler import EventSampler
from filetail.tailing.triggers import as_async
from filetail.watching.events import ChangeNotification
from filetail.watching.source import ChangeEventSource

Triggers = Iterable[object] | AsyncIterable[object]


def _source(path: Path, config: WatchConfig, clock: Clock | None) -> ChangeEventSource:
    return ChangeEventSource(
        path,
        kinds=config.kinds,
        modifiers=config.modifiers,
        blocking=config.blocking,
        poll_interval=config.poll_interval,
        use_polling_observer=config.use_polling_observer,
        max_pending=config.max_pending,
        clock=clock,
    )


def watch(
    path: str | Path,
    config: WatchConfig | None = None,
    *,
    clock: Clock | None = None,
) -> AsyncIterator[ChangeNotification]:
    """Stream the change notifications relevant to ``path``.

    No sampling or reading is applied; use this to drive custom logic.
    """
    config = config or WatchConfig()
    return _source(Path(path), config, clock).events()


def _triggers(
    path: Path,
    config: TailConfig,
    events: Triggers | None,
    clock: Clock | None,
) -> AsyncIterator[object]:
    if events is not None:
        stream: AsyncIterator[object] = as_async(events)
    else:
        sampler = EventSampler(config.effective_sample_window, clock=clock)
        stream = sampler.sample(_source(path, config, clock).events())
    return apply_backpressure(stream, config.backpressure)


def tail_bytes(
    path: str | Path,
    config: TailConfig | None = None,
    *,
    events: Triggers | None = None,
    clock: Clock | None = None,
) -> AsyncIterator[bytes]:
    """Stream chunks of bytes appended to ``path``.

    Args:
        path: File to tail
        config: Tail options (defaults apply when omitted)
        events: Trigger stream to use instead of file notifications. Each
            value triggers a catch-up read; ChangeNotification values keep
            their Create/Delete meaning.
        clock: Clock for polling and sampling (default: real time)

    Raises (during iteration):
        FileDeletedError: The file's Delete notification was seen.
        WatchUnavailableError: The watch could not be registered.
        ReadFailureError: Reading the file failed.
    """
    config = config or TailConfig()
    target = Path(path)
    cursor = TailCursor(
        target,
        start_position=config.start_position,
        chunk_size=config.chunk_size,
    )
    return cursor.run(_triggers(target, config, events, clock))


def tail_lines(
    path: str | Path,
    config: LinesConfig | None = None,
    *,
    events: Triggers | None = None,
    clock: Clock | None = None,
) -> AsyncIterator[str]:
    """Stream lines appended to ``path``, decoded with ``config.encoding``.

    Same pipeline as ``tail_bytes`` with a decoding stage on the end.
    Lines are yielded without the trailing newline.
    """
    config = config or LinesConfig()
    chunks = tail_bytes(path, config, events=events, clock=clock)
    return decode_lines(chunks, config.encoding, config.errors)
