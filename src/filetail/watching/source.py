"""Change event source: native watch notifications as an async stream.

Each call to ``ChangeEventSource.events()`` registers a fresh watch, so a
source can be subscribed to any number of times. The watch is released
when the stream ends for any reason (exhaustion, error, aclose() or task
cancellation).
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable, Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any

from filetail.clock import Clock, SystemClock
from filetail.errors import WatchClosedError
from filetail.logging import get_logger
from filetail.watching.events import ALL_KINDS, ChangeKind, ChangeNotification
from filetail.watching.handle import DEFAULT_MAX_PENDING, WatchHandle, absolute_path

log = get_logger("watching.source")

HandleFactory = Callable[[Path], WatchHandle]


def is_related_to(target: Path, root: Path, notification: ChangeNotification) -> bool:
    """Whether a notification from ``root`` concerns ``target``.

    Overflow carries no context and always counts as related.
    """
    if notification.kind is ChangeKind.OVERFLOW:
        return True
    if notification.context is None:
        return False
    return absolute_path(root / notification.context) == target


class ChangeEventSource:
    """Produces the change notifications relevant to one path.

    Two delivery modes are supported:

    - non-blocking (default): every ``poll_interval`` seconds the pending
      batch is drained without blocking and its entries are emitted.
    - blocking: a dedicated worker thread waits on the watch and hands each
      batch back to the event loop, so a quiet file never holds up other
      sessions on the same loop.

    Example:
        source = ChangeEventSource(Path("app.log"), poll_interval=0.5)
        async for notification in source.events():
            print(notification.kind)
    """

    def __init__(
        self,
        path: str | Path,
        *,
        kinds: Iterable[ChangeKind] = ALL_KINDS,
        modifiers: Mapping[str, Any] | None = None,
        blocking: bool = False,
        poll_interval: float = 1.0,
        use_polling_observer: bool = False,
        max_pending: int = DEFAULT_MAX_PENDING,
        clock: Clock | None = None,
        handle_factory: HandleFactory | None = None,
    ) -> None:
        """Initialize the source.

        Args:
            path: File (or directory) to watch
            kinds: Notification kinds to register for
            modifiers: Opaque extra arguments for the observer registration
            blocking: Use the blocking delivery mode
            poll_interval: Seconds between polls in non-blocking mode
            use_polling_observer: Use watchdog's stat-polling observer
            max_pending: Pending batch bound before overflow
            clock: Clock driving the poll interval (default: real time)
            handle_factory: Override how the watch handle is opened
        """
        self._path = absolute_path(path)
        self._kinds = frozenset(kinds)
        self._modifiers = dict(modifiers or {})
        self._blocking = blocking
        self._poll_interval = poll_interval
        self._use_polling_observer = use_polling_observer
        self._max_pending = max_pending
        self._clock = clock or SystemClock()
        self._handle_factory = handle_factory or self._open_handle

    @property
    def path(self) -> Path:
        """The watched path."""
        return self._path

    @property
    def blocking(self) -> bool:
        """Whether the blocking delivery mode is used."""
        return self._blocking

    def _open_handle(self, path: Path) -> WatchHandle:
        # The polling observer snapshots the directory at this interval
        timeout = self._poll_interval if self._use_polling_observer else 1.0
        return WatchHandle.open(
            path,
            kinds=self._kinds,
            modifiers=self._modifiers,
            use_polling_observer=self._use_polling_observer,
            observer_timeout=timeout,
            max_pending=self._max_pending,
        )

    async def events(self) -> AsyncIterator[ChangeNotification]:
        """Stream notifications for the path until the consumer stops.

        Raises:
            WatchUnavailableError: If the watch cannot be registered.
        """
        handle = self._handle_factory(self._path)
        unfiltered = self._path.is_dir()
        executor: ThreadPoolExecutor | None = None
        if self._blocking:
            executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="filetail-watch")

        log.info(
            "Watching %s (%s)",
            self._path,
            "blocking" if self._blocking else f"poll every {self._poll_interval:.2f}s",
        )
        try:
            while True:
                if executor is not None:
                    batch = await self._wait_batch(handle, executor)
                else:
                    batch = await self._poll_batch(handle)
                if batch is None:
                    return

                for notification in batch:
                    if unfiltered or is_related_to(self._path, handle.root, notification):
                        yield notification
        finally:
            handle.close()
            if executor is not None:
                # close() has woken the worker, so this returns promptly
                executor.shutdown(wait=True)
            log.info("Stopped watching %s", self._path)

    async def _poll_batch(self, handle: WatchHandle) -> list[ChangeNotification] | None:
        await self._clock.sleep(self._poll_interval)
        try:
            return handle.poll() or []
        except WatchClosedError:
            return None

    async def _wait_batch(
        self, handle: WatchHandle, executor: ThreadPoolExecutor
    ) -> list[ChangeNotification] | None:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(executor, handle.take)
        except WatchClosedError:
            return None
