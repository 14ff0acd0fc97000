"""Native watch handle built on watchdog observers.

A WatchHandle owns one watchdog observer scheduled on a single directory
(the watch root) and collects the notifications it produces into a pending
batch. Consumers drain the batch either without blocking (``poll``) or by
waiting for it to fill (``take``). Closing the handle stops the observer
and wakes any waiter, which then sees WatchClosedError.
"""

from __future__ import annotations

import os
import threading
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver
from watchdog.observers.polling import PollingObserver

from filetail.errors import WatchClosedError, WatchUnavailableError
from filetail.logging import get_logger
from filetail.watching.events import ALL_KINDS, ChangeKind, ChangeNotification

log = get_logger("watching.handle")

DEFAULT_MAX_PENDING = 4096

# Seconds to wait for the observer thread to exit on close
OBSERVER_JOIN_TIMEOUT = 5.0

_EVENT_KINDS = {
    "created": ChangeKind.CREATE,
    "modified": ChangeKind.MODIFY,
    "deleted": ChangeKind.DELETE,
}


def absolute_path(path: str | Path) -> Path:
    """Absolute form of a path without resolving symlinks."""
    return Path(os.path.abspath(os.fsdecode(path)))


def watch_root(target: Path) -> Path:
    """Directory to register for a target path.

    A directory is watched directly. Anything else, including a path that
    does not exist yet, is watched through its parent directory.
    """
    target = absolute_path(target)
    if target.is_dir():
        return target
    return target.parent


class _NotificationHandler(FileSystemEventHandler):
    """Translates watchdog events into ChangeNotifications for a handle."""

    def __init__(self, handle: WatchHandle) -> None:
        self._handle = handle

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.event_type == "moved":
            # A rename is seen as the old name vanishing and the new one appearing
            self._handle.deliver(ChangeKind.DELETE, event.src_path)
            self._handle.deliver(ChangeKind.CREATE, event.dest_path)
            return

        kind = _EVENT_KINDS.get(event.event_type)
        if kind is not None:
            self._handle.deliver(kind, event.src_path)


class WatchHandle:
    """A registered native watch on one directory.

    Example:
        handle = WatchHandle.open(Path("/var/log/app.log"))
        try:
            batch = handle.poll()
        finally:
            handle.close()
    """

    def __init__(
        self,
        root: Path,
        kinds: Iterable[ChangeKind] = ALL_KINDS,
        max_pending: int = DEFAULT_MAX_PENDING,
    ) -> None:
        """Create an unregistered handle.

        Use ``WatchHandle.open`` to get one attached to an observer.

        Args:
            root: Absolute directory being watched
            kinds: Notification kinds to keep (Overflow is always kept)
            max_pending: Pending batch size beyond which detail is dropped
        """
        self._root = root
        self._kinds = frozenset(kinds) | {ChangeKind.OVERFLOW}
        self._max_pending = max_pending
        self._pending: list[ChangeNotification] = []
        self._cond = threading.Condition()
        self._closed = False
        self._observer: BaseObserver | None = None

    @classmethod
    def open(
        cls,
        target: Path,
        *,
        kinds: Iterable[ChangeKind] = ALL_KINDS,
        modifiers: Mapping[str, Any] | None = None,
        use_polling_observer: bool = False,
        observer_timeout: float = 1.0,
        max_pending: int = DEFAULT_MAX_PENDING,
    ) -> WatchHandle:
        """Register a watch for ``target`` and start delivering notifications.

        Args:
            target: File or directory of interest
            kinds: Notification kinds to register for
            modifiers: Extra keyword arguments for the observer's schedule()
            use_polling_observer: Use watchdog's stat-polling observer
                instead of the platform's native one
            observer_timeout: Observer timeout (the snapshot interval for
                the polling observer)
            max_pending: Pending batch bound before overflow

        Raises:
            WatchUnavailableError: If the watch root is missing or the
                observer cannot register it.
        """
        root = watch_root(target)
        if not root.is_dir():
            raise WatchUnavailableError(root, "watch directory does not exist")

        handle = cls(root, kinds=kinds, max_pending=max_pending)
        if use_polling_observer:
            observer: BaseObserver = PollingObserver(timeout=observer_timeout)
        else:
            observer = Observer(timeout=observer_timeout)

        schedule_args: dict[str, Any] = {"recursive": False}
        schedule_args.update(modifiers or {})

        try:
            observer.schedule(_NotificationHandler(handle), str(root), **schedule_args)
            observer.start()
        except OSError as e:
            handle._observer = observer
            handle.close()
            raise WatchUnavailableError(root, str(e)) from e

        handle._observer = observer
        log.debug("Watching %s (observer=%s)", root, type(observer).__name__)
        return handle

    @property
    def root(self) -> Path:
        """The directory being watched."""
        return self._root

    @property
    def closed(self) -> bool:
        """Whether close() has been called."""
        return self._closed

    def deliver(self, kind: ChangeKind, src_path: str | bytes | Path | None) -> None:
        """Record a notification. Called from the observer thread.

        Events for the watch root itself, and kinds that were not
        registered, are discarded. When the pending batch grows past its
        bound, it is replaced by a single Overflow notification.
        """
        if kind not in self._kinds:
            return

        context: Path | None = None
        if src_path is not None and kind is not ChangeKind.OVERFLOW:
            path = absolute_path(src_path)
            if path == self._root:
                return
            try:
                context = path.relative_to(self._root)
            except ValueError:
                context = path

        with self._cond:
            if self._closed:
                return
            if len(self._pending) >= self._max_pending:
                log.debug("Pending batch overflowed for %s", self._root)
                self._pending = [ChangeNotification(ChangeKind.OVERFLOW)]
                return
            self._pending.append(ChangeNotification(kind, context))
            self._cond.notify_all()

    def poll(self) -> list[ChangeNotification] | None:
        """Drain the pending batch without blocking.

        Returns:
            The pending notifications, or None if there are none.

        Raises:
            WatchClosedError: If the handle has been closed.
        """
        with self._cond:
            if self._closed:
                raise WatchClosedError()
            if not self._pending:
                return None
            batch, self._pending = self._pending, []
            return batch

    def take(self, timeout: float | None = None) -> list[ChangeNotification]:
        """Wait until at least one notification is pending and drain them.

        Args:
            timeout: Maximum seconds to wait; None waits indefinitely.

        Returns:
            The pending notifications (empty only if ``timeout`` expired).

        Raises:
            WatchClosedError: If the handle is closed before or while waiting.
        """
        with self._cond:
            self._cond.wait_for(lambda: self._closed or bool(self._pending), timeout)
            if self._closed:
                raise WatchClosedError()
            batch, self._pending = self._pending, []
            return batch

    def close(self) -> None:
        """Stop the observer and wake any waiter. Safe to call repeatedly."""
        with self._cond:
            if self._closed:
                return
            self._closed = True
            self._pending = []
            self._cond.notify_all()

        observer = self._observer
        if observer is not None:
            observer.stop()
            if observer.is_alive():
                observer.join(OBSERVER_JOIN_TIMEOUT)
        log.debug("Closed watch on %s", self._root)
