"""Tail cursor: turns triggers into reads of newly appended bytes.

The cursor tracks a byte offset into the target file. For every trigger it
checks whether the file has grown past that offset and, if so, reads the
new bytes in bounded chunks. Create notifications reset the offset to the
start of the (new) file; a Delete notification ends the session with
FileDeletedError.

The cursor relies on the native watch never folding a Create or Delete
into an Overflow notification. If that happened the cursor could keep
reading a replaced file at a stale offset.
"""

from __future__ import annotations

import contextlib
import os
from collections.abc import AsyncIterable, AsyncIterator, Iterator
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import BinaryIO

from filetail.errors import FileDeletedError, ReadFailureError
from filetail.logging import TRACE, get_logger
from filetail.watching.events import ChangeKind, ChangeNotification

log = get_logger("tailing.cursor")

DEFAULT_CHUNK_SIZE = 8192


class CursorState(str, Enum):
    """Lifecycle of a TailCursor."""

    AWAITING_TRIGGER = "awaiting_trigger"
    READING = "reading"
    FAILED = "failed"
    CLOSED = "closed"


@dataclass(frozen=True)
class TailState:
    """Byte offset of the next unread byte in the target file."""

    position: int = 0

    def advanced(self, count: int) -> TailState:
        return replace(self, position=self.position + count)


def transition(state: TailState, trigger: object, path: Path) -> TailState:
    """Apply a trigger's structural meaning to the tail state.

    Create resets the offset to 0. Delete raises FileDeletedError. Any
    other trigger leaves the state unchanged and just asks for a length
    check.
    """
    if isinstance(trigger, ChangeNotification):
        if trigger.kind is ChangeKind.CREATE:
            return replace(state, position=0)
        if trigger.kind is ChangeKind.DELETE:
            raise FileDeletedError(path)
    return state


def file_length(path: Path) -> int:
    """Current length of ``path``; a missing file has length 0."""
    try:
        return os.stat(path).st_size
    except FileNotFoundError:
        return 0


class TailCursor:
    """Reads new content of one file in response to triggers.

    The cursor processes one trigger at a time. Its TailState is replaced,
    never mutated, and only by the cursor's own read loop.

    Example:
        cursor = TailCursor(Path("app.log"), chunk_size=4096)
        async for chunk in cursor.run(triggers):
            sys.stdout.buffer.write(chunk)
    """

    def __init__(
        self,
        path: str | Path,
        *,
        start_position: int = 0,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        """Initialize the cursor.

        Args:
            path: File to tail
            start_position: Initial byte offset
            chunk_size: Maximum bytes per emitted chunk
        """
        if start_position < 0:
            raise ValueError("start_position must be non-negative")
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self._path = Path(path)
        self._chunk_size = chunk_size
        self._tail = TailState(position=start_position)
        self._state = CursorState.AWAITING_TRIGGER

    @property
    def path(self) -> Path:
        return self._path

    @property
    def position(self) -> int:
        """Offset of the next byte to read."""
        return self._tail.position

    @property
    def state(self) -> CursorState:
        return self._state

    async def run(self, triggers: AsyncIterable[object]) -> AsyncIterator[bytes]:
        """Emit new file content for each trigger until the triggers end.

        Raises:
            FileDeletedError: When a Delete notification arrives.
            ReadFailureError: When reading the file fails.
        """
        if self._state is not CursorState.AWAITING_TRIGGER:
            raise RuntimeError(f"cursor is {self._state.value}")

        log.info("Tailing %s from offset %d", self._path, self._tail.position)
        try:
            async for trigger in triggers:
                try:
                    self._tail = transition(self._tail, trigger, self._path)
                except FileDeletedError:
                    self._state = CursorState.FAILED
                    log.info("Stopped tailing %s: file deleted", self._path)
                    raise

                with contextlib.closing(self._read_new()) as chunks:
                    for chunk in chunks:
                        yield chunk
        except ReadFailureError:
            self._state = CursorState.FAILED
            raise
        finally:
            if self._state is not CursorState.FAILED:
                self._state = CursorState.CLOSED
            aclose = getattr(triggers, "aclose", None)
            if aclose is not None:
                await aclose()
            log.debug("Tail of %s ended at offset %d", self._path, self._tail.position)

    def _read_new(self) -> Iterator[bytes]:
        """Read everything between the offset and the length seen now.

        A generator so the consumer can stop between chunks; the file is
        closed as soon as the generator finishes or is closed.
        """
        try:
            length = file_length(self._path)
        except OSError as e:
            raise ReadFailureError(self._path, self._tail.position) from e
        if length <= self._tail.position:
            return

        self._state = CursorState.READING
        try:
            with self._open() as f:
                while self._tail.position < length:
                    want = min(self._chunk_size, length - self._tail.position)
                    try:
                        chunk = f.read(want)
                    except OSError as e:
                        raise ReadFailureError(self._path, self._tail.position) from e
                    if not chunk:
                        # Truncated since the length check
                        break
                    self._tail = self._tail.advanced(len(chunk))
                    log.log(TRACE, "Read %d bytes from %s", len(chunk), self._path)
                    yield chunk
        finally:
            if self._state is CursorState.READING:
                self._state = CursorState.AWAITING_TRIGGER

    @contextlib.contextmanager
    def _open(self) -> Iterator[BinaryIO]:
        try:
            f = open(self._path, "rb")
        except OSError as e:
            raise ReadFailureError(self._path, self._tail.position) from e
        try:
            try:
                f.seek(self._tail.position)
            except OSError as e:
                raise ReadFailureError(self._path, self._tail.position) from e
            yield f
        finally:
            f.close()
