"""Exceptions raised by tailing sessions.

Every error surfaces to the consumer of the affected stream. Nothing in
filetail retries; resuming is up to the caller, usually by starting a new
session at the last known position.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


class TailError(Exception):
    """Base class for filetail errors."""


@dataclass(eq=False)
class FileDeletedError(TailError):
    """The tailed file was deleted. Fatal to the session."""

    path: Path

    def __str__(self) -> str:
        return f"File has been deleted: {self.path}"


@dataclass(eq=False)
class WatchUnavailableError(TailError):
    """The native watch could not be created or registered."""

    path: Path
    reason: str

    def __str__(self) -> str:
        return f"Cannot watch {self.path}: {self.reason}"


class WatchClosedError(TailError):
    """The watch handle was closed while a poll or wait was in flight.

    Consumed inside the event source and treated as end of stream.
    """

    pass


@dataclass(eq=False)
class ReadFailureError(TailError):
    """An I/O error while reading new content from the tailed file."""

    path: Path
    position: int

    def __str__(self) -> str:
        cause = f": {self.__cause__}" if self.__cause__ else ""
        return f"Failed reading {self.path} at offset {self.position}{cause}"


class ConfigError(ValueError):
    """Raised when a configuration value is missing or invalid."""

    pass
