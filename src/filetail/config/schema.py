"""Configuration schema dataclasses for filetail.

One config record per entry point (``watch``, ``tail_bytes``,
``tail_lines``), validated once on construction, plus the settings file
layout used by the CLI.
"""

from __future__ import annotations

import codecs
from dataclasses import dataclass, field
from typing import Any

from filetail.errors import ConfigError
from filetail.tailing.pipeline import BackpressureStrategy
from filetail.watching.events import ALL_KINDS, ChangeKind

DEFAULT_POLL_INTERVAL = 1.0
DEFAULT_CHUNK_SIZE = 8192
DEFAULT_BLOCKING_SAMPLE_WINDOW = 1.0
DEFAULT_MAX_PENDING = 4096


@dataclass
class WatchConfig:
    """Options for the raw notification stream.

    Example config.yaml:
        tail:
          poll_interval: 0.5
          blocking: false
          kinds: [create, modify, delete]
          use_polling_observer: true
    """

    poll_interval: float = DEFAULT_POLL_INTERVAL  # Seconds between non-blocking polls
    blocking: bool = False  # Wait on a dedicated thread instead of polling
    kinds: frozenset[ChangeKind] = ALL_KINDS
    modifiers: dict[str, Any] = field(default_factory=dict)  # Passed to observer.schedule()
    use_polling_observer: bool = False  # stat-polling instead of inotify/FSEvents/...
    max_pending: int = DEFAULT_MAX_PENDING  # Pending batch size before overflow

    def __post_init__(self) -> None:
        if not self.poll_interval or self.poll_interval <= 0:
            raise ConfigError("poll_interval must be positive")
        if self.max_pending <= 0:
            raise ConfigError("max_pending must be positive")
        try:
            self.kinds = frozenset(ChangeKind(k) for k in self.kinds)
        except ValueError as e:
            raise ConfigError(f"unknown notification kind: {e}") from e
        if not self.kinds:
            raise ConfigError("kinds must not be empty")
        if self.modifiers is None:
            self.modifiers = {}


@dataclass
class TailConfig(WatchConfig):
    """Options for the byte-chunk tail."""

    start_position: int = 0  # Initial byte offset
    chunk_size: int = DEFAULT_CHUNK_SIZE  # Max bytes per emitted chunk
    sample_window: float | None = None  # Default: derived from poll_interval
    backpressure: BackpressureStrategy = BackpressureStrategy.BUFFER

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.start_position < 0:
            raise ConfigError("start_position must be non-negative")
        if self.chunk_size <= 0:
            raise ConfigError("chunk_size must be positive")
        if self.sample_window is not None and self.sample_window <= 0:
            raise ConfigError("sample_window must be positive")
        try:
            self.backpressure = BackpressureStrategy(self.backpressure)
        except ValueError as e:
            allowed = ", ".join(s.value for s in BackpressureStrategy)
            raise ConfigError(f"backpressure must be one of: {allowed}") from e

    @property
    def effective_sample_window(self) -> float:
        """Burst sampling window in seconds.

        Without an explicit value the window is twice the poll interval,
        so every window spans at least one poll. The blocking mode has no
        poll and uses a fixed one-second window.
        """
        if self.sample_window is not None:
            return self.sample_window
        if self.blocking:
            return DEFAULT_BLOCKING_SAMPLE_WINDOW
        return 2 * self.poll_interval


@dataclass
class LinesConfig(TailConfig):
    """Options for the text-line tail."""

    encoding: str = "utf-8"
    errors: str = "replace"  # Decode error handler

    def __post_init__(self) -> None:
        super().__post_init__()
        try:
            codecs.lookup(self.encoding)
        except LookupError as e:
            raise ConfigError(f"unknown encoding: {self.encoding}") from e
        try:
            codecs.lookup_error(self.errors)
        except LookupError as e:
            raise ConfigError(f"unknown decode error handler: {self.errors}") from e


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str | None = None  # DEBUG, INFO, WARNING, ERROR
    verbose: int | None = None  # 0 (errors) .. 4 (trace); wins over level
    file: str | None = None  # Log file path


@dataclass
class Settings:
    """Root of the settings file.

    ``tail`` holds defaults for every entry point; ``lines`` adds the
    decoding options. Unknown top-level keys are kept in ``extra``.
    """

    tail: TailConfig = field(default_factory=TailConfig)
    lines: LinesConfig = field(default_factory=LinesConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    extra: dict[str, Any] = field(default_factory=dict)
