"""filetail: follow a growing file as byte chunks or text lines.

Driven by native file-change notifications (via watchdog) or by any
trigger stream the caller supplies.
"""

__version__ = "0.1.0"

from filetail.api import tail_bytes, tail_lines, watch
from filetail.clock import Clock, ManualClock, SystemClock
from filetail.config import LinesConfig, Settings, TailConfig, WatchConfig, load_settings
from filetail.errors import (
    ConfigError,
    FileDeletedError,
    ReadFailureError,
    TailError,
    WatchClosedError,
    WatchUnavailableError,
)
from filetail.tailing import BackpressureStrategy, interval
from filetail.watching import ChangeKind, ChangeNotification

__all__ = [
    # Entry points
    "tail_bytes",
    "tail_lines",
    "watch",
    # Config
    "LinesConfig",
    "Settings",
    "TailConfig",
    "WatchConfig",
    "load_settings",
    "BackpressureStrategy",
    # Notifications and triggers
    "ChangeKind",
    "ChangeNotification",
    "interval",
    # Clocks
    "Clock",
    "ManualClock",
    "SystemClock",
    # Errors
    "ConfigError",
    "FileDeletedError",
    "ReadFailureError",
    "TailError",
    "WatchClosedError",
    "WatchUnavailableError",
]
