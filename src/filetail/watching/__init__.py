"""File watching module for filetail.

Wraps watchdog observers in a handle with poll/take/close semantics and
exposes the notifications relevant to one path as an async stream.
"""

from filetail.watching.events import (
    ALL_KINDS,
    ChangeKind,
    ChangeNotification,
    is_burst_class,
)
from filetail.watching.handle import WatchHandle
from filetail.watching.source import ChangeEventSource, is_related_to

__all__ = [
    "ALL_KINDS",
    "ChangeEventSource",
    "ChangeKind",
    "ChangeNotification",
    "WatchHandle",
    "is_burst_class",
    "is_related_to",
]
