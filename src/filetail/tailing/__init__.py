"""Tailing engine stages: sampling, the tail cursor and the output pipeline."""

from filetail.tailing.cursor import CursorState, TailCursor, TailState, transition
from filetail.tailing.pipeline import (
    BackpressureBuffer,
    BackpressureStrategy,
    apply_backpressure,
    decode_lines,
)
from filetail.tailing.sampler import EventSampler
from filetail.tailing.triggers import as_async, interval

__all__ = [
    "BackpressureBuffer",
    "BackpressureStrategy",
    "CursorState",
    "EventSampler",
    "TailCursor",
    "TailState",
    "apply_backpressure",
    "as_async",
    "decode_lines",
    "interval",
    "transition",
]
