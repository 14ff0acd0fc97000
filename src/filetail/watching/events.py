"""Change notification model shared by the watch and tailing stages."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class ChangeKind(str, Enum):
    """Category of a file-change signal."""

    CREATE = "create"
    MODIFY = "modify"
    DELETE = "delete"
    OVERFLOW = "overflow"  # detail lost due to volume


ALL_KINDS: frozenset[ChangeKind] = frozenset(ChangeKind)


@dataclass(frozen=True)
class ChangeNotification:
    """A single change signal from the native watch.

    ``context`` is the path of the affected entry relative to the watch
    root. Overflow notifications carry no context.
    """

    kind: ChangeKind
    context: Path | None = None

    def __str__(self) -> str:
        if self.context is None:
            return self.kind.value
        return f"{self.kind.value} {self.context}"


def is_burst_class(value: object) -> bool:
    """Whether a value belongs to the noisy, sampled class.

    Modify and Overflow notifications arrive in bursts under heavy writes.
    Everything else (Create, Delete, caller-supplied triggers) is
    structural and must never be delayed.
    """
    return isinstance(value, ChangeNotification) and value.kind in (
        ChangeKind.MODIFY,
        ChangeKind.OVERFLOW,
    )


def parse_kinds(names: list[str] | tuple[str, ...]) -> frozenset[ChangeKind]:
    """Convert kind names (``"create"``, ``"MODIFY"``...) into ChangeKinds."""
    kinds: set[ChangeKind] = set()
    for name in names:
        kinds.add(ChangeKind(name.strip().lower()))
    return frozenset(kinds)
