"""Data models for the bed board history log.

Defines the immutable LogEntry record, the BoardState triple pushed to
observers, and the time helpers used to stamp and render entries.
"""

from __future__ import annotations

import json
import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime, tzinfo
from types import MappingProxyType
from typing import Any

BedId = str
BedStatus = str
StateSnapshot = Mapping[BedId, BedStatus]

# Returns "now" as epoch milliseconds
Clock = Callable[[], int]


def system_clock() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


def freeze_snapshot(snapshot: StateSnapshot) -> Mapping[BedId, BedStatus]:
    """Copy a snapshot into a read-only mapping."""
    return MappingProxyType(dict(snapshot))


def diff_snapshots(before: StateSnapshot, after: StateSnapshot) -> dict[BedId, BedStatus]:
    """Beds whose status in ``after`` differs from ``before``."""
    return {bed: status for bed, status in after.items() if before.get(bed) != status}


class TimeFormatter:
    """Render epoch milliseconds in a fixed timezone and format."""

    def __init__(self, tz: tzinfo = UTC, fmt: str = "%Y-%m-%d %H:%M:%S") -> None:
        self.tz = tz
        self.fmt = fmt

    def __call__(self, timestamp_ms: int) -> str:
        moment = datetime.fromtimestamp(timestamp_ms / 1000, tz=self.tz)
        return moment.strftime(self.fmt)


@dataclass(frozen=True)
class LogEntry:
    """One point-in-time state of the board.

    Entries are never mutated after creation; both mappings are stored as
    read-only copies of whatever the caller passed in.

    Attributes:
        timestamp: Epoch milliseconds, unique within a log
        snapshot: Status of every bed at this instant
        display_time: ``timestamp`` rendered for humans
        changes: Beds that changed relative to the previous entry
    """

    timestamp: int
    snapshot: Mapping[BedId, BedStatus]
    display_time: str
    changes: Mapping[BedId, BedStatus] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "snapshot", freeze_snapshot(self.snapshot))
        object.__setattr__(self, "changes", freeze_snapshot(self.changes))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "timestamp": self.timestamp,
            "snapshot": dict(self.snapshot),
            "display_time": self.display_time,
            "changes": dict(self.changes),
        }

    @classmethod
    def from_row(cls, row: tuple[Any, ...], render: Callable[[int], str]) -> LogEntry:
        """Create LogEntry from DuckDB row.

        Expected row format: (timestamp, snapshot, changes)
        """
        snapshot = row[1]
        if isinstance(snapshot, str):
            snapshot = json.loads(snapshot)
        changes = row[2] if len(row) > 2 else None
        if isinstance(changes, str):
            changes = json.loads(changes)

        return cls(
            timestamp=int(row[0]),
            snapshot=snapshot or {},
            display_time=render(int(row[0])),
            changes=changes or {},
        )


@dataclass(frozen=True)
class BoardState:
    """The (current state, history, display time) triple sent to observers.

    ``current_state`` is always the snapshot of the last history entry, or
    the initial board when the history is empty.
    """

    current_state: dict[BedId, BedStatus]
    history: tuple[LogEntry, ...]
    display_time: str

    @classmethod
    def from_entries(
        cls,
        entries: Sequence[LogEntry],
        initial: StateSnapshot,
        render: Callable[[int], str],
        now: int,
    ) -> BoardState:
        """Project a history read into a broadcastable triple."""
        if entries:
            newest = entries[-1]
            return cls(
                current_state=dict(newest.snapshot),
                history=tuple(entries),
                display_time=newest.display_time,
            )
        return cls(current_state=dict(initial), history=(), display_time=render(now))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "current_state": dict(self.current_state),
            "history": [entry.to_dict() for entry in self.history],
            "display_time": self.display_time,
        }


__all__ = [
    "BedId",
    "BedStatus",
    "StateSnapshot",
    "Clock",
    "system_clock",
    "freeze_snapshot",
    "diff_snapshots",
    "TimeFormatter",
    "LogEntry",
    "BoardState",
]
