"""Append-only history log with retention.

The HistoryLog is the single source of truth for board state. It keeps
entries as an immutable tuple that is swapped on every write, so readers
never lock and never observe a half-applied change. When a HistoryStore
is attached, every write reaches the store before the in-memory tuple
changes; a failed store write leaves the log untouched.
"""

from __future__ import annotations

import logging
import threading
from bisect import bisect_left
from dataclasses import dataclass

from bedboard.errors import DuplicateTimestamp, NotFound, OutOfOrderTimestamp, PersistenceUnavailable
from bedboard.history.models import (
    BedId,
    BedStatus,
    BoardState,
    Clock,
    LogEntry,
    StateSnapshot,
    TimeFormatter,
    diff_snapshots,
    system_clock,
)
from bedboard.history.store import HistoryStore, TimestampPredicate

logger = logging.getLogger(__name__)


def _timestamp(entry: LogEntry) -> int:
    return entry.timestamp


@dataclass(frozen=True)
class RetentionPolicy:
    """Bounds on how many and how old entries may be kept.

    Attributes:
        max_entries: Keep at most this many entries (None = unbounded)
        max_age_ms: Drop entries older than now minus this window (None = forever)
    """

    max_entries: int | None = 100
    max_age_ms: int | None = None

    @property
    def enabled(self) -> bool:
        return self.max_entries is not None or self.max_age_ms is not None

    def first_kept(self, entries: tuple[LogEntry, ...], now: int) -> int:
        """Index of the oldest entry that survives pruning."""
        start = 0
        if self.max_age_ms is not None:
            start = bisect_left(entries, now - self.max_age_ms, key=_timestamp)
        if self.max_entries is not None:
            start = max(start, len(entries) - self.max_entries)
        return start


class HistoryLog:
    """Ordered, append-only sequence of board snapshots.

    Timestamps are strictly increasing. Entries leave the log only through
    pruning, ``remove_newest`` (undo) or ``truncate_after`` (revert).

    Attributes:
        initial_state: Board used as current state while the log is empty
        retention: Pruning bounds applied after every append
    """

    def __init__(
        self,
        initial_state: StateSnapshot,
        retention: RetentionPolicy | None = None,
        clock: Clock = system_clock,
        render: TimeFormatter | None = None,
        store: HistoryStore | None = None,
    ) -> None:
        """Initialize an empty history log.

        Args:
            initial_state: Board used as current state while the log is empty
            retention: Pruning bounds (default: keep the newest 100 entries)
            clock: Source of "now" in epoch milliseconds
            render: Formatter for entry display times
            store: Optional durable backing store
        """
        self.initial_state: dict[BedId, BedStatus] = dict(initial_state)
        self.retention = retention or RetentionPolicy()
        self.clock = clock
        self.render = render or TimeFormatter()
        self.store = store
        self._entries: tuple[LogEntry, ...] = ()
        self._write_lock = threading.Lock()

    # =========================================================================
    # Reads
    # =========================================================================

    def query_all(self) -> tuple[LogEntry, ...]:
        """All entries, oldest first."""
        return self._entries

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def newest(self) -> LogEntry | None:
        entries = self._entries
        return entries[-1] if entries else None

    def current_state(self) -> dict[BedId, BedStatus]:
        """Copy of the newest snapshot, or of the initial board if empty."""
        newest = self.newest
        if newest is None:
            return dict(self.initial_state)
        return dict(newest.snapshot)

    def find_by_timestamp(self, timestamp: int) -> LogEntry:
        """Exact-match lookup.

        Raises:
            NotFound: If no entry carries exactly this timestamp
        """
        entries = self._entries
        return entries[self._index_of(entries, timestamp)]

    def board_state(self) -> BoardState:
        """Consistent (current state, history, display time) triple."""
        return BoardState.from_entries(self._entries, self.initial_state, self.render, self.clock())

    @staticmethod
    def _index_of(entries: tuple[LogEntry, ...], timestamp: int) -> int:
        index = bisect_left(entries, timestamp, key=_timestamp)
        if index == len(entries) or entries[index].timestamp != timestamp:
            raise NotFound(timestamp)
        return index

    # =========================================================================
    # Writes
    # =========================================================================

    def load(self) -> int:
        """Replace in-memory entries with the store's contents, then prune.

        Returns:
            Number of entries kept after pruning

        Raises:
            PersistenceUnavailable: If the store cannot be read
        """
        if self.store is None:
            return len(self._entries)

        with self._write_lock:
            loaded = tuple(self.store.query_all_ordered(self.render))
            self._entries = loaded
        logger.info(f"Loaded {len(loaded)} history entries from {self.store.path}")
        self.prune_expired()
        return len(self._entries)

    def append_entry(self, snapshot: StateSnapshot, timestamp: int | None = None) -> LogEntry:
        """Append a new snapshot and apply the retention policy.

        Args:
            snapshot: Full board state to record
            timestamp: Epoch milliseconds (default: now)

        Returns:
            The newly created entry

        Raises:
            OutOfOrderTimestamp: If ``timestamp`` is older than the newest entry
            DuplicateTimestamp: If ``timestamp`` is already used
            PersistenceUnavailable: If the durable write fails
        """
        if timestamp is None:
            timestamp = self.clock()

        with self._write_lock:
            entries = self._entries
            previous = entries[-1].snapshot if entries else self.initial_state
            if entries:
                newest = entries[-1].timestamp
                if timestamp < newest:
                    raise OutOfOrderTimestamp(timestamp, newest)
                if timestamp == newest:
                    raise DuplicateTimestamp(timestamp)

            entry = LogEntry(
                timestamp=timestamp,
                snapshot=snapshot,
                display_time=self.render(timestamp),
                changes=diff_snapshots(previous, snapshot),
            )
            if self.store is not None:
                self.store.append(entry.timestamp, entry.snapshot, entry.changes)
            self._entries = entries + (entry,)

        logger.debug(f"Appended entry {timestamp} ({len(entry.changes)} beds changed)")
        self.prune_expired()
        return entry

    def prune_expired(self, now: int | None = None) -> tuple[LogEntry, ...]:
        """Drop entries outside the retention bounds.

        A store failure is logged and leaves the log as it was; the next
        call retries.

        Args:
            now: Reference time in epoch milliseconds (default: clock)

        Returns:
            The removed entries, oldest first
        """
        if not self.retention.enabled:
            return ()
        if now is None:
            now = self.clock()

        with self._write_lock:
            entries = self._entries
            start = self.retention.first_kept(entries, now)
            if start == 0:
                return ()

            removed = entries[:start]
            if self.store is not None:
                try:
                    self.store.delete_where(TimestampPredicate("<=", removed[-1].timestamp))
                except PersistenceUnavailable as e:
                    logger.error(f"Pruning {len(removed)} entries failed: {e.message}")
                    return ()
            self._entries = entries[start:]

        logger.info(f"Pruned {len(removed)} history entries, {len(entries) - start} remain")
        return removed

    def remove_newest(self) -> LogEntry | None:
        """Delete the newest entry.

        Returns:
            The removed entry, or None if the log is empty

        Raises:
            PersistenceUnavailable: If the durable delete fails
        """
        with self._write_lock:
            entries = self._entries
            if not entries:
                return None
            newest = entries[-1]
            if self.store is not None:
                self.store.delete_where(TimestampPredicate.at(newest.timestamp))
            self._entries = entries[:-1]
        return newest

    def truncate_after(self, timestamp: int) -> tuple[LogEntry, ...]:
        """Delete every entry newer than the entry at ``timestamp``.

        Returns:
            The removed entries, oldest first (empty if ``timestamp`` is newest)

        Raises:
            NotFound: If no entry carries exactly this timestamp
            PersistenceUnavailable: If the durable delete fails
        """
        with self._write_lock:
            entries = self._entries
            index = self._index_of(entries, timestamp)
            removed = entries[index + 1 :]
            if not removed:
                return ()
            if self.store is not None:
                self.store.delete_where(TimestampPredicate.newer_than(timestamp))
            self._entries = entries[: index + 1]
        return removed


__all__ = ["HistoryLog", "RetentionPolicy"]
