"""Durable persistence adapter for the history log.

DuckDB-backed storage of LogEntry rows keyed by timestamp. The store
only appends, queries in timestamp order and deletes by timestamp
predicate; the in-memory HistoryLog decides what to write.
"""

from __future__ import annotations

import json
import logging
import operator
import threading
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal

import duckdb

from bedboard.errors import DuplicateTimestamp, PersistenceUnavailable
from bedboard.history.models import LogEntry, StateSnapshot
from bedboard.history.schema import HISTORY_SCHEMA_SQL, SCHEMA_VERSION

logger = logging.getLogger(__name__)

ComparisonOp = Literal["<", "<=", "=", ">=", ">"]

_OPERATORS: dict[str, Callable[[int, int], bool]] = {
    "<": operator.lt,
    "<=": operator.le,
    "=": operator.eq,
    ">=": operator.ge,
    ">": operator.gt,
}


@dataclass(frozen=True)
class TimestampPredicate:
    """A comparison against an entry's timestamp.

    Attributes:
        op: Comparison operator applied as ``timestamp <op> value``
        value: Epoch milliseconds to compare against
    """

    op: ComparisonOp
    value: int

    @classmethod
    def older_than(cls, timestamp: int) -> TimestampPredicate:
        return cls("<", timestamp)

    @classmethod
    def newer_than(cls, timestamp: int) -> TimestampPredicate:
        return cls(">", timestamp)

    @classmethod
    def at(cls, timestamp: int) -> TimestampPredicate:
        return cls("=", timestamp)

    def __call__(self, timestamp: int) -> bool:
        return _OPERATORS[self.op](timestamp, self.value)

    def to_sql(self) -> tuple[str, list[int]]:
        """Render as a parameterized WHERE clause."""
        if self.op not in _OPERATORS:
            raise ValueError(f"Unsupported operator: {self.op}")
        return f"timestamp {self.op} ?", [self.value]


class HistoryStore:
    """DuckDB store for history entries.

    All methods are synchronous and guarded by a lock so the store can be
    driven from a worker thread. DuckDB failures are surfaced as
    PersistenceUnavailable, primary key violations as DuplicateTimestamp.
    """

    def __init__(self, path: Path | str) -> None:
        """Open (and create if needed) the history database.

        Args:
            path: Database file path, or ":memory:" for an in-memory store

        Raises:
            PersistenceUnavailable: If the database cannot be opened
        """
        self.path = Path(path)
        self._lock = threading.Lock()

        if str(path) != ":memory:":
            self.path.parent.mkdir(parents=True, exist_ok=True)

        try:
            self.conn = duckdb.connect(str(path))
            self._init_schema()
        except duckdb.Error as e:
            error_msg = str(e).lower()
            if "lock" in error_msg:
                raise PersistenceUnavailable(
                    f"History database is locked by another process: {e}",
                    path=str(path),
                ) from e
            raise PersistenceUnavailable(f"Cannot open history database: {e}", path=str(path)) from e

    def _init_schema(self) -> None:
        """Create tables and record the schema version."""
        self.conn.execute(HISTORY_SCHEMA_SQL)
        row = self.conn.execute("SELECT value FROM metadata WHERE key = 'version'").fetchone()
        if row is None:
            self.conn.execute("INSERT INTO metadata VALUES ('version', ?)", [SCHEMA_VERSION])
            self.conn.execute("INSERT INTO metadata VALUES ('created_at', CAST(CURRENT_TIMESTAMP AS VARCHAR))")
        elif row[0] != SCHEMA_VERSION:
            logger.warning(f"History schema version {row[0]} differs from {SCHEMA_VERSION}")

    def append(
        self,
        timestamp: int,
        snapshot: StateSnapshot,
        changes: StateSnapshot | None = None,
    ) -> int:
        """Insert one entry.

        Args:
            timestamp: Entry key (epoch milliseconds)
            snapshot: Full board state
            changes: Beds changed relative to the previous entry

        Returns:
            The entry id (the timestamp key)

        Raises:
            DuplicateTimestamp: If the timestamp is already stored
            PersistenceUnavailable: On any other database failure
        """
        params = [
            timestamp,
            json.dumps(dict(snapshot), sort_keys=True),
            json.dumps(dict(changes or {}), sort_keys=True),
        ]
        with self._lock:
            try:
                self.conn.execute(
                    "INSERT INTO history_entries (timestamp, snapshot, changes) VALUES (?, ?, ?)",
                    params,
                )
            except duckdb.ConstraintException as e:
                raise DuplicateTimestamp(timestamp) from e
            except duckdb.Error as e:
                raise PersistenceUnavailable(f"Failed to append entry {timestamp}: {e}") from e
        return timestamp

    def query_all_ordered(self, render: Callable[[int], str]) -> list[LogEntry]:
        """Load every entry in ascending timestamp order.

        Args:
            render: Formats a timestamp into the entry's display time

        Raises:
            PersistenceUnavailable: On database failure
        """
        with self._lock:
            try:
                rows = self.conn.execute(
                    "SELECT timestamp, snapshot, changes FROM history_entries ORDER BY timestamp"
                ).fetchall()
            except duckdb.Error as e:
                raise PersistenceUnavailable(f"Failed to query history: {e}") from e
        return [LogEntry.from_row(row, render) for row in rows]

    def delete_where(self, predicate: TimestampPredicate) -> int:
        """Delete entries matching a timestamp predicate.

        Returns:
            Number of rows removed

        Raises:
            PersistenceUnavailable: On database failure
        """
        clause, params = predicate.to_sql()
        with self._lock:
            try:
                count_row = self.conn.execute(
                    f"SELECT COUNT(*) FROM history_entries WHERE {clause}", params
                ).fetchone()
                self.conn.execute(f"DELETE FROM history_entries WHERE {clause}", params)
            except duckdb.Error as e:
                raise PersistenceUnavailable(f"Failed to delete entries ({clause}): {e}") from e
        return int(count_row[0]) if count_row else 0

    def count(self) -> int:
        """Number of stored entries.

        Raises:
            PersistenceUnavailable: On database failure
        """
        with self._lock:
            try:
                row = self.conn.execute("SELECT COUNT(*) FROM history_entries").fetchone()
            except duckdb.Error as e:
                raise PersistenceUnavailable(f"Failed to count entries: {e}") from e
        return int(row[0]) if row else 0

    def stats(self) -> dict[str, Any]:
        """Database statistics for status reporting.

        Raises:
            PersistenceUnavailable: On database failure
        """
        with self._lock:
            try:
                row = self.conn.execute(
                    "SELECT COUNT(*), MIN(timestamp), MAX(timestamp) FROM history_entries"
                ).fetchone()
            except duckdb.Error as e:
                raise PersistenceUnavailable(f"Failed to read history stats: {e}") from e
        count, oldest, newest = row if row else (0, None, None)
        return {
            "path": str(self.path),
            "entries": int(count),
            "oldest_timestamp": oldest,
            "newest_timestamp": newest,
        }

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            self.conn.close()


__all__ = ["HistoryStore", "TimestampPredicate"]
