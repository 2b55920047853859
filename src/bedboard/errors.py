"""Error handling framework for Bedboard."""

from __future__ import annotations

from enum import IntEnum
from typing import Any


class ExitCode(IntEnum):
    """Bedboard CLI exit codes."""

    SUCCESS = 0
    CONFIG_ERROR = 1  # Configuration error (user fixable)
    REJECTED = 2  # Daemon refused the request
    FATAL_ERROR = 3  # Unexpected crash
    DAEMON_UNAVAILABLE = 4  # Daemon not reachable


class BedboardError(Exception):
    """Base exception for Bedboard errors."""

    exit_code: ExitCode = ExitCode.FATAL_ERROR

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for JSON output."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            **self.context,
        }


class ConfigError(BedboardError):
    """Configuration-related errors."""

    exit_code = ExitCode.CONFIG_ERROR


class HistoryError(BedboardError):
    """History log errors."""

    exit_code = ExitCode.REJECTED


class OutOfOrderTimestamp(HistoryError):
    """Append would move the log backwards in time."""

    def __init__(self, timestamp: int, newest: int) -> None:
        super().__init__(
            f"Timestamp {timestamp} is older than newest entry {newest}",
            timestamp=timestamp,
            newest=newest,
        )
        self.timestamp = timestamp
        self.newest = newest


class DuplicateTimestamp(HistoryError):
    """Timestamp already used by another entry."""

    def __init__(self, timestamp: int) -> None:
        super().__init__(f"Timestamp {timestamp} already exists", timestamp=timestamp)
        self.timestamp = timestamp


class NotFound(HistoryError):
    """No entry carries the requested timestamp."""

    def __init__(self, timestamp: int) -> None:
        super().__init__(f"No history entry at timestamp {timestamp}", timestamp=timestamp)
        self.timestamp = timestamp


class PersistenceUnavailable(BedboardError):
    """Durable store could not be reached or refused the write."""

    exit_code = ExitCode.REJECTED


class MutationError(BedboardError):
    """Invalid mutation payload."""

    exit_code = ExitCode.REJECTED


class UnknownBed(MutationError):
    """Bed id is not part of the configured board."""

    def __init__(self, bed_id: str) -> None:
        super().__init__(f"Unknown bed: {bed_id}", bed_id=bed_id)
        self.bed_id = bed_id


class InvalidStatus(MutationError):
    """Status is not part of the configured vocabulary."""

    def __init__(self, bed_id: str, status: str) -> None:
        super().__init__(f"Invalid status for bed {bed_id}: {status!r}", bed_id=bed_id, status=status)
        self.bed_id = bed_id
        self.status = status


class DaemonError(BedboardError):
    """Error communicating with the Bedboard daemon."""

    exit_code = ExitCode.DAEMON_UNAVAILABLE


__all__ = [
    "ExitCode",
    "BedboardError",
    "ConfigError",
    "HistoryError",
    "OutOfOrderTimestamp",
    "DuplicateTimestamp",
    "NotFound",
    "PersistenceUnavailable",
    "MutationError",
    "UnknownBed",
    "InvalidStatus",
    "DaemonError",
]
