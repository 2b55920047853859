"""Bedboard history - snapshot model, durable store and the history log."""

from bedboard.history.log import HistoryLog, RetentionPolicy
from bedboard.history.merge import get_strategy, overlay, replace, validate_payload
from bedboard.history.models import (
    BoardState,
    LogEntry,
    StateSnapshot,
    TimeFormatter,
    diff_snapshots,
    system_clock,
)
from bedboard.history.store import HistoryStore, TimestampPredicate

__all__ = [
    "BoardState",
    "HistoryLog",
    "HistoryStore",
    "LogEntry",
    "RetentionPolicy",
    "StateSnapshot",
    "TimeFormatter",
    "TimestampPredicate",
    "diff_snapshots",
    "get_strategy",
    "overlay",
    "replace",
    "system_clock",
    "validate_payload",
]
