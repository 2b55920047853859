"""Undo and point-in-time revert over the history log.

The log itself is the undo stack: both operations delete entries for
good and there is no redo.
"""

from __future__ import annotations

import logging

from bedboard.history.log import HistoryLog
from bedboard.history.models import LogEntry

logger = logging.getLogger(__name__)


class UndoRevertEngine:
    """Derive a new current state by removing history entries.

    Attributes:
        log: The history log to operate on
        preserve_initial_entry: If True, undo never removes the last remaining entry
    """

    def __init__(self, log: HistoryLog, preserve_initial_entry: bool = False) -> None:
        self.log = log
        self.preserve_initial_entry = preserve_initial_entry

    @property
    def floor(self) -> int:
        """Minimum number of entries undo leaves in the log."""
        return 1 if self.preserve_initial_entry else 0

    def can_undo(self) -> bool:
        return len(self.log) > self.floor

    def undo(self) -> LogEntry | None:
        """Remove the newest entry.

        Returns:
            The removed entry, or None when the log is at its floor

        Raises:
            PersistenceUnavailable: If the durable delete fails
        """
        if not self.can_undo():
            logger.debug(f"Undo ignored: log at floor ({len(self.log)} entries)")
            return None

        removed = self.log.remove_newest()
        if removed is not None:
            logger.info(f"Undo removed entry {removed.timestamp}")
        return removed

    def revert_to_timestamp(self, timestamp: int) -> tuple[LogEntry, ...]:
        """Make the entry at ``timestamp`` current again.

        Every newer entry is deleted permanently. There is no nearest-match
        fallback.

        Returns:
            The removed entries, oldest first (empty if already the newest)

        Raises:
            NotFound: If no entry carries exactly this timestamp
            PersistenceUnavailable: If the durable delete fails
        """
        removed = self.log.truncate_after(timestamp)
        if removed:
            logger.info(f"Reverted to {timestamp}, discarded {len(removed)} newer entries")
        else:
            logger.debug(f"Revert to {timestamp} ignored: already the newest entry")
        return removed


__all__ = ["UndoRevertEngine"]
