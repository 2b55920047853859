"""Mutation requests and their outcomes.

Requests carry no sender identity: any observer may issue any of them.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar

from bedboard.errors import BedboardError
from bedboard.history.models import BedId, BedStatus, LogEntry


@dataclass(frozen=True)
class UpdateRequest:
    """Change the status of one or more beds.

    Attributes:
        changes: Bed -> new status (a delta, or the full board for ``replace``)
        mode: Merge strategy override ("overlay" or "replace"); None uses config
    """

    kind: ClassVar[str] = "update"

    changes: Mapping[BedId, BedStatus]
    mode: str | None = None


@dataclass(frozen=True)
class UndoRequest:
    """Discard the newest history entry."""

    kind: ClassVar[str] = "undo"


@dataclass(frozen=True)
class RevertRequest:
    """Discard every entry newer than ``timestamp``."""

    kind: ClassVar[str] = "revert"

    timestamp: int


MutationRequest = UpdateRequest | UndoRequest | RevertRequest


class OutcomeStatus(Enum):
    """What happened to a submitted request."""

    ACCEPTED = "accepted"  # State changed, observers notified
    IGNORED = "ignored"  # Valid request with nothing to do
    REJECTED = "rejected"  # Failed, state unchanged


@dataclass(frozen=True)
class MutationOutcome:
    """Result of applying one request.

    Attributes:
        request: The request that was applied
        status: Accepted, ignored or rejected
        entry: Entry created by an accepted update
        removed: Entries deleted by an accepted undo or revert
        error: Failure for rejected requests
        reason: Human-readable explanation for ignored requests
    """

    request: MutationRequest
    status: OutcomeStatus
    entry: LogEntry | None = None
    removed: tuple[LogEntry, ...] = field(default_factory=tuple)
    error: BedboardError | None = None
    reason: str | None = None

    @property
    def accepted(self) -> bool:
        return self.status is OutcomeStatus.ACCEPTED

    @classmethod
    def rejected(cls, request: MutationRequest, error: BedboardError) -> MutationOutcome:
        return cls(request=request, status=OutcomeStatus.REJECTED, error=error)

    @classmethod
    def ignored(cls, request: MutationRequest, reason: str) -> MutationOutcome:
        return cls(request=request, status=OutcomeStatus.IGNORED, reason=reason)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "request": self.request.kind,
            "status": self.status.value,
            "entry": self.entry.to_dict() if self.entry else None,
            "removed": [entry.timestamp for entry in self.removed],
            "error": self.error.to_dict() if self.error else None,
            "reason": self.reason,
        }


__all__ = [
    "UpdateRequest",
    "UndoRequest",
    "RevertRequest",
    "MutationRequest",
    "OutcomeStatus",
    "MutationOutcome",
]
