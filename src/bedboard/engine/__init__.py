"""Bedboard engine - serialized mutations, undo and revert."""

from bedboard.engine.requests import (
    MutationOutcome,
    MutationRequest,
    OutcomeStatus,
    RevertRequest,
    UndoRequest,
    UpdateRequest,
)
from bedboard.engine.serializer import MutationSerializer
from bedboard.engine.undo import UndoRevertEngine

__all__ = [
    "MutationOutcome",
    "MutationRequest",
    "MutationSerializer",
    "OutcomeStatus",
    "RevertRequest",
    "UndoRequest",
    "UndoRevertEngine",
    "UpdateRequest",
]
