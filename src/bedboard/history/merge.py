"""Merge strategies for update payloads.

An update carries either a partial delta (``overlay``) or a full board
(``replace``). The strategy is chosen by configuration and may be
overridden per request. Every strategy returns a status for every bed on
the board.
"""

from __future__ import annotations

from collections.abc import Callable, Collection

from bedboard.errors import ConfigError, InvalidStatus, UnknownBed
from bedboard.history.models import BedId, BedStatus, StateSnapshot

MergeStrategy = Callable[[StateSnapshot, StateSnapshot, StateSnapshot], dict[BedId, BedStatus]]


def overlay(
    current: StateSnapshot, payload: StateSnapshot, initial: StateSnapshot
) -> dict[BedId, BedStatus]:
    """Apply ``payload`` on top of ``current``; untouched beds keep their status."""
    merged = dict(current)
    merged.update(payload)
    return merged


def replace(
    current: StateSnapshot, payload: StateSnapshot, initial: StateSnapshot
) -> dict[BedId, BedStatus]:
    """Apply ``payload`` on top of the initial board.

    Beds the payload leaves out fall back to their initial status, so an
    empty payload resets the whole board.
    """
    merged = dict(initial)
    merged.update(payload)
    return merged


STRATEGIES: dict[str, MergeStrategy] = {
    "overlay": overlay,
    "replace": replace,
}


def get_strategy(name: str) -> MergeStrategy:
    """Look up a merge strategy by name.

    Raises:
        ConfigError: If no strategy has that name
    """
    try:
        return STRATEGIES[name]
    except KeyError:
        raise ConfigError(
            f"Unknown merge strategy: {name}",
            strategy=name,
            available=sorted(STRATEGIES),
        ) from None


def validate_payload(
    payload: StateSnapshot,
    beds: Collection[BedId],
    statuses: Collection[BedStatus],
) -> None:
    """Check bed ids and statuses of an update payload.

    Args:
        payload: Bed -> status mapping from the request
        beds: Known bed ids
        statuses: Allowed statuses; empty means any non-empty string

    Raises:
        UnknownBed: A bed id is not on the board
        InvalidStatus: A status is outside the vocabulary
    """
    for bed_id, status in payload.items():
        if bed_id not in beds:
            raise UnknownBed(bed_id)
        if not isinstance(status, str) or not status:
            raise InvalidStatus(bed_id, str(status))
        if statuses and status not in statuses:
            raise InvalidStatus(bed_id, status)


__all__ = [
    "MergeStrategy",
    "overlay",
    "replace",
    "STRATEGIES",
    "get_strategy",
    "validate_payload",
]
