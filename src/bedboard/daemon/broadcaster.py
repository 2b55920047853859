"""Sync broadcaster for connected observers.

Every message carries the full (current state, history, display time)
triple, never a diff, so an observer that missed earlier messages can
resynchronize from any single one.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import WebSocket

from bedboard.engine.requests import MutationOutcome
from bedboard.history.log import HistoryLog
from bedboard.history.models import BoardState

logger = logging.getLogger(__name__)


def state_message(state: BoardState) -> dict[str, Any]:
    """Wrap a board state triple as an outbound WebSocket message."""
    return {"type": "board_state", **state.to_dict()}


class SyncBroadcaster:
    """Manage observer connections and push board state to them.

    Joining and broadcasting share one lock: a joiner either receives the
    next broadcast or its initial state already includes that change.
    """

    def __init__(self, log: HistoryLog, max_connections: int = 100) -> None:
        """Initialize the broadcaster.

        Args:
            log: History log the broadcast state is read from
            max_connections: Maximum allowed observers
        """
        self.log = log
        self.active: list[WebSocket] = []
        self._max_connections = max_connections
        self._lock = asyncio.Lock()

    def build_state(self) -> BoardState:
        """Current triple, from a single consistent read of the log."""
        return self.log.board_state()

    async def on_observer_join(self, websocket: WebSocket) -> bool:
        """Accept an observer and send it the current board state.

        Args:
            websocket: The joining observer

        Returns:
            True if the observer was accepted, False if the limit is reached
        """
        async with self._lock:
            if len(self.active) >= self._max_connections:
                return False
            await websocket.accept()
            await websocket.send_json(state_message(self.build_state()))
            self.active.append(websocket)
        logger.info(f"Observer joined, total: {len(self.active)}")
        return True

    async def disconnect(self, websocket: WebSocket) -> None:
        """Forget an observer.

        Args:
            websocket: The observer that left
        """
        async with self._lock:
            if websocket in self.active:
                self.active.remove(websocket)
        logger.info(f"Observer left, total: {len(self.active)}")

    async def on_mutation_accepted(self, outcome: MutationOutcome) -> None:
        """Broadcast the board state after an accepted mutation.

        Args:
            outcome: The accepted outcome (only used for logging)
        """
        async with self._lock:
            message = state_message(self.build_state())
            connections = self.active.copy()

        if not connections:
            return

        disconnected: list[WebSocket] = []
        for ws in connections:
            try:
                await ws.send_json(message)
            except Exception:
                disconnected.append(ws)

        for ws in disconnected:
            await self.disconnect(ws)

        logger.debug(
            f"Broadcast {outcome.request.kind} to {len(connections) - len(disconnected)} observers"
        )

    @property
    def connection_count(self) -> int:
        """Get number of connected observers."""
        return len(self.active)


__all__ = ["SyncBroadcaster", "state_message"]
