"""FastAPI server for the Bedboard daemon.

Provides HTTP REST endpoints and a WebSocket channel through which
observers receive the board state and submit mutations.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Annotated, Any, Literal

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from bedboard.config import BoardConfig
from bedboard.daemon.broadcaster import SyncBroadcaster
from bedboard.daemon.config import DaemonConfig
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
from bedboard.errors import (
    BedboardError,
    DuplicateTimestamp,
    MutationError,
    NotFound,
    OutOfOrderTimestamp,
    PersistenceUnavailable,
)
from bedboard.history.log import HistoryLog, RetentionPolicy
from bedboard.history.models import Clock, TimeFormatter, system_clock
from bedboard.history.store import HistoryStore

logger = logging.getLogger(__name__)


# =============================================================================
# Pydantic Models for API
# =============================================================================


class LogEntryModel(BaseModel):
    """One history entry."""

    timestamp: int
    snapshot: dict[str, str]
    display_time: str
    changes: dict[str, str] = Field(default_factory=dict)


class BoardStateResponse(BaseModel):
    """Response model for /state: the full board state triple."""

    current_state: dict[str, str]
    history: list[LogEntryModel]
    display_time: str


class StatusResponse(BaseModel):
    """Response model for /status endpoint."""

    status: str = Field(description="Daemon status (running)")
    beds: int = Field(description="Number of configured beds")
    entries: int = Field(description="Entries currently in the history log")
    newest_timestamp: int | None = Field(default=None, description="Timestamp of the current entry")
    connections: int = Field(description="Connected WebSocket observers")
    pending_mutations: int = Field(description="Requests queued behind the one in flight")
    uptime_seconds: float = Field(description="Daemon uptime in seconds")
    storage: dict[str, Any] | None = Field(default=None, description="Durable store statistics")


class UpdateBody(BaseModel):
    """Request model for /update."""

    changes: dict[str, str] = Field(description="Bed -> new status")
    mode: Literal["overlay", "replace"] | None = Field(
        default=None, description="Merge strategy override"
    )


class RevertBody(BaseModel):
    """Request model for /revert."""

    timestamp: int = Field(description="Timestamp of the entry to make current")


class MutationResponse(BaseModel):
    """Response model for mutating endpoints."""

    request: str
    status: Literal["accepted", "ignored", "rejected"]
    entry: LogEntryModel | None = None
    removed: list[int] = Field(default_factory=list)
    error: dict[str, Any] | None = None
    reason: str | None = None


# WebSocket inbound messages


class UpdateMessage(BaseModel):
    """``{"type": "update", "changes": {...}}`` or ``{"type": "update", "bed_id": .., "status": ..}``."""

    type: Literal["update"]
    changes: dict[str, str] | None = None
    bed_id: str | int | None = None
    status: str | None = None
    mode: Literal["overlay", "replace"] | None = None

    def to_request(self) -> UpdateRequest:
        if self.changes is not None:
            return UpdateRequest(changes=self.changes, mode=self.mode)
        if self.bed_id is None or self.status is None:
            raise ValueError("update needs either 'changes' or both 'bed_id' and 'status'")
        return UpdateRequest(changes={str(self.bed_id): self.status}, mode=self.mode)


class UndoMessage(BaseModel):
    type: Literal["undo"]

    def to_request(self) -> UndoRequest:
        return UndoRequest()


class RevertMessage(BaseModel):
    type: Literal["revert"]
    timestamp: int

    def to_request(self) -> RevertRequest:
        return RevertRequest(timestamp=self.timestamp)


InboundMessage = Annotated[UpdateMessage | UndoMessage | RevertMessage, Field(discriminator="type")]
_inbound_adapter: TypeAdapter[UpdateMessage | UndoMessage | RevertMessage] = TypeAdapter(InboundMessage)


def parse_message(raw: str) -> MutationRequest:
    """Parse one inbound WebSocket message into a mutation request.

    Raises:
        ValueError: If the message is not valid JSON or not a known operation
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"invalid JSON: {e.msg}") from e
    try:
        message = _inbound_adapter.validate_python(data)
    except ValidationError as e:
        raise ValueError(str(e)) from e
    return message.to_request()


def outcome_http_status(outcome: MutationOutcome) -> int:
    """HTTP status code for a mutation outcome."""
    if outcome.status is not OutcomeStatus.REJECTED:
        return 200
    error = outcome.error
    if isinstance(error, NotFound):
        return 404
    if isinstance(error, OutOfOrderTimestamp | DuplicateTimestamp):
        return 409
    if isinstance(error, MutationError):
        return 422
    if isinstance(error, PersistenceUnavailable):
        return 503
    return 500


def outcome_response(outcome: MutationOutcome, status_code: int | None = None) -> JSONResponse:
    body = MutationResponse(**outcome.to_dict())
    return JSONResponse(
        status_code=status_code or outcome_http_status(outcome), content=body.model_dump()
    )


def shutting_down(request: MutationRequest) -> MutationOutcome:
    """Rejected outcome for a request that arrived after shutdown began."""
    return MutationOutcome.rejected(request, BedboardError("Bedboard daemon is shutting down"))


# =============================================================================
# Application State
# =============================================================================


class AppState:
    """Shared application state for daemon components."""

    def __init__(
        self,
        board_config: BoardConfig,
        config: DaemonConfig,
        store: HistoryStore | None,
        clock: Clock,
    ) -> None:
        self.board_config = board_config
        self.config = config
        self.store = store
        self.start_time = time.time()

        history = board_config.history
        self.log = HistoryLog(
            initial_state=board_config.board.initial_snapshot(),
            retention=RetentionPolicy(max_entries=history.max_entries, max_age_ms=history.max_age_ms),
            clock=clock,
            render=TimeFormatter(board_config.display.tzinfo(), board_config.display.time_format),
            store=store,
        )
        self.engine = UndoRevertEngine(self.log, preserve_initial_entry=history.preserve_initial_entry)
        self.serializer = MutationSerializer(
            self.log,
            self.engine,
            beds=board_config.board.beds,
            statuses=board_config.board.statuses,
            merge_strategy=history.merge_strategy,
        )
        self.broadcaster = SyncBroadcaster(self.log, max_connections=config.max_connections)

    def restore(self) -> None:
        """Load persisted history and seed the initial board if configured."""
        self.log.load()
        if self.board_config.history.seed_initial_entry and len(self.log) == 0:
            entry = self.log.append_entry(self.log.initial_state)
            logger.info(f"Seeded initial board entry at {entry.timestamp}")


# =============================================================================
# Application Factory
# =============================================================================


def create_app(
    board_config: BoardConfig,
    config: DaemonConfig,
    root: Path | None = None,
    clock: Clock = system_clock,
) -> FastAPI:
    """Create the FastAPI application with all endpoints.

    Args:
        board_config: Board, history and storage configuration
        config: Daemon configuration
        root: Project root that relative storage paths resolve against
        clock: Source of "now" in epoch milliseconds

    Returns:
        Configured FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Manage daemon lifecycle - startup and shutdown."""
        store: HistoryStore | None = None
        if board_config.storage.enabled:
            store_path = board_config.storage_path(root or Path.cwd())
            logger.info(f"Starting Bedboard daemon, history: {store_path}")
            store = HistoryStore(store_path)
        else:
            logger.info("Starting Bedboard daemon, history kept in memory only")

        state = AppState(board_config, config, store, clock)
        state.restore()
        app.state.daemon = state

        state.serializer.subscribe(state.broadcaster.on_mutation_accepted)
        await state.serializer.start()

        logger.info("Bedboard daemon started successfully")

        yield

        logger.info("Shutting down Bedboard daemon")
        await state.serializer.stop()
        if state.store is not None:
            state.store.close()
        logger.info("Bedboard daemon shutdown complete")

    app = FastAPI(
        title="Bedboard Daemon",
        description="Real-time bed occupancy board with undo and revert",
        version="1.0.0",
        lifespan=lifespan,
    )

    # -------------------------------------------------------------------------
    # REST Endpoints
    # -------------------------------------------------------------------------

    @app.get("/status", response_model=StatusResponse)
    async def get_status() -> StatusResponse:
        """Get daemon status and statistics."""
        state: AppState = app.state.daemon
        newest = state.log.newest

        storage: dict[str, Any] | None = None
        if state.store is not None:
            try:
                storage = await asyncio.to_thread(state.store.stats)
            except PersistenceUnavailable as e:
                storage = {"path": str(state.store.path), "error": e.message}

        return StatusResponse(
            status="running",
            beds=len(state.board_config.board.beds),
            entries=len(state.log),
            newest_timestamp=newest.timestamp if newest else None,
            connections=state.broadcaster.connection_count,
            pending_mutations=state.serializer.pending_count,
            uptime_seconds=time.time() - state.start_time,
            storage=storage,
        )

    @app.get("/state", response_model=BoardStateResponse)
    async def get_state() -> dict[str, Any]:
        """Get the current board state with its full history."""
        state: AppState = app.state.daemon
        return state.broadcaster.build_state().to_dict()

    @app.get("/history", response_model=list[LogEntryModel])
    async def get_history() -> list[dict[str, Any]]:
        """Get the ordered history log."""
        state: AppState = app.state.daemon
        return [entry.to_dict() for entry in state.log.query_all()]

    @app.get("/history/{timestamp}", response_model=LogEntryModel)
    async def get_entry(timestamp: int) -> dict[str, Any]:
        """Get the entry recorded at exactly ``timestamp``."""
        state: AppState = app.state.daemon
        try:
            return state.log.find_by_timestamp(timestamp).to_dict()
        except NotFound as e:
            raise HTTPException(status_code=404, detail=e.message) from e

    async def submit(request: MutationRequest) -> JSONResponse:
        state: AppState = app.state.daemon
        try:
            outcome = await state.serializer.submit(request)
        except RuntimeError:
            return outcome_response(shutting_down(request), status_code=503)
        return outcome_response(outcome)

    @app.post("/update", response_model=MutationResponse)
    async def post_update(body: UpdateBody) -> JSONResponse:
        """Change the status of one or more beds."""
        return await submit(UpdateRequest(changes=body.changes, mode=body.mode))

    @app.post("/undo", response_model=MutationResponse)
    async def post_undo() -> JSONResponse:
        """Discard the newest history entry."""
        return await submit(UndoRequest())

    @app.post("/revert", response_model=MutationResponse)
    async def post_revert(body: RevertBody) -> JSONResponse:
        """Discard every entry newer than the given timestamp."""
        return await submit(RevertRequest(timestamp=body.timestamp))

    # -------------------------------------------------------------------------
    # WebSocket Endpoint
    # -------------------------------------------------------------------------

    @app.websocket("/live")
    async def websocket_endpoint(websocket: WebSocket) -> None:
        """WebSocket endpoint: board state out, mutations in."""
        state: AppState = app.state.daemon

        if not await state.broadcaster.on_observer_join(websocket):
            await websocket.close(code=1013)  # Try again later
            return

        try:
            while True:
                try:
                    raw = await websocket.receive_text()
                except WebSocketDisconnect:
                    break

                try:
                    request = parse_message(raw)
                except ValueError as e:
                    await websocket.send_json({"type": "error", "message": str(e)})
                    continue

                try:
                    outcome = await state.serializer.submit(request)
                except RuntimeError:
                    outcome = shutting_down(request)
                # Accepted changes reach this observer through the broadcast
                if outcome.status is OutcomeStatus.REJECTED and outcome.error is not None:
                    await websocket.send_json(
                        {
                            "type": "rejected",
                            "request": request.kind,
                            "error": outcome.error.to_dict(),
                        }
                    )
                elif outcome.status is OutcomeStatus.IGNORED:
                    await websocket.send_json(
                        {
                            "type": "ignored",
                            "request": request.kind,
                            "reason": outcome.reason,
                        }
                    )
        finally:
            await state.broadcaster.disconnect(websocket)

    return app


__all__ = [
    "create_app",
    "parse_message",
    "outcome_http_status",
    "AppState",
    "StatusResponse",
    "BoardStateResponse",
    "LogEntryModel",
    "UpdateBody",
    "RevertBody",
    "MutationResponse",
]
