"""Mutation serializer.

Funnels every update, undo and revert through a single worker task so
that at most one mutation is applied at any instant. Requests are
applied strictly in arrival order, each stamped with "now" at the moment
it is applied.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Collection

from bedboard.engine.requests import (
    MutationOutcome,
    MutationRequest,
    OutcomeStatus,
    RevertRequest,
    UndoRequest,
    UpdateRequest,
)
from bedboard.engine.undo import UndoRevertEngine
from bedboard.errors import BedboardError
from bedboard.history.log import HistoryLog
from bedboard.history.merge import get_strategy, validate_payload
from bedboard.history.models import BedId, BedStatus, Clock

logger = logging.getLogger(__name__)

Subscriber = Callable[[MutationOutcome], Awaitable[None]]


class MutationSerializer:
    """Apply mutation requests one at a time, in arrival order.

    Requests wait on an asyncio queue; a single worker drains it and runs
    each request to completion before taking the next. Durable I/O runs in
    a worker thread so the event loop keeps accepting requests meanwhile.
    Subscribers are notified of accepted outcomes in the order they were
    applied.

    Attributes:
        log: The history log being mutated
        engine: Undo/revert engine over the same log
        beds: Known bed ids
        statuses: Allowed statuses (empty accepts any)
        merge_strategy: Default strategy name for updates
    """

    def __init__(
        self,
        log: HistoryLog,
        engine: UndoRevertEngine,
        beds: Collection[BedId],
        statuses: Collection[BedStatus] = (),
        merge_strategy: str = "overlay",
        clock: Clock | None = None,
    ) -> None:
        """Initialize the serializer.

        Args:
            log: The history log being mutated
            engine: Undo/revert engine over the same log
            beds: Known bed ids
            statuses: Allowed statuses (empty accepts any)
            merge_strategy: Default strategy name for updates
            clock: Source of "now" (default: the log's clock)
        """
        get_strategy(merge_strategy)
        self.log = log
        self.engine = engine
        self.beds = frozenset(beds)
        self.statuses = frozenset(statuses)
        self.merge_strategy = merge_strategy
        self.clock = clock or log.clock
        self._queue: asyncio.Queue[tuple[MutationRequest, asyncio.Future[MutationOutcome]]] = asyncio.Queue()
        self._task: asyncio.Task[None] | None = None
        self._subscribers: list[Subscriber] = []
        self._accepting = False

    async def start(self) -> None:
        """Start the worker processing loop."""
        if self._task is not None:
            logger.warning("MutationSerializer already running")
            return

        self._accepting = True
        self._task = asyncio.create_task(self._process_loop())
        logger.info("MutationSerializer started")

    async def stop(self) -> None:
        """Finish queued requests, then stop the worker."""
        if self._task is None:
            return

        self._accepting = False
        await self._queue.join()
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("MutationSerializer stopped")

    def subscribe(self, callback: Subscriber) -> None:
        """Subscribe to accepted outcomes.

        Args:
            callback: Async callback invoked once per accepted mutation
        """
        self._subscribers.append(callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        """Unsubscribe from accepted outcomes.

        Args:
            callback: The callback to remove
        """
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    async def submit(self, request: MutationRequest) -> MutationOutcome:
        """Queue a request and wait for it to be applied.

        Args:
            request: Update, undo or revert

        Returns:
            The outcome once the request has run

        Raises:
            RuntimeError: If the serializer is not running
        """
        if not self._accepting:
            raise RuntimeError("MutationSerializer is not running")

        future: asyncio.Future[MutationOutcome] = asyncio.get_running_loop().create_future()
        await self._queue.put((request, future))
        return await future

    @property
    def pending_count(self) -> int:
        """Requests waiting behind the one in flight."""
        return self._queue.qsize()

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _process_loop(self) -> None:
        """Main processing loop - one request at a time."""
        while True:
            request, future = await self._queue.get()
            try:
                try:
                    outcome = await asyncio.to_thread(self.apply, request)
                except Exception as e:
                    logger.exception(f"Unexpected error applying {request.kind}")
                    outcome = MutationOutcome.rejected(request, BedboardError(f"Internal error: {e}"))

                if not future.done():
                    future.set_result(outcome)
                if outcome.accepted:
                    await self._notify_subscribers(outcome)
            finally:
                self._queue.task_done()

    def apply(self, request: MutationRequest) -> MutationOutcome:
        """Apply one request synchronously.

        Only the worker loop calls this while the serializer is running.
        History errors are turned into rejected outcomes here; nothing
        already accepted is rolled back.
        """
        try:
            if isinstance(request, UpdateRequest):
                outcome = self._apply_update(request)
            elif isinstance(request, UndoRequest):
                outcome = self._apply_undo(request)
            elif isinstance(request, RevertRequest):
                outcome = self._apply_revert(request)
            else:
                raise TypeError(f"Unsupported request: {request!r}")
        except BedboardError as e:
            logger.warning(f"Rejected {request.kind}: {e.message}")
            return MutationOutcome.rejected(request, e)

        if outcome.status is OutcomeStatus.IGNORED:
            logger.debug(f"Ignored {request.kind}: {outcome.reason}")
        return outcome

    def _apply_update(self, request: UpdateRequest) -> MutationOutcome:
        validate_payload(request.changes, self.beds, self.statuses)
        strategy = get_strategy(request.mode or self.merge_strategy)

        current = self.log.current_state()
        merged = strategy(current, request.changes, self.log.initial_state)
        if merged == current:
            return MutationOutcome.ignored(request, "state unchanged")

        entry = self.log.append_entry(merged, self._next_timestamp())
        changed = ", ".join(f"{bed}={status}" for bed, status in entry.changes.items())
        logger.info(f"Accepted update at {entry.timestamp}: {changed}")
        return MutationOutcome(request=request, status=OutcomeStatus.ACCEPTED, entry=entry)

    def _apply_undo(self, request: UndoRequest) -> MutationOutcome:
        removed = self.engine.undo()
        if removed is None:
            return MutationOutcome.ignored(request, "nothing to undo")
        return MutationOutcome(request=request, status=OutcomeStatus.ACCEPTED, removed=(removed,))

    def _apply_revert(self, request: RevertRequest) -> MutationOutcome:
        removed = self.engine.revert_to_timestamp(request.timestamp)
        if not removed:
            return MutationOutcome.ignored(request, "already the newest entry")
        return MutationOutcome(request=request, status=OutcomeStatus.ACCEPTED, removed=removed)

    def _next_timestamp(self) -> int:
        """Now, bumped past the newest entry if the clock hasn't moved."""
        now = self.clock()
        newest = self.log.newest
        if newest is not None and now <= newest.timestamp:
            return newest.timestamp + 1
        return now

    async def _notify_subscribers(self, outcome: MutationOutcome) -> None:
        """Notify all subscribers of an accepted outcome.

        Args:
            outcome: The accepted outcome to broadcast
        """
        for callback in self._subscribers:
            try:
                await callback(outcome)
            except Exception as e:
                logger.error(f"Error notifying subscriber: {e}")


__all__ = ["MutationSerializer", "Subscriber"]
