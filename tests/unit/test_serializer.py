"""Tests for the mutation serializer."""

from __future__ import annotations

import asyncio

import pytest
from conftest import ManualClock

from bedboard.engine.requests import (
    MutationOutcome,
    OutcomeStatus,
    RevertRequest,
    UndoRequest,
    UpdateRequest,
)
from bedboard.engine.serializer import MutationSerializer
from bedboard.engine.undo import UndoRevertEngine
from bedboard.errors import ConfigError, InvalidStatus, NotFound, PersistenceUnavailable, UnknownBed
from bedboard.history.log import HistoryLog, RetentionPolicy
from bedboard.history.store import HistoryStore


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def serializer(history_log: HistoryLog) -> MutationSerializer:
    """Serializer over the shared two-bed log, open status vocabulary."""
    engine = UndoRevertEngine(history_log)
    return MutationSerializer(history_log, engine, beds=["1", "2"])


@pytest.fixture
async def running(serializer: MutationSerializer) -> MutationSerializer:
    await serializer.start()
    yield serializer
    await serializer.stop()


# =============================================================================
# TestApply
# =============================================================================


class TestApply:
    """Tests for synchronous request application."""

    def test_update_accepted(self, serializer: MutationSerializer, clock: ManualClock) -> None:
        outcome = serializer.apply(UpdateRequest({"1": "on"}))

        assert outcome.status is OutcomeStatus.ACCEPTED
        assert outcome.entry is not None
        assert outcome.entry.timestamp == clock.now
        assert dict(outcome.entry.snapshot) == {"1": "on", "2": "off"}

    def test_update_unchanged_is_ignored(self, serializer: MutationSerializer) -> None:
        """Setting a bed to its current status records nothing."""
        outcome = serializer.apply(UpdateRequest({"1": "off"}))

        assert outcome.status is OutcomeStatus.IGNORED
        assert len(serializer.log) == 0

    def test_unknown_bed_rejected(self, serializer: MutationSerializer) -> None:
        outcome = serializer.apply(UpdateRequest({"9": "on"}))

        assert outcome.status is OutcomeStatus.REJECTED
        assert isinstance(outcome.error, UnknownBed)
        assert len(serializer.log) == 0

    def test_closed_vocabulary(self, history_log: HistoryLog) -> None:
        serializer = MutationSerializer(
            history_log, UndoRevertEngine(history_log), beds=["1", "2"], statuses=["on", "off"]
        )
        outcome = serializer.apply(UpdateRequest({"1": "melted"}))
        assert isinstance(outcome.error, InvalidStatus)

    def test_replace_mode(self, serializer: MutationSerializer) -> None:
        """Beds a replace payload leaves out return to the initial status."""
        serializer.apply(UpdateRequest({"1": "on", "2": "on"}))
        outcome = serializer.apply(UpdateRequest({"1": "on"}, mode="replace"))

        assert outcome.entry is not None
        assert dict(outcome.entry.snapshot) == {"1": "on", "2": "off"}
        assert dict(outcome.entry.changes) == {"2": "off"}
        assert set(serializer.log.current_state()) == {"1", "2"}

    def test_replace_empty_payload_resets_board(self, serializer: MutationSerializer) -> None:
        """An empty replace payload restores the initial board and records it."""
        serializer.apply(UpdateRequest({"1": "on", "2": "on"}))
        outcome = serializer.apply(UpdateRequest({}, mode="replace"))

        assert outcome.status is OutcomeStatus.ACCEPTED
        assert outcome.entry is not None
        assert serializer.log.current_state() == {"1": "off", "2": "off"}
        assert dict(outcome.entry.changes) == {"1": "off", "2": "off"}

    def test_replace_empty_payload_on_initial_board_is_ignored(
        self, serializer: MutationSerializer
    ) -> None:
        outcome = serializer.apply(UpdateRequest({}, mode="replace"))

        assert outcome.status is OutcomeStatus.IGNORED
        assert serializer.log.current_state() == {"1": "off", "2": "off"}

    def test_same_millisecond_updates_get_distinct_timestamps(
        self, serializer: MutationSerializer, clock: ManualClock
    ) -> None:
        """Two updates within one clock tick are stamped now and now+1."""
        first = serializer.apply(UpdateRequest({"1": "on"}))
        second = serializer.apply(UpdateRequest({"2": "on"}))

        assert first.entry is not None and second.entry is not None
        assert first.entry.timestamp == clock.now
        assert second.entry.timestamp == clock.now + 1

    def test_clock_behind_newest(self, serializer: MutationSerializer, clock: ManualClock) -> None:
        """A clock that steps backwards still yields increasing timestamps."""
        serializer.apply(UpdateRequest({"1": "on"}))
        clock.set(clock.now - 500)
        outcome = serializer.apply(UpdateRequest({"2": "on"}))

        assert outcome.accepted
        timestamps = [e.timestamp for e in serializer.log.query_all()]
        assert timestamps == sorted(set(timestamps))

    def test_undo_empty_is_ignored(self, serializer: MutationSerializer) -> None:
        outcome = serializer.apply(UndoRequest())
        assert outcome.status is OutcomeStatus.IGNORED

    def test_revert_missing_rejected(self, serializer: MutationSerializer) -> None:
        outcome = serializer.apply(RevertRequest(999))
        assert outcome.status is OutcomeStatus.REJECTED
        assert isinstance(outcome.error, NotFound)

    def test_unknown_merge_strategy(self, history_log: HistoryLog) -> None:
        with pytest.raises(ConfigError):
            MutationSerializer(history_log, UndoRevertEngine(history_log), beds=["1"], merge_strategy="zip")

    def test_outcome_to_dict(self, serializer: MutationSerializer) -> None:
        serializer.apply(UpdateRequest({"1": "on"}))
        data = serializer.apply(UndoRequest()).to_dict()

        assert data["request"] == "undo"
        assert data["status"] == "accepted"
        assert len(data["removed"]) == 1
        assert data["error"] is None


# =============================================================================
# TestSerializerLoop
# =============================================================================


class TestSerializerLoop:
    """Tests for the async worker loop."""

    @pytest.mark.asyncio
    async def test_submit_requires_start(self, serializer: MutationSerializer) -> None:
        with pytest.raises(RuntimeError, match="not running"):
            await serializer.submit(UndoRequest())

    @pytest.mark.asyncio
    async def test_start_stop(self, serializer: MutationSerializer) -> None:
        await serializer.start()
        assert serializer.is_running
        await serializer.stop()
        assert not serializer.is_running

    @pytest.mark.asyncio
    async def test_concurrent_submissions_apply_in_order(self, running: MutationSerializer) -> None:
        """Requests submitted together are applied one at a time, in arrival order."""
        statuses = [f"s{i}" for i in range(10)]
        outcomes = await asyncio.gather(
            *(running.submit(UpdateRequest({"1": status})) for status in statuses)
        )

        assert all(outcome.accepted for outcome in outcomes)
        entries = running.log.query_all()
        assert [e.snapshot["1"] for e in entries] == statuses
        timestamps = [e.timestamp for e in entries]
        assert timestamps == sorted(set(timestamps))

    @pytest.mark.asyncio
    async def test_subscribers_see_only_accepted(self, running: MutationSerializer) -> None:
        """Ignored and rejected requests produce no notification."""
        seen: list[MutationOutcome] = []

        async def record(outcome: MutationOutcome) -> None:
            seen.append(outcome)

        running.subscribe(record)

        await running.submit(UpdateRequest({"1": "on"}))
        await running.submit(UpdateRequest({"1": "on"}))  # unchanged
        await running.submit(UpdateRequest({"7": "on"}))  # unknown bed
        await running.submit(UndoRequest())

        assert [o.request.kind for o in seen] == ["update", "undo"]

        running.unsubscribe(record)
        await running.submit(UpdateRequest({"2": "on"}))
        assert len(seen) == 2

    @pytest.mark.asyncio
    async def test_failing_subscriber_does_not_stop_loop(self, running: MutationSerializer) -> None:
        async def explode(outcome: MutationOutcome) -> None:
            raise RuntimeError("boom")

        running.subscribe(explode)

        first = await running.submit(UpdateRequest({"1": "on"}))
        second = await running.submit(UpdateRequest({"2": "on"}))

        assert first.accepted and second.accepted


# =============================================================================
# TestPersistenceFailure
# =============================================================================


class TestPersistenceFailure:
    """A failed durable write rejects the request and changes nothing."""

    @pytest.mark.asyncio
    async def test_closed_store_rejects_every_mutation(
        self, initial_board: dict[str, str], clock: ManualClock
    ) -> None:
        store = HistoryStore(":memory:")
        log = HistoryLog(initial_board, retention=RetentionPolicy(), clock=clock, store=store)
        log.append_entry({"1": "on", "2": "off"}, timestamp=100)
        log.append_entry({"1": "on", "2": "on"}, timestamp=200)
        clock.set(300)

        serializer = MutationSerializer(log, UndoRevertEngine(log), beds=["1", "2"])
        seen: list[MutationOutcome] = []

        async def record(outcome: MutationOutcome) -> None:
            seen.append(outcome)

        serializer.subscribe(record)
        await serializer.start()
        try:
            store.close()
            outcomes = [
                await serializer.submit(UpdateRequest({"1": "off"})),
                await serializer.submit(UndoRequest()),
                await serializer.submit(RevertRequest(100)),
            ]
        finally:
            await serializer.stop()

        for outcome in outcomes:
            assert outcome.status is OutcomeStatus.REJECTED
            assert isinstance(outcome.error, PersistenceUnavailable)
        assert seen == []
        assert [e.timestamp for e in log.query_all()] == [100, 200]
        assert log.current_state() == {"1": "on", "2": "on"}


# =============================================================================
# TestScenario
# =============================================================================


class TestScenario:
    """End-to-end update, undo and revert sequence on a two-bed board."""

    @pytest.mark.asyncio
    async def test_update_undo_revert(self, running: MutationSerializer, clock: ManualClock) -> None:
        notified: list[str] = []

        async def record(outcome: MutationOutcome) -> None:
            notified.append(outcome.request.kind)

        running.subscribe(record)
        log = running.log

        clock.set(100)
        await running.submit(UpdateRequest({"1": "on"}))
        assert log.current_state() == {"1": "on", "2": "off"}

        clock.set(200)
        await running.submit(UpdateRequest({"2": "on"}))
        assert log.current_state() == {"1": "on", "2": "on"}
        assert [e.timestamp for e in log.query_all()] == [100, 200]

        undone = await running.submit(UndoRequest())
        assert undone.accepted
        assert log.current_state() == {"1": "on", "2": "off"}
        assert [e.timestamp for e in log.query_all()] == [100]

        noop = await running.submit(RevertRequest(100))
        assert noop.status is OutcomeStatus.IGNORED

        missing = await running.submit(RevertRequest(999))
        assert missing.status is OutcomeStatus.REJECTED
        assert isinstance(missing.error, NotFound)
        assert [e.timestamp for e in log.query_all()] == [100]

        assert notified == ["update", "update", "undo"]
