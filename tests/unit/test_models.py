"""Tests for history data models and time helpers."""

from __future__ import annotations

from datetime import timedelta, timezone

import pytest

from bedboard.history.models import (
    BoardState,
    LogEntry,
    TimeFormatter,
    diff_snapshots,
    freeze_snapshot,
)


class TestTimeFormatter:
    """Tests for display time rendering."""

    def test_default_is_utc(self) -> None:
        """Epoch zero renders as the UTC epoch."""
        assert TimeFormatter()(0) == "1970-01-01 00:00:00"

    def test_milliseconds_truncated(self) -> None:
        """Sub-second precision does not show in the default format."""
        assert TimeFormatter()(1_999) == "1970-01-01 00:00:01"

    def test_custom_timezone_and_format(self) -> None:
        """Timezone offset and format are both honoured."""
        render = TimeFormatter(timezone(timedelta(hours=2)), "%H:%M")
        assert render(0) == "02:00"


class TestSnapshots:
    """Tests for snapshot helpers."""

    def test_freeze_is_read_only(self) -> None:
        """Frozen snapshots reject writes."""
        frozen = freeze_snapshot({"1": "off"})
        with pytest.raises(TypeError):
            frozen["1"] = "on"  # type: ignore[index]

    def test_freeze_copies(self) -> None:
        """Later changes to the source mapping do not leak in."""
        source = {"1": "off"}
        frozen = freeze_snapshot(source)
        source["1"] = "on"
        assert frozen["1"] == "off"

    def test_diff_reports_changed_and_new_beds(self) -> None:
        """Only beds whose status differs are reported."""
        before = {"1": "off", "2": "off"}
        after = {"1": "on", "2": "off", "3": "cleaning"}
        assert diff_snapshots(before, after) == {"1": "on", "3": "cleaning"}


class TestLogEntry:
    """Tests for LogEntry."""

    def test_snapshot_is_isolated(self) -> None:
        """The caller's dict can change without touching the entry."""
        snapshot = {"1": "on"}
        entry = LogEntry(timestamp=100, snapshot=snapshot, display_time="t")
        snapshot["1"] = "off"

        assert entry.snapshot["1"] == "on"
        with pytest.raises(TypeError):
            entry.snapshot["1"] = "off"  # type: ignore[index]

    def test_to_dict(self) -> None:
        """to_dict produces plain JSON-able values."""
        entry = LogEntry(timestamp=100, snapshot={"1": "on"}, display_time="t", changes={"1": "on"})
        assert entry.to_dict() == {
            "timestamp": 100,
            "snapshot": {"1": "on"},
            "display_time": "t",
            "changes": {"1": "on"},
        }

    def test_from_row_parses_json_columns(self) -> None:
        """DuckDB rows with JSON strings become entries."""
        entry = LogEntry.from_row((100, '{"1": "on"}', '{"1": "on"}'), lambda ts: f"@{ts}")

        assert entry.timestamp == 100
        assert dict(entry.snapshot) == {"1": "on"}
        assert dict(entry.changes) == {"1": "on"}
        assert entry.display_time == "@100"


class TestBoardState:
    """Tests for the broadcast triple."""

    def test_empty_history_uses_initial_board(self) -> None:
        """With no entries the initial board and the current time are used."""
        state = BoardState.from_entries((), {"1": "off"}, lambda ts: f"@{ts}", now=500)

        assert state.current_state == {"1": "off"}
        assert state.history == ()
        assert state.display_time == "@500"

    def test_newest_entry_is_current(self) -> None:
        """Current state and display time come from the newest entry."""
        entries = (
            LogEntry(timestamp=100, snapshot={"1": "on"}, display_time="first"),
            LogEntry(timestamp=200, snapshot={"1": "off"}, display_time="second"),
        )
        state = BoardState.from_entries(entries, {"1": "x"}, str, now=999)

        assert state.current_state == {"1": "off"}
        assert state.display_time == "second"
        assert [e["timestamp"] for e in state.to_dict()["history"]] == [100, 200]
