"""Shared fixtures for Bedboard tests."""

from __future__ import annotations

import pytest

from bedboard.history.log import HistoryLog, RetentionPolicy


class ManualClock:
    """Deterministic epoch-millisecond clock advanced by hand."""

    def __init__(self, now: int = 1_000) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> int:
        self.now += ms
        return self.now

    def set(self, now: int) -> None:
        self.now = now


@pytest.fixture
def clock() -> ManualClock:
    """Clock starting at t=1000 ms."""
    return ManualClock()


@pytest.fixture
def initial_board() -> dict[str, str]:
    """Two beds, both off."""
    return {"1": "off", "2": "off"}


@pytest.fixture
def history_log(initial_board: dict[str, str], clock: ManualClock) -> HistoryLog:
    """In-memory history log with default retention."""
    return HistoryLog(initial_board, retention=RetentionPolicy(), clock=clock)
