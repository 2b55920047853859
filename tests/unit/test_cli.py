"""Tests for the Bedboard CLI commands."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from bedboard.cli import cli
from bedboard.commands.board import parse_assignments
from bedboard.errors import ExitCode


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def project(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Empty project directory used as cwd and home."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    return tmp_path


@pytest.fixture
def mock_client() -> MagicMock:
    """Patch BoardClient with a running daemon double."""
    with patch("bedboard.client.BoardClient") as client_cls:
        client = client_cls.return_value
        client.is_running.return_value = True
        client.__enter__.return_value = client
        yield client


# =============================================================================
# TestMainGroup
# =============================================================================


class TestMainGroup:
    """Tests for the top-level group."""

    def test_help(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "Bedboard" in result.output

    def test_version(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_commands_registered(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--help"])
        for command in ("init", "show", "set", "undo", "revert", "history", "daemon"):
            assert command in result.output

    def test_daemon_subcommands_registered(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["daemon", "--help"])
        assert result.exit_code == 0
        for command in ("run", "start", "stop", "status"):
            assert command in result.output


# =============================================================================
# TestInit
# =============================================================================


class TestInit:
    """Tests for 'bedboard init'."""

    def test_creates_config(self, runner: CliRunner, project: Path) -> None:
        result = runner.invoke(cli, ["init"])

        assert result.exit_code == 0
        assert "[board]" in (project / ".bedboard.toml").read_text()

    def test_refuses_to_overwrite(self, runner: CliRunner, project: Path) -> None:
        (project / ".bedboard.toml").write_text("# mine\n")

        result = runner.invoke(cli, ["init"])

        assert result.exit_code == ExitCode.CONFIG_ERROR
        assert (project / ".bedboard.toml").read_text() == "# mine\n"

    def test_force(self, runner: CliRunner, project: Path) -> None:
        (project / ".bedboard.toml").write_text("# mine\n")
        result = runner.invoke(cli, ["init", "--force"])
        assert result.exit_code == 0


# =============================================================================
# TestBoardCommands
# =============================================================================


class TestParseAssignments:
    """Tests for set argument parsing."""

    def test_pair(self) -> None:
        assert parse_assignments(("3", "occupied")) == {"3": "occupied"}

    def test_key_value(self) -> None:
        assert parse_assignments(("3=occupied", "4=cleaning")) == {"3": "occupied", "4": "cleaning"}

    def test_malformed(self) -> None:
        import click

        with pytest.raises(click.BadParameter):
            parse_assignments(("3", "occupied", "4"))


class TestBoardCommands:
    """Tests for show/set/undo/revert against a mocked daemon."""

    def test_daemon_not_running(self, runner: CliRunner, project: Path) -> None:
        with patch("bedboard.client.BoardClient") as client_cls:
            client_cls.return_value.is_running.return_value = False
            result = runner.invoke(cli, ["undo"])

        assert result.exit_code == ExitCode.DAEMON_UNAVAILABLE

    def test_show(self, runner: CliRunner, project: Path, mock_client: MagicMock) -> None:
        mock_client.state.return_value = {
            "current_state": {"1": "available", "2": "occupied"},
            "history": [],
            "display_time": "2024-01-01 00:00:00",
        }

        result = runner.invoke(cli, ["show"])

        assert result.exit_code == 0
        assert "occupied" in result.output

    def test_set_accepted(self, runner: CliRunner, project: Path, mock_client: MagicMock) -> None:
        mock_client.update.return_value = {
            "request": "update",
            "status": "accepted",
            "entry": {
                "timestamp": 100,
                "snapshot": {"3": "occupied"},
                "display_time": "t",
                "changes": {"3": "occupied"},
            },
            "removed": [],
            "error": None,
            "reason": None,
        }

        result = runner.invoke(cli, ["set", "3", "occupied"])

        assert result.exit_code == 0
        mock_client.update.assert_called_once_with({"3": "occupied"}, mode=None)

    def test_set_rejected(self, runner: CliRunner, project: Path, mock_client: MagicMock) -> None:
        mock_client.update.return_value = {
            "request": "update",
            "status": "rejected",
            "error": {"error": "UnknownBed", "message": "Unknown bed: 99"},
        }

        result = runner.invoke(cli, ["set", "99=occupied", "--replace"])

        assert result.exit_code == ExitCode.REJECTED
        mock_client.update.assert_called_once_with({"99": "occupied"}, mode="replace")

    def test_undo_ignored(self, runner: CliRunner, project: Path, mock_client: MagicMock) -> None:
        mock_client.undo.return_value = {"request": "undo", "status": "ignored", "reason": "nothing to undo"}

        result = runner.invoke(cli, ["undo"])

        assert result.exit_code == 0
        assert "nothing to undo" in result.output

    def test_revert(self, runner: CliRunner, project: Path, mock_client: MagicMock) -> None:
        mock_client.revert.return_value = {"request": "revert", "status": "accepted", "removed": [200, 300]}

        result = runner.invoke(cli, ["revert", "100"])

        assert result.exit_code == 0
        mock_client.revert.assert_called_once_with(100)


# =============================================================================
# TestHistoryCommand
# =============================================================================


class TestHistoryCommand:
    """Tests for 'bedboard history'."""

    def test_from_daemon(self, runner: CliRunner, project: Path, mock_client: MagicMock) -> None:
        mock_client.history.return_value = [
            {"timestamp": 100, "snapshot": {}, "display_time": "t1", "changes": {"1": "occupied"}},
            {"timestamp": 200, "snapshot": {}, "display_time": "t2", "changes": {"2": "cleaning"}},
        ]

        result = runner.invoke(cli, ["history", "--json", "-n", "1"])

        assert result.exit_code == 0
        assert "200" in result.output
        assert '"timestamp": 100' not in result.output

    def test_from_local_database(self, runner: CliRunner, project: Path) -> None:
        """Without a daemon, entries are read from the history database."""
        from bedboard.history.store import HistoryStore

        store = HistoryStore(project / ".bedboard" / "history.duckdb")
        store.append(100, {"1": "occupied"}, {"1": "occupied"})
        store.close()

        with patch("bedboard.client.BoardClient") as client_cls:
            client = client_cls.return_value
            client.__enter__.return_value = client
            client.is_running.return_value = False
            result = runner.invoke(cli, ["history", "--json"])

        assert result.exit_code == 0
        assert '"timestamp": 100' in result.output

    def test_nothing_recorded(self, runner: CliRunner, project: Path) -> None:
        with patch("bedboard.client.BoardClient") as client_cls:
            client = client_cls.return_value
            client.__enter__.return_value = client
            client.is_running.return_value = False
            result = runner.invoke(cli, ["history"])

        assert result.exit_code == 0
        assert "No history" in result.output
