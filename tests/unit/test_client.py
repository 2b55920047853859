"""Tests for the daemon client module."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import httpx
import pytest

from bedboard.client import DEFAULT_DAEMON_URL, BoardClient, DaemonError, is_daemon_running


def make_response(status_code: int, body: object) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = body
    response.text = str(body)
    if status_code >= 400:
        response.raise_for_status.side_effect = httpx.HTTPStatusError(
            "error", request=MagicMock(), response=response
        )
    else:
        response.raise_for_status = MagicMock()
    return response


class TestBoardClient:
    """Tests for BoardClient class."""

    def test_init_default_values(self) -> None:
        """Test client initializes with defaults."""
        client = BoardClient()
        assert client.base_url == DEFAULT_DAEMON_URL == "http://127.0.0.1:9130"
        assert client.timeout == 2.0
        client.close()

    def test_context_manager(self) -> None:
        with BoardClient(base_url="http://custom:9000") as client:
            assert client.base_url == "http://custom:9000"

    @patch.object(httpx.Client, "get")
    def test_is_running_true(self, mock_get: MagicMock) -> None:
        mock_get.return_value = make_response(200, {"status": "running"})

        with BoardClient() as client:
            assert client.is_running() is True
        mock_get.assert_called_with("/status")

    @patch.object(httpx.Client, "get")
    def test_is_running_false_connect_error(self, mock_get: MagicMock) -> None:
        """Connection errors are retried, then reported as not running."""
        mock_get.side_effect = httpx.ConnectError("Connection refused")

        with BoardClient() as client:
            assert client.is_running() is False
        assert mock_get.call_count == 3

    @patch.object(httpx.Client, "get")
    def test_is_running_no_retry(self, mock_get: MagicMock) -> None:
        mock_get.side_effect = httpx.TimeoutException("Timeout")

        with BoardClient() as client:
            assert client.is_running(retry=False) is False
        assert mock_get.call_count == 1

    @patch.object(httpx.Client, "get")
    def test_state(self, mock_get: MagicMock) -> None:
        body = {"current_state": {"1": "available"}, "history": [], "display_time": "t"}
        mock_get.return_value = make_response(200, body)

        with BoardClient() as client:
            assert client.state() == body
        mock_get.assert_called_once_with("/state")

    @patch.object(httpx.Client, "get")
    def test_entry_not_found(self, mock_get: MagicMock) -> None:
        """A missing entry surfaces as DaemonError carrying the status code."""
        mock_get.return_value = make_response(404, {"detail": "nope"})

        with BoardClient() as client, pytest.raises(DaemonError) as exc_info:
            client.entry(123)
        assert exc_info.value.context["status_code"] == 404

    @patch.object(httpx.Client, "get")
    def test_get_connect_error(self, mock_get: MagicMock) -> None:
        mock_get.side_effect = httpx.ConnectError("Connection refused")

        with BoardClient() as client, pytest.raises(DaemonError, match="not available"):
            client.history()

    @patch.object(httpx.Client, "post")
    def test_update_posts_changes(self, mock_post: MagicMock) -> None:
        mock_post.return_value = make_response(200, {"status": "accepted"})

        with BoardClient() as client:
            result = client.update({"3": "occupied"}, mode="replace")

        assert result == {"status": "accepted"}
        args, kwargs = mock_post.call_args
        assert args[0] == "/update"
        assert kwargs["json"] == {"changes": {"3": "occupied"}, "mode": "replace"}

    @patch.object(httpx.Client, "post")
    def test_rejection_is_returned_not_raised(self, mock_post: MagicMock) -> None:
        """Rejected outcomes (404/409/422/503) come back as data."""
        body = {"status": "rejected", "error": {"error": "NotFound"}}
        mock_post.return_value = make_response(404, body)

        with BoardClient() as client:
            assert client.revert(999) == body
        assert mock_post.call_args.kwargs["json"] == {"timestamp": 999}

    @patch.object(httpx.Client, "post")
    def test_unexpected_status_raises(self, mock_post: MagicMock) -> None:
        mock_post.return_value = make_response(500, "Internal Server Error")

        with BoardClient() as client, pytest.raises(DaemonError) as exc_info:
            client.undo()
        assert exc_info.value.context["status_code"] == 500

    @patch.object(httpx.Client, "post")
    def test_post_connect_error(self, mock_post: MagicMock) -> None:
        mock_post.side_effect = httpx.ConnectError("Connection refused")

        with BoardClient() as client, pytest.raises(DaemonError, match="not available"):
            client.undo()


class TestConvenienceFunctions:
    """Tests for module-level helpers."""

    @patch.object(httpx.Client, "get")
    def test_is_daemon_running(self, mock_get: MagicMock) -> None:
        mock_get.return_value = make_response(200, {})
        assert is_daemon_running() is True

    @patch.object(httpx.Client, "get")
    def test_is_daemon_not_running(self, mock_get: MagicMock) -> None:
        mock_get.side_effect = httpx.ConnectError("refused")
        assert is_daemon_running(retry=False) is False
