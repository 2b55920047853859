"""Bedboard Daemon - Real-time bed board over HTTP/WebSocket.

Provides a long-running daemon that:
- Owns the history log and applies mutations one at a time
- Pushes the full board state to every connected observer after each change
- Serves HTTP endpoints for state, history, update, undo and revert

Example:
    Start the daemon from CLI:

        $ bedboard daemon start .
        Bedboard daemon started on http://127.0.0.1:9130
        PID: 12345

        $ bedboard set 3 occupied
        $ bedboard undo
        $ bedboard daemon stop

API Endpoints:
    GET  /status              - Daemon status and statistics
    GET  /state               - Current board, history and display time
    GET  /history             - Ordered history log
    GET  /history/{timestamp} - One history entry
    POST /update              - Change bed statuses
    POST /undo                - Discard the newest entry
    POST /revert              - Discard every entry newer than a timestamp
    WS   /live                - Board state broadcasts and inbound mutations
"""

from bedboard.daemon.broadcaster import SyncBroadcaster
from bedboard.daemon.config import DaemonConfig
from bedboard.daemon.lifecycle import DaemonLifecycle
from bedboard.daemon.server import AppState, create_app

__all__ = [
    # Configuration
    "DaemonConfig",
    # Lifecycle
    "DaemonLifecycle",
    # Server
    "create_app",
    "AppState",
    # Broadcast
    "SyncBroadcaster",
]
