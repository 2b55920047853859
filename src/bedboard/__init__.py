"""Bedboard - real-time bed occupancy board with history, undo and revert."""

__version__ = "0.1.0"
