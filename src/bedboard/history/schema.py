"""Bedboard history database schema definitions.

Defines the DuckDB schema for the durable history log.
"""

from __future__ import annotations

# Bump when the tables below change incompatibly
SCHEMA_VERSION = "1.0.0"

HISTORY_SCHEMA_SQL = """
-- History entries: one row per point-in-time board state
CREATE TABLE IF NOT EXISTS history_entries (
    timestamp BIGINT PRIMARY KEY,
    snapshot JSON NOT NULL,
    changes JSON,
    recorded_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

-- Metadata table: schema version, creation time
CREATE TABLE IF NOT EXISTS metadata (
    key VARCHAR PRIMARY KEY,
    value VARCHAR
);
"""


__all__ = ["SCHEMA_VERSION", "HISTORY_SCHEMA_SQL"]
