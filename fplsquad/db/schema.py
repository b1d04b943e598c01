"""Database schema: all CREATE TABLE statements.

Prices are stored as integers in 0.1m units; player lists are stored as
JSON arrays of roster-player objects.
"""

from __future__ import annotations

import sqlite3

SCHEMA_SQL = """\
CREATE TABLE IF NOT EXISTS roster (
    participant_id TEXT PRIMARY KEY,
    gameweek INTEGER NOT NULL,
    players_json TEXT NOT NULL,
    bank INTEGER NOT NULL DEFAULT 0,
    squad_value INTEGER NOT NULL,
    free_transfers INTEGER NOT NULL DEFAULT 1 CHECK (free_transfers BETWEEN 0 AND 2),
    transfers_made INTEGER NOT NULL DEFAULT 0 CHECK (transfers_made >= 0),
    points_deducted INTEGER NOT NULL DEFAULT 0 CHECK (points_deducted >= 0),
    active_chip TEXT,
    version INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS chip_instance (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    participant_id TEXT NOT NULL REFERENCES roster(participant_id) ON DELETE CASCADE,
    instance_id TEXT NOT NULL,
    kind TEXT NOT NULL,
    available INTEGER NOT NULL DEFAULT 1,
    used_in_gameweek INTEGER,
    available_from INTEGER NOT NULL,
    available_until INTEGER NOT NULL,
    UNIQUE(participant_id, instance_id)
);

CREATE TABLE IF NOT EXISTS history_snapshot (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    participant_id TEXT NOT NULL REFERENCES roster(participant_id) ON DELETE CASCADE,
    gameweek INTEGER NOT NULL,
    snapshot_type TEXT NOT NULL DEFAULT 'regular',
    players_json TEXT NOT NULL,
    bank INTEGER NOT NULL DEFAULT 0,
    squad_value INTEGER NOT NULL,
    free_transfers INTEGER,
    transfers_made INTEGER DEFAULT 0,
    points_deducted INTEGER DEFAULT 0,
    active_chip TEXT,
    points_scored INTEGER DEFAULT 0,
    overall_rank INTEGER,
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    UNIQUE(participant_id, gameweek, snapshot_type)
);

CREATE TABLE IF NOT EXISTS transfer (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    participant_id TEXT NOT NULL REFERENCES roster(participant_id) ON DELETE CASCADE,
    gameweek INTEGER NOT NULL,
    player_in_id INTEGER NOT NULL,
    player_in_price INTEGER NOT NULL,
    player_out_id INTEGER NOT NULL,
    player_out_purchase_price INTEGER NOT NULL,
    player_out_selling_price INTEGER NOT NULL,
    is_free INTEGER NOT NULL DEFAULT 0,
    points_cost INTEGER NOT NULL DEFAULT 0,
    chip_active TEXT,
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE INDEX IF NOT EXISTS idx_transfer_participant_gw
    ON transfer(participant_id, gameweek);
"""


def init_schema(conn: sqlite3.Connection) -> None:
    """Execute the full schema DDL on *conn*."""
    conn.executescript(SCHEMA_SQL)
