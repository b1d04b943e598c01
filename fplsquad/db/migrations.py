"""Numbered schema migrations tracked in a one-row ``schema_version`` table.

``apply_migrations`` runs on every :class:`SquadManager` start and on any
connection that finds the ``roster`` table missing.
"""

from __future__ import annotations

import sqlite3
from typing import Callable

from fplsquad.db.schema import init_schema
from fplsquad.logging_config import get_logger

logger = get_logger(__name__)

_VERSION_DDL = """\
CREATE TABLE IF NOT EXISTS schema_version (
    id INTEGER PRIMARY KEY CHECK (id = 1),
    version INTEGER NOT NULL DEFAULT 0
);
INSERT OR IGNORE INTO schema_version (id, version) VALUES (1, 0);
"""


def get_schema_version(conn: sqlite3.Connection) -> int:
    """Stored schema version; 0 for a database nothing has touched yet."""
    conn.executescript(_VERSION_DDL)
    return conn.execute("SELECT version FROM schema_version WHERE id = 1").fetchone()[0]


# ── Migrations ─────────────────────────────────────────────────────────

def _migration_001_initial_schema(conn: sqlite3.Connection) -> None:
    """Create roster, chip_instance, history_snapshot and transfer tables."""
    init_schema(conn)


def _migration_002_history_lookup_index(conn: sqlite3.Connection) -> None:
    """Index history snapshots by chip for last-Free-Hit lookups."""
    conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_history_chip "
        "ON history_snapshot(participant_id, active_chip, gameweek)"
    )


# Migration N moves the database from version N-1 to N.
_MIGRATIONS: dict[int, Callable[[sqlite3.Connection], None]] = {
    1: _migration_001_initial_schema,
    2: _migration_002_history_lookup_index,
}

LATEST_VERSION: int = max(_MIGRATIONS)


def apply_migrations(conn: sqlite3.Connection) -> None:
    """Run every migration newer than the stored version, in order."""
    current = get_schema_version(conn)
    if current >= LATEST_VERSION:
        return

    for version in range(current + 1, LATEST_VERSION + 1):
        migrate = _MIGRATIONS[version]
        logger.info("Applying migration %d: %s", version, migrate.__doc__.strip())
        migrate(conn)
        conn.execute("UPDATE schema_version SET version = ? WHERE id = 1", (version,))
        conn.commit()

    logger.info("Database schema is now at version %d", LATEST_VERSION)
