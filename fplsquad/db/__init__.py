"""Database layer: connection, schema, migrations, and repositories."""

from fplsquad.db.connection import connect, get_connection, transaction
from fplsquad.db.migrations import apply_migrations, get_schema_version
from fplsquad.db.repositories import (
    ChipRepository,
    HistoryRepository,
    RosterRepository,
    TransferRepository,
)
from fplsquad.db.schema import SCHEMA_SQL, init_schema

__all__ = [
    "connect",
    "get_connection",
    "transaction",
    "apply_migrations",
    "get_schema_version",
    "init_schema",
    "SCHEMA_SQL",
    "RosterRepository",
    "ChipRepository",
    "HistoryRepository",
    "TransferRepository",
]
