"""Repository classes: one per database table.

Each repository takes a ``db_path`` in ``__init__`` and uses
:func:`fplsquad.db.connection.connect` for every operation.  Write methods
also accept an open ``conn`` so several repositories can join one
:func:`fplsquad.db.connection.transaction`; in that case the caller owns
the commit.
"""

from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from fplsquad.db.connection import connect
from fplsquad.errors import StateConflictError
from fplsquad.paths import DB_PATH
from fplsquad.schemas.squad import (
    ChipInstance,
    ChipRegistry,
    HistorySnapshot,
    PlayerInLeg,
    PlayerOutLeg,
    Roster,
    RosterPlayer,
    SnapshotType,
    TransferRecord,
)


class _Repository:
    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or DB_PATH

    @contextmanager
    def _use(
        self, conn: sqlite3.Connection | None,
    ) -> Generator[sqlite3.Connection, None, None]:
        """Yield *conn* as-is, or a fresh connection committed on success."""
        if conn is not None:
            yield conn
            return
        with connect(self.db_path) as own:
            yield own
            own.commit()


def _players_json(players: list[RosterPlayer]) -> str:
    return json.dumps([p.model_dump() for p in players])


def _players_from_json(raw: str) -> list[RosterPlayer]:
    return [RosterPlayer.model_validate(p) for p in json.loads(raw)]


# ---------------------------------------------------------------------------
# RosterRepository
# ---------------------------------------------------------------------------

class RosterRepository(_Repository):
    """CRUD for the ``roster`` table."""

    def get(self, participant_id: str, conn: sqlite3.Connection | None = None) -> Roster | None:
        with self._use(conn) as c:
            row = c.execute(
                "SELECT * FROM roster WHERE participant_id=?", (participant_id,),
            ).fetchone()
        if row is None:
            return None
        d = dict(row)
        return Roster(
            participant_id=d["participant_id"],
            gameweek=d["gameweek"],
            players=_players_from_json(d["players_json"]),
            bank=d["bank"],
            squad_value=d["squad_value"],
            free_transfers=d["free_transfers"],
            transfers_made_this_week=d["transfers_made"],
            points_deducted=d["points_deducted"],
            active_chip=d["active_chip"],
            version=d["version"],
        )

    def exists(self, participant_id: str, conn: sqlite3.Connection | None = None) -> bool:
        with self._use(conn) as c:
            row = c.execute(
                "SELECT 1 FROM roster WHERE participant_id=?", (participant_id,),
            ).fetchone()
        return row is not None

    def create(self, roster: Roster, conn: sqlite3.Connection | None = None) -> None:
        with self._use(conn) as c:
            try:
                c.execute(
                    """INSERT INTO roster
                       (participant_id, gameweek, players_json, bank, squad_value,
                        free_transfers, transfers_made, points_deducted, active_chip,
                        version)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, 0)""",
                    (
                        roster.participant_id, roster.gameweek,
                        _players_json(roster.players), roster.bank,
                        roster.squad_value, roster.free_transfers,
                        roster.transfers_made_this_week, roster.points_deducted,
                        roster.active_chip.value if roster.active_chip else None,
                    ),
                )
            except sqlite3.IntegrityError as exc:
                raise StateConflictError(
                    f"Roster already exists for {roster.participant_id}",
                    participant_id=roster.participant_id,
                ) from exc
        roster.version = 0

    def update(self, roster: Roster, conn: sqlite3.Connection | None = None) -> None:
        """Write *roster* if its ``version`` still matches the stored row.

        On success ``roster.version`` is bumped in place.
        """
        with self._use(conn) as c:
            cur = c.execute(
                """UPDATE roster SET
                     gameweek=?, players_json=?, bank=?, squad_value=?,
                     free_transfers=?, transfers_made=?, points_deducted=?,
                     active_chip=?, version=version + 1,
                     updated_at=datetime('now')
                   WHERE participant_id=? AND version=?""",
                (
                    roster.gameweek, _players_json(roster.players), roster.bank,
                    roster.squad_value, roster.free_transfers,
                    roster.transfers_made_this_week, roster.points_deducted,
                    roster.active_chip.value if roster.active_chip else None,
                    roster.participant_id, roster.version,
                ),
            )
            if cur.rowcount == 0:
                raise StateConflictError(
                    "Roster was modified concurrently; reload and retry",
                    participant_id=roster.participant_id,
                    expected_version=roster.version,
                )
        roster.version += 1

    def delete(self, participant_id: str, conn: sqlite3.Connection | None = None) -> bool:
        """Delete the roster; chips, history and transfers cascade."""
        with self._use(conn) as c:
            cur = c.execute(
                "DELETE FROM roster WHERE participant_id=?", (participant_id,),
            )
        return cur.rowcount > 0


# ---------------------------------------------------------------------------
# ChipRepository
# ---------------------------------------------------------------------------

class ChipRepository(_Repository):
    """CRUD for the ``chip_instance`` table."""

    def get_registry(
        self, participant_id: str, conn: sqlite3.Connection | None = None,
    ) -> ChipRegistry | None:
        with self._use(conn) as c:
            rows = c.execute(
                "SELECT * FROM chip_instance WHERE participant_id=? ORDER BY id",
                (participant_id,),
            ).fetchall()
        if not rows:
            return None
        instances = {}
        for row in rows:
            d = dict(row)
            instances[d["instance_id"]] = ChipInstance(
                instance_id=d["instance_id"],
                kind=d["kind"],
                available=bool(d["available"]),
                used_in_gameweek=d["used_in_gameweek"],
                available_from=d["available_from"],
                available_until=d["available_until"],
            )
        return ChipRegistry(participant_id=participant_id, instances=instances)

    def save_registry(
        self, registry: ChipRegistry, conn: sqlite3.Connection | None = None,
    ) -> None:
        with self._use(conn) as c:
            for inst in registry.instances.values():
                c.execute(
                    """INSERT INTO chip_instance
                       (participant_id, instance_id, kind, available,
                        used_in_gameweek, available_from, available_until)
                       VALUES (?, ?, ?, ?, ?, ?, ?)
                       ON CONFLICT(participant_id, instance_id) DO UPDATE SET
                         available=excluded.available,
                         used_in_gameweek=excluded.used_in_gameweek""",
                    (
                        registry.participant_id, inst.instance_id, inst.kind.value,
                        int(inst.available), inst.used_in_gameweek,
                        inst.available_from, inst.available_until,
                    ),
                )


# ---------------------------------------------------------------------------
# HistoryRepository
# ---------------------------------------------------------------------------

class HistoryRepository(_Repository):
    """CRUD for the ``history_snapshot`` table."""

    @staticmethod
    def _from_row(row: sqlite3.Row) -> HistorySnapshot:
        d = dict(row)
        return HistorySnapshot(
            participant_id=d["participant_id"],
            gameweek=d["gameweek"],
            snapshot_type=d["snapshot_type"],
            players=_players_from_json(d["players_json"]),
            bank=d["bank"],
            squad_value=d["squad_value"],
            free_transfers=d["free_transfers"] if d["free_transfers"] is not None else 1,
            transfers_made_this_week=d["transfers_made"] or 0,
            points_deducted=d["points_deducted"] or 0,
            active_chip=d["active_chip"],
            points_scored=d["points_scored"] or 0,
            overall_rank=d["overall_rank"],
            created_at=d["created_at"],
        )

    def save(self, snap: HistorySnapshot, conn: sqlite3.Connection | None = None) -> None:
        """Upsert on (participant, gameweek, snapshot_type).

        Saving a second regular snapshot for the same gameweek replaces the
        first, so the closing snapshot written on rollover supersedes the
        one taken at initialisation or on the previous advance.  Pre-chip
        snapshots live under their own key and are never overwritten by a
        regular save.
        """
        with self._use(conn) as c:
            c.execute(
                """INSERT INTO history_snapshot
                   (participant_id, gameweek, snapshot_type, players_json, bank,
                    squad_value, free_transfers, transfers_made, points_deducted,
                    active_chip, points_scored, overall_rank)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                   ON CONFLICT(participant_id, gameweek, snapshot_type) DO UPDATE SET
                     players_json=excluded.players_json,
                     bank=excluded.bank,
                     squad_value=excluded.squad_value,
                     free_transfers=excluded.free_transfers,
                     transfers_made=excluded.transfers_made,
                     points_deducted=excluded.points_deducted,
                     active_chip=excluded.active_chip,
                     points_scored=excluded.points_scored,
                     overall_rank=COALESCE(excluded.overall_rank, overall_rank),
                     created_at=datetime('now')""",
                (
                    snap.participant_id, snap.gameweek, snap.snapshot_type.value,
                    _players_json(snap.players), snap.bank, snap.squad_value,
                    snap.free_transfers, snap.transfers_made_this_week,
                    snap.points_deducted,
                    snap.active_chip.value if snap.active_chip else None,
                    snap.points_scored, snap.overall_rank,
                ),
            )

    def get(
        self,
        participant_id: str,
        gameweek: int,
        snapshot_type: SnapshotType = SnapshotType.REGULAR,
        conn: sqlite3.Connection | None = None,
    ) -> HistorySnapshot | None:
        with self._use(conn) as c:
            row = c.execute(
                """SELECT * FROM history_snapshot
                   WHERE participant_id=? AND gameweek=? AND snapshot_type=?""",
                (participant_id, gameweek, SnapshotType(snapshot_type).value),
            ).fetchone()
        return self._from_row(row) if row else None

    def list_snapshots(
        self,
        participant_id: str,
        snapshot_type: SnapshotType | None = None,
        max_gameweek: int | None = None,
        descending: bool = False,
        conn: sqlite3.Connection | None = None,
    ) -> list[HistorySnapshot]:
        sql = "SELECT * FROM history_snapshot WHERE participant_id=?"
        params: list = [participant_id]
        if snapshot_type is not None:
            sql += " AND snapshot_type=?"
            params.append(SnapshotType(snapshot_type).value)
        if max_gameweek is not None:
            sql += " AND gameweek<=?"
            params.append(max_gameweek)
        sql += " ORDER BY gameweek DESC, snapshot_type" if descending else " ORDER BY gameweek, snapshot_type"
        with self._use(conn) as c:
            rows = c.execute(sql, params).fetchall()
        return [self._from_row(r) for r in rows]

    def free_hit_gameweeks(
        self, participant_id: str, conn: sqlite3.Connection | None = None,
    ) -> list[int]:
        """Gameweeks in which a Free Hit was in effect, per stored history.

        ``pre_chip`` snapshots are only written on Free Hit activation, and
        closing ``regular`` snapshots carry the chip that was active.
        """
        with self._use(conn) as c:
            rows = c.execute(
                """SELECT DISTINCT gameweek FROM history_snapshot
                   WHERE participant_id=?
                     AND (snapshot_type='pre_chip' OR active_chip='free_hit')
                   ORDER BY gameweek""",
                (participant_id,),
            ).fetchall()
        return [r[0] for r in rows]


# ---------------------------------------------------------------------------
# TransferRepository
# ---------------------------------------------------------------------------

class TransferRepository(_Repository):
    """Append-only access to the ``transfer`` table."""

    @staticmethod
    def _from_row(row: sqlite3.Row) -> TransferRecord:
        d = dict(row)
        return TransferRecord(
            id=d["id"],
            participant_id=d["participant_id"],
            gameweek=d["gameweek"],
            player_in=PlayerInLeg(player_id=d["player_in_id"], price=d["player_in_price"]),
            player_out=PlayerOutLeg(
                player_id=d["player_out_id"],
                purchase_price=d["player_out_purchase_price"],
                selling_price=d["player_out_selling_price"],
            ),
            is_free=bool(d["is_free"]),
            points_cost=d["points_cost"],
            chip_active=d["chip_active"],
            created_at=d["created_at"],
        )

    def append(self, record: TransferRecord, conn: sqlite3.Connection | None = None) -> int:
        with self._use(conn) as c:
            cur = c.execute(
                """INSERT INTO transfer
                   (participant_id, gameweek, player_in_id, player_in_price,
                    player_out_id, player_out_purchase_price,
                    player_out_selling_price, is_free, points_cost, chip_active)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    record.participant_id, record.gameweek,
                    record.player_in.player_id, record.player_in.price,
                    record.player_out.player_id, record.player_out.purchase_price,
                    record.player_out.selling_price, int(record.is_free),
                    record.points_cost,
                    record.chip_active.value if record.chip_active else None,
                ),
            )
            record.id = cur.lastrowid
        return record.id

    def list_transfers(
        self,
        participant_id: str,
        gameweek: int | None = None,
        limit: int | None = None,
        conn: sqlite3.Connection | None = None,
    ) -> list[TransferRecord]:
        """Transfers newest first, optionally for one gameweek."""
        sql = "SELECT * FROM transfer WHERE participant_id=?"
        params: list = [participant_id]
        if gameweek is not None:
            sql += " AND gameweek=?"
            params.append(gameweek)
        sql += " ORDER BY created_at DESC, id DESC"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)
        with self._use(conn) as c:
            rows = c.execute(sql, params).fetchall()
        return [self._from_row(r) for r in rows]
