"""Tests for the SQLite layer: migrations, repositories and transactions."""

import sqlite3

import pytest

from fplsquad.db import (
    ChipRepository,
    HistoryRepository,
    RosterRepository,
    TransferRepository,
    connect,
    transaction,
)
from fplsquad.db.migrations import LATEST_VERSION, apply_migrations, get_schema_version
from fplsquad.errors import StateConflictError
from fplsquad.schemas.fpl_rules import ChipType
from fplsquad.schemas.squad import (
    ChipRegistry,
    HistorySnapshot,
    PlayerInLeg,
    PlayerOutLeg,
    SnapshotType,
    TransferRecord,
)
from fplsquad.season.roster import build_roster

from tests.conftest import BANK, SQUAD_IDS, make_picks


@pytest.fixture
def roster(feed_players):
    return build_roster("alice", 5, make_picks(SQUAD_IDS), feed_players, BANK)


@pytest.fixture
def stored(tmp_db, roster):
    RosterRepository(tmp_db).create(roster)
    return roster


def _record(gameweek, in_id=25, out_id=24):
    return TransferRecord(
        participant_id="alice",
        gameweek=gameweek,
        player_in=PlayerInLeg(player_id=in_id, price=60),
        player_out=PlayerOutLeg(player_id=out_id, purchase_price=55, selling_price=55),
        is_free=True,
    )


# ---------------------------------------------------------------------------
# Migrations
# ---------------------------------------------------------------------------

class TestMigrations:
    def test_fresh_database_at_latest_version(self, tmp_db):
        with connect(tmp_db) as conn:
            assert get_schema_version(conn) == LATEST_VERSION
            tables = {
                r[0] for r in conn.execute(
                    "SELECT name FROM sqlite_master WHERE type='table'"
                ).fetchall()
            }
        assert {"roster", "chip_instance", "history_snapshot", "transfer"} <= tables

    def test_idempotent(self, tmp_db):
        with connect(tmp_db) as conn:
            apply_migrations(conn)
            apply_migrations(conn)
            assert get_schema_version(conn) == LATEST_VERSION

    def test_free_transfer_bounds_enforced(self, tmp_db, stored):
        with connect(tmp_db) as conn:
            with pytest.raises(sqlite3.IntegrityError):
                conn.execute("UPDATE roster SET free_transfers = 3")


# ---------------------------------------------------------------------------
# Roster
# ---------------------------------------------------------------------------

class TestRosterRepository:
    def test_round_trip(self, tmp_db, stored):
        loaded = RosterRepository(tmp_db).get("alice")
        assert loaded.player_ids == stored.player_ids
        assert loaded.bank == BANK
        assert loaded.version == 0

    def test_create_twice_conflicts(self, tmp_db, stored):
        with pytest.raises(StateConflictError):
            RosterRepository(tmp_db).create(stored)

    def test_update_bumps_version(self, tmp_db, stored):
        repo = RosterRepository(tmp_db)
        roster = repo.get("alice")
        roster.bank = 10
        repo.update(roster)
        assert roster.version == 1
        assert repo.get("alice").version == 1
        assert repo.get("alice").bank == 10

    def test_stale_version_rejected(self, tmp_db, stored):
        repo = RosterRepository(tmp_db)
        first, second = repo.get("alice"), repo.get("alice")
        first.bank = 10
        repo.update(first)
        second.bank = 20
        with pytest.raises(StateConflictError):
            repo.update(second)
        assert repo.get("alice").bank == 10

    def test_active_chip_persisted(self, tmp_db, stored):
        repo = RosterRepository(tmp_db)
        roster = repo.get("alice")
        roster.active_chip = ChipType.BENCH_BOOST
        repo.update(roster)
        assert repo.get("alice").active_chip is ChipType.BENCH_BOOST

    def test_delete_cascades(self, tmp_db, stored):
        ChipRepository(tmp_db).save_registry(ChipRegistry.fresh("alice"))
        HistoryRepository(tmp_db).save(HistorySnapshot.from_roster(stored))
        TransferRepository(tmp_db).append(_record(5))

        assert RosterRepository(tmp_db).delete("alice") is True
        assert RosterRepository(tmp_db).delete("alice") is False
        assert ChipRepository(tmp_db).get_registry("alice") is None
        assert HistoryRepository(tmp_db).list_snapshots("alice") == []
        assert TransferRepository(tmp_db).list_transfers("alice") == []


# ---------------------------------------------------------------------------
# Chips / history / transfers
# ---------------------------------------------------------------------------

class TestChipRepository:
    def test_missing_registry(self, tmp_db):
        assert ChipRepository(tmp_db).get_registry("alice") is None

    def test_save_upserts(self, tmp_db, stored):
        repo = ChipRepository(tmp_db)
        registry = ChipRegistry.fresh("alice")
        repo.save_registry(registry)
        registry.consume("wildcard_1", 5)
        repo.save_registry(registry)

        loaded = repo.get_registry("alice")
        assert len(loaded.instances) == 8
        assert loaded.instances["wildcard_1"].used_in_gameweek == 5
        assert loaded.instances["wildcard_2"].available is True


class TestHistoryRepository:
    def test_save_replaces_same_key(self, tmp_db, stored):
        repo = HistoryRepository(tmp_db)
        repo.save(HistorySnapshot.from_roster(stored, points_scored=10))
        repo.save(HistorySnapshot.from_roster(stored, points_scored=70))
        snaps = repo.list_snapshots("alice")
        assert len(snaps) == 1
        assert snaps[0].points_scored == 70

    def test_regular_and_pre_chip_coexist(self, tmp_db, stored):
        repo = HistoryRepository(tmp_db)
        repo.save(HistorySnapshot.from_roster(stored))
        repo.save(HistorySnapshot.from_roster(stored, snapshot_type=SnapshotType.PRE_CHIP))
        assert repo.get("alice", 5) is not None
        assert repo.get("alice", 5, SnapshotType.PRE_CHIP) is not None
        assert len(repo.list_snapshots("alice", snapshot_type=SnapshotType.REGULAR)) == 1

    def test_regular_save_leaves_pre_chip(self, tmp_db, stored):
        repo = HistoryRepository(tmp_db)
        repo.save(HistorySnapshot.from_roster(
            stored, points_scored=5, snapshot_type=SnapshotType.PRE_CHIP,
        ))
        repo.save(HistorySnapshot.from_roster(stored, points_scored=10))
        repo.save(HistorySnapshot.from_roster(stored, points_scored=70))
        assert repo.get("alice", 5).points_scored == 70
        assert repo.get("alice", 5, SnapshotType.PRE_CHIP).points_scored == 5

    def test_listing_filters(self, tmp_db, stored):
        repo = HistoryRepository(tmp_db)
        for gw in (3, 4, 5, 6):
            snap = HistorySnapshot.from_roster(stored)
            snap.gameweek = gw
            repo.save(snap)
        desc = repo.list_snapshots("alice", max_gameweek=5, descending=True)
        assert [s.gameweek for s in desc] == [5, 4, 3]

    def test_free_hit_gameweeks(self, tmp_db, stored):
        repo = HistoryRepository(tmp_db)
        pre = HistorySnapshot.from_roster(stored, snapshot_type=SnapshotType.PRE_CHIP)
        pre.gameweek = 3
        repo.save(pre)
        closing = HistorySnapshot.from_roster(stored)
        closing.gameweek = 7
        closing.active_chip = ChipType.FREE_HIT
        repo.save(closing)
        repo.save(HistorySnapshot.from_roster(stored))
        assert repo.free_hit_gameweeks("alice") == [3, 7]


class TestTransferRepository:
    def test_append_assigns_id(self, tmp_db, stored):
        record = _record(5)
        TransferRepository(tmp_db).append(record)
        assert record.id is not None

    def test_newest_first_with_filters(self, tmp_db, stored):
        repo = TransferRepository(tmp_db)
        repo.append(_record(5, in_id=25))
        repo.append(_record(5, in_id=28, out_id=23))
        repo.append(_record(6, in_id=29, out_id=22))

        assert [r.player_in.player_id for r in repo.list_transfers("alice")] == [29, 28, 25]
        assert [r.player_in.player_id for r in repo.list_transfers("alice", gameweek=5)] == [28, 25]
        assert len(repo.list_transfers("alice", limit=2)) == 2


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------

class TestTransaction:
    def test_commits_all_writes(self, tmp_db, roster):
        with transaction(tmp_db) as conn:
            RosterRepository(tmp_db).create(roster, conn=conn)
            ChipRepository(tmp_db).save_registry(ChipRegistry.fresh("alice"), conn=conn)
        assert RosterRepository(tmp_db).exists("alice")
        assert ChipRepository(tmp_db).get_registry("alice") is not None

    def test_rolls_back_on_error(self, tmp_db, roster):
        with pytest.raises(RuntimeError):
            with transaction(tmp_db) as conn:
                RosterRepository(tmp_db).create(roster, conn=conn)
                raise RuntimeError("boom")
        assert RosterRepository(tmp_db).exists("alice") is False
