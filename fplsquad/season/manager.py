"""Squad Manager -- orchestrates rosters, chips, history and transfers.

A thin layer around the pure roster, transfer and chip functions: each
mutating call loads state, applies one pure step in memory, then persists
everything in a single ``BEGIN IMMEDIATE`` transaction while holding the
participant's lock.
"""

from __future__ import annotations

from pathlib import Path

import pandas as pd

from fplsquad.config import PricingConfig
from fplsquad.data.fpl_api import FplClient
from fplsquad.db.connection import connect, transaction
from fplsquad.db.migrations import apply_migrations
from fplsquad.db.repositories import (
    ChipRepository,
    HistoryRepository,
    RosterRepository,
    TransferRepository,
)
from fplsquad.errors import ExternalDependencyError, NotFoundError, StateConflictError
from fplsquad.logging_config import get_logger
from fplsquad.paths import DB_PATH
from fplsquad.schemas.fpl_rules import (
    CHIP_DESCRIPTIONS,
    SQUAD_REVERTING_CHIPS,
    ChipType,
    chip_kind,
)
from fplsquad.schemas.player import FeedPlayer, index_elements
from fplsquad.schemas.squad import (
    ChipRegistry,
    HistorySnapshot,
    PurchaseInfo,
    Roster,
    SnapshotType,
    TransferRecord,
)
from fplsquad.season import roster as roster_lifecycle
from fplsquad.season import state_machine
from fplsquad.season.locks import ParticipantLocks
from fplsquad.season.pricing import PriceResolver, roster_valuation
from fplsquad.season.transfers import apply_transfer
from fplsquad.strategy import recommendations

logger = get_logger(__name__)


class SquadManager:
    """Entry point for every roster, transfer and chip operation."""

    def __init__(
        self,
        db_path: Path | None = None,
        client: FplClient | None = None,
        pricing: PricingConfig | None = None,
    ):
        self.db_path = db_path or DB_PATH
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        # Run migrations to ensure schema is current.
        with connect(self.db_path) as conn:
            apply_migrations(conn)

        # Repositories -- one per table.
        self.rosters = RosterRepository(self.db_path)
        self.chips = ChipRepository(self.db_path)
        self.history = HistoryRepository(self.db_path)
        self.transfers = TransferRepository(self.db_path)

        self.client = client or FplClient()
        self.prices = PriceResolver(self.history, self.client, pricing)
        self.locks = ParticipantLocks()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _feed_players(self) -> dict[int, FeedPlayer]:
        return index_elements(self.client.fetch_bootstrap())

    def _require_roster(self, participant_id: str, conn=None) -> Roster:
        roster = self.rosters.get(participant_id, conn=conn)
        if roster is None:
            raise NotFoundError(
                f"No squad found for {participant_id}", participant_id=participant_id,
            )
        return roster

    def _require_registry(self, participant_id: str, conn=None) -> ChipRegistry:
        registry = self.chips.get_registry(participant_id, conn=conn)
        if registry is None:
            raise NotFoundError(
                f"No chip registry for {participant_id}", participant_id=participant_id,
            )
        return registry

    def _last_free_hit_gameweek(
        self, roster: Roster, up_to: int, conn=None,
    ) -> int | None:
        """Most recent gameweek <= *up_to* in which a Free Hit was played."""
        used = set(self.history.free_hit_gameweeks(roster.participant_id, conn=conn))
        if roster.active_chip is ChipType.FREE_HIT:
            used.add(roster.gameweek)
        candidates = [gw for gw in used if gw <= up_to]
        return max(candidates) if candidates else None

    @staticmethod
    def _refresh_prices(roster: Roster, players: dict[int, FeedPlayer]) -> Roster:
        for p in roster.players:
            feed = players.get(p.player_id)
            if feed is not None:
                p.current_price = feed.now_cost
        roster.recompute_value()
        return roster

    # ------------------------------------------------------------------
    # Roster lifecycle
    # ------------------------------------------------------------------

    def initialize_roster(
        self,
        participant_id: str,
        gameweek: int,
        picks: list[dict],
        players: dict[int, FeedPlayer],
        bank: int,
        points_scored: int = 0,
    ) -> Roster:
        """Create the participant's roster, chip registry and first snapshot."""
        roster = roster_lifecycle.build_roster(participant_id, gameweek, picks, players, bank)
        registry = ChipRegistry.fresh(participant_id)
        snapshot = HistorySnapshot.from_roster(roster, points_scored=points_scored)

        with self.locks.hold(participant_id), transaction(self.db_path) as conn:
            if self.rosters.exists(participant_id, conn=conn):
                raise StateConflictError(
                    f"Squad already initialised for {participant_id}",
                    participant_id=participant_id,
                )
            self.rosters.create(roster, conn=conn)
            self.chips.save_registry(registry, conn=conn)
            self.history.save(snapshot, conn=conn)

        logger.info(
            "Initialised squad for %s at GW%d (bank %d, value %d)",
            participant_id, gameweek, roster.bank, roster.squad_value,
        )
        return roster

    def initialize_from_entry(self, participant_id: str, entry_id: int, gameweek: int) -> Roster:
        """Initialise from a feed entry's picks for *gameweek*."""
        if self.rosters.exists(participant_id):
            raise StateConflictError(
                f"Squad already initialised for {participant_id}",
                participant_id=participant_id,
            )
        picks_data = self.client.fetch_manager_picks(entry_id, gameweek)
        entry_history = picks_data.get("entry_history") or {}
        return self.initialize_roster(
            participant_id,
            gameweek,
            picks_data.get("picks", []),
            self._feed_players(),
            bank=int(entry_history.get("bank", 0)),
            points_scored=int(entry_history.get("points", 0)),
        )

    def get_roster(self, participant_id: str) -> Roster:
        return self._require_roster(participant_id)

    def get_roster_view(self, participant_id: str) -> dict:
        """Roster with live prices, selling prices and squad totals.

        When the data feed is down the stored prices are served instead and
        ``prices_live`` is false.
        """
        roster = self._require_roster(participant_id)
        try:
            players = self._feed_players()
        except ExternalDependencyError as exc:
            logger.warning(
                "Serving stored prices for %s, feed unavailable: %s", participant_id, exc,
            )
            players = None
        if players is not None:
            roster = self._refresh_prices(roster, players)
        view = roster.model_dump(mode="json", exclude={"players"})
        view.update(roster_valuation(roster))
        view["prices_live"] = players is not None
        return view

    def advance_gameweek(
        self,
        participant_id: str,
        new_gameweek: int,
        points_scored: int | None = None,
        overall_rank: int | None = None,
    ) -> Roster:
        """Close the live gameweek and move the roster to *new_gameweek*.

        A Free Hit squad is replaced by the squad that closed the previous
        gameweek, or failing that by the pre-chip snapshot.  With neither
        available the Free Hit squad is kept and a warning logged.
        """
        with self.locks.hold(participant_id), transaction(self.db_path) as conn:
            roster = self._require_roster(participant_id, conn=conn)

            if points_scored is None:
                existing = self.history.get(participant_id, roster.gameweek, conn=conn)
                points_scored = existing.points_scored if existing else 0
            closing = HistorySnapshot.from_roster(
                roster, points_scored=points_scored, overall_rank=overall_rank,
            )

            revert_to = None
            if roster.active_chip in SQUAD_REVERTING_CHIPS:
                revert_to = (
                    self.history.get(participant_id, roster.gameweek - 1, conn=conn)
                    or self.history.get(
                        participant_id, roster.gameweek, SnapshotType.PRE_CHIP, conn=conn,
                    )
                )
                if revert_to is None:
                    logger.warning(
                        "No snapshot to revert GW%d Free Hit for %s; keeping squad",
                        roster.gameweek, participant_id,
                    )

            nxt = roster_lifecycle.advance(roster, new_gameweek, revert_to)

            phase = state_machine.detect_phase(roster)
            if state_machine.can_transition(phase, state_machine.ChipPhase.CONSUMED):
                logger.info(
                    "%s consumed in GW%d for %s",
                    roster.active_chip.value, roster.gameweek, participant_id,
                )

            self.rosters.update(nxt, conn=conn)
            self.history.save(closing, conn=conn)

        logger.info(
            "Advanced %s from GW%d to GW%d (FT %d)",
            participant_id, roster.gameweek, new_gameweek, nxt.free_transfers,
        )
        return nxt

    def delete_participant(self, participant_id: str) -> None:
        """Remove the roster with its chips, history and transfers."""
        with self.locks.hold(participant_id), transaction(self.db_path) as conn:
            if not self.rosters.delete(participant_id, conn=conn):
                raise NotFoundError(
                    f"No squad found for {participant_id}", participant_id=participant_id,
                )
        self.locks.forget(participant_id)
        logger.info("Deleted all data for %s", participant_id)

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def get_history_snapshot(
        self,
        participant_id: str,
        gameweek: int,
        snapshot_type: SnapshotType = SnapshotType.REGULAR,
    ) -> HistorySnapshot:
        snap = self.history.get(participant_id, gameweek, snapshot_type)
        if snap is None:
            raise NotFoundError(
                f"No {SnapshotType(snapshot_type).value} snapshot for GW{gameweek}",
                participant_id=participant_id,
                gameweek=gameweek,
            )
        return snap

    def list_history(self, participant_id: str) -> list[HistorySnapshot]:
        self._require_roster(participant_id)
        return self.history.list_snapshots(participant_id)

    # ------------------------------------------------------------------
    # Transfers
    # ------------------------------------------------------------------

    def make_transfer(
        self,
        participant_id: str,
        player_out_id: int,
        player_in_id: int,
        gameweek: int,
    ) -> tuple[Roster, TransferRecord]:
        """Swap one player; the roster and ledger entry are written together."""
        players = self._feed_players()

        with self.locks.hold(participant_id), transaction(self.db_path) as conn:
            roster = self._refresh_prices(
                self._require_roster(participant_id, conn=conn), players,
            )
            new_roster, record = apply_transfer(
                roster, player_out_id, player_in_id, gameweek, players,
            )
            self.rosters.update(new_roster, conn=conn)
            self.transfers.append(record, conn=conn)

        logger.info(
            "Transfer for %s GW%d: %d out (%d) -> %d in (%d), cost %d",
            participant_id, gameweek,
            player_out_id, record.player_out.selling_price,
            player_in_id, record.player_in.price,
            record.points_cost,
        )
        return new_roster, record

    def get_transfer_history(
        self,
        participant_id: str,
        gameweek: int | None = None,
        limit: int | None = None,
    ) -> list[TransferRecord]:
        self._require_roster(participant_id)
        return self.transfers.list_transfers(participant_id, gameweek=gameweek, limit=limit)

    def get_transfer_summary(self, participant_id: str, gameweek: int) -> dict:
        records = self.get_transfer_history(participant_id, gameweek=gameweek)
        free = sum(1 for r in records if r.is_free)
        return {
            "gameweek": gameweek,
            "total_transfers": len(records),
            "free_transfers": free,
            "paid_transfers": len(records) - free,
            "total_points_cost": sum(r.points_cost for r in records),
            "transfers": records,
        }

    # ------------------------------------------------------------------
    # Chips
    # ------------------------------------------------------------------

    def get_chip_registry(self, participant_id: str) -> ChipRegistry:
        return self._require_registry(participant_id)

    def list_available_chips(self, participant_id: str, gameweek: int) -> list[dict]:
        roster = self._require_roster(participant_id)
        registry = self._require_registry(participant_id)
        last_fh = self._last_free_hit_gameweek(roster, up_to=gameweek)
        result = []
        for instance_id in registry.list_available(gameweek, last_fh):
            inst = registry.instances[instance_id]
            name, description = CHIP_DESCRIPTIONS[inst.kind]
            result.append({
                "id": instance_id,
                "kind": inst.kind.value,
                "name": name,
                "description": description,
                "available_from": inst.available_from,
                "available_until": inst.available_until,
            })
        return result

    def activate_chip(
        self, participant_id: str, chip: str, gameweek: int,
    ) -> state_machine.ChipActivation:
        with self.locks.hold(participant_id), transaction(self.db_path) as conn:
            roster = self._require_roster(participant_id, conn=conn)
            registry = self._require_registry(participant_id, conn=conn)
            last_fh = self._last_free_hit_gameweek(roster, up_to=gameweek, conn=conn)

            activation = state_machine.activate_chip(roster, registry, chip, gameweek, last_fh)

            if activation.pre_chip is not None:
                self.history.save(activation.pre_chip, conn=conn)
            self.chips.save_registry(activation.registry, conn=conn)
            self.rosters.update(activation.roster, conn=conn)

        logger.info(
            "Activated %s for %s in GW%d", activation.instance_id, participant_id, gameweek,
        )
        return activation

    def cancel_chip(self, participant_id: str) -> tuple[Roster, str]:
        """Withdraw the active chip; returns the roster and restored instance id."""
        with self.locks.hold(participant_id), transaction(self.db_path) as conn:
            roster = self._require_roster(participant_id, conn=conn)
            registry = self._require_registry(participant_id, conn=conn)
            new_roster, new_registry, restored = state_machine.cancel_chip(roster, registry)
            self.chips.save_registry(new_registry, conn=conn)
            self.rosters.update(new_roster, conn=conn)

        logger.info(
            "Cancelled %s for %s in GW%d",
            chip_kind(restored.instance_id).value, participant_id, roster.gameweek,
        )
        return new_roster, restored.instance_id

    # ------------------------------------------------------------------
    # Prices and recommendations
    # ------------------------------------------------------------------

    def resolve_purchase_price(
        self,
        participant_id: str,
        player_id: int,
        gameweek: int,
        entry_id: int | None = None,
    ) -> PurchaseInfo:
        info = self.prices.resolve_purchase_price(participant_id, player_id, gameweek, entry_id)
        if info is None:
            raise NotFoundError(
                f"No purchase record for player {player_id} up to GW{gameweek}",
                participant_id=participant_id,
                player_id=player_id,
                gameweek=gameweek,
            )
        return info

    def recommend_transfers(
        self,
        participant_id: str,
        gameweeks_ahead: int = 1,
        predictions: pd.DataFrame | None = None,
    ) -> list[dict]:
        """Transfer suggestions for the roster's live gameweek onwards.

        Without *predictions* every player is forecast at the feed's
        ``ep_next`` for each gameweek of the window.
        """
        roster = self._require_roster(participant_id)
        pool = recommendations.pool_frame(self._feed_players())
        if predictions is None:
            predictions = recommendations.flat_forecast(pool, roster.gameweek, gameweeks_ahead)
        return recommendations.recommend_transfers(
            roster.player_ids, pool, predictions, roster.gameweek, gameweeks_ahead,
        )
