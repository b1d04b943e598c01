"""Purchase-price resolution and roster valuation.

Purchase prices come from the participant's own ``regular`` history when
there is any; otherwise they are reconstructed from the entry's picks
history on the public feed, one gameweek at a time.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

from fplsquad.config import PricingConfig, pricing_cfg
from fplsquad.data.fpl_api import FplClient
from fplsquad.db.repositories import HistoryRepository
from fplsquad.errors import ExternalDependencyError
from fplsquad.logging_config import get_logger
from fplsquad.schemas.fpl_rules import weekly_transfer_cost
from fplsquad.schemas.squad import HistorySnapshot, PurchaseInfo, Roster, SnapshotType

logger = get_logger(__name__)


def latest_ownership_start(
    snapshots: list[HistorySnapshot], player_id: int,
) -> HistorySnapshot | None:
    """Return the snapshot that opens the player's latest ownership interval.

    *snapshots* must be ordered newest first.  The first snapshot holding
    the player opens the interval; it extends back while the player stays
    present.
    """
    start = None
    for snap in snapshots:
        if snap.find_player(player_id) is not None:
            start = snap
        elif start is not None:
            break
    return start


def roster_valuation(roster: Roster) -> dict:
    """Selling price and profit per player plus squad totals."""
    players = []
    for p in sorted(roster.players, key=lambda p: p.slot):
        row = p.model_dump()
        row["is_starter"] = p.is_starter
        row["selling_price"] = p.selling_price
        row["profit"] = p.current_price - p.purchase_price
        players.append(row)
    return {
        "players": players,
        "total_selling_value": sum(p.selling_price for p in roster.players) + roster.bank,
        "total_current_value": sum(p.current_price for p in roster.players) + roster.bank,
        "transfer_cost": weekly_transfer_cost(
            roster.transfers_made_this_week,
            roster.free_transfers,
            roster.active_chip,
        ),
    }


class PriceResolver:
    """Resolve when, and at what price, a participant acquired a player."""

    def __init__(
        self,
        history: HistoryRepository,
        client: FplClient,
        cfg: PricingConfig | None = None,
    ):
        self.history = history
        self.client = client
        self.cfg = cfg or pricing_cfg

    def resolve_purchase_price(
        self,
        participant_id: str,
        player_id: int,
        as_of_gameweek: int,
        entry_id: int | None = None,
    ) -> PurchaseInfo | None:
        snapshots = self.history.list_snapshots(
            participant_id,
            snapshot_type=SnapshotType.REGULAR,
            max_gameweek=as_of_gameweek,
            descending=True,
        )
        if snapshots:
            start = latest_ownership_start(snapshots, player_id)
            if start is None:
                return None
            player = start.find_player(player_id)
            return PurchaseInfo(
                player_id=player_id,
                purchase_price=player.purchase_price,
                gameweek_added=start.gameweek,
            )

        if entry_id is None:
            return None
        logger.info(
            "No history for %s; reconstructing purchase price of %d from entry %d",
            participant_id, player_id, entry_id,
        )
        return self.reconstruct_purchase_prices(
            entry_id, as_of_gameweek, player_ids=[player_id],
        ).get(player_id)

    # ------------------------------------------------------------------
    # Fallback reconstruction from the feed
    # ------------------------------------------------------------------

    def _fetch_picks_history(
        self, entry_id: int, current_gameweek: int,
    ) -> tuple[dict[int, set[int]], set[int], set[int]]:
        """Picks membership per gameweek, the gameweeks that failed, and the
        gameweeks the feed reports as not found (before the entry joined).
        """
        picks_by_gw: dict[int, set[int]] = {}
        gaps: set[int] = set()
        absent: set[int] = set()

        def _fetch_one(gw: int) -> tuple[int, set[int] | None, bool]:
            try:
                data = self.client.fetch_manager_picks(entry_id, gw)
            except ExternalDependencyError as exc:
                if exc.details.get("status_code") == 404:
                    logger.debug("No GW%d picks for entry %d", gw, entry_id)
                    return gw, None, True
                logger.warning("Picks fetch failed for entry %d GW%d: %s", entry_id, gw, exc)
                return gw, None, False
            return gw, {p["element"] for p in data.get("picks", [])}, False

        gameweeks = list(range(1, current_gameweek + 1))
        batch_size = max(1, self.cfg.batch_size)
        with ThreadPoolExecutor(max_workers=self.cfg.max_workers) as pool:
            for i in range(0, len(gameweeks), batch_size):
                batch = gameweeks[i:i + batch_size]
                for gw, members, not_found in pool.map(_fetch_one, batch):
                    if not_found:
                        absent.add(gw)
                    elif members is None:
                        gaps.add(gw)
                    else:
                        picks_by_gw[gw] = members
        return picks_by_gw, gaps, absent

    def reconstruct_purchase_prices(
        self,
        entry_id: int,
        current_gameweek: int,
        player_ids: list[int] | None = None,
    ) -> dict[int, PurchaseInfo | None]:
        """Rebuild purchase prices for *player_ids* from the picks history.

        When *player_ids* is ``None`` the entry's current picks are used.
        The walk back stops at a gameweek the feed reports as not found,
        since the entry did not exist yet. A player whose walk runs into a
        gameweek that failed any other way, or whose price history lacks
        the acquisition round, maps to ``None``.
        """
        picks_by_gw, gaps, absent = self._fetch_picks_history(entry_id, current_gameweek)
        if gaps:
            logger.warning(
                "Picks history for entry %d has %d gap(s): %s",
                entry_id, len(gaps), sorted(gaps),
            )

        if player_ids is None:
            if current_gameweek not in picks_by_gw:
                raise ExternalDependencyError(
                    f"Could not fetch GW{current_gameweek} picks for entry {entry_id}",
                    entry_id=entry_id,
                    gameweek=current_gameweek,
                )
            player_ids = sorted(picks_by_gw[current_gameweek])

        starts: dict[int, int | None] = {}
        for pid in player_ids:
            start = None
            for gw in range(current_gameweek, 0, -1):
                if gw in absent:
                    break
                if gw in gaps:
                    start = None
                    break
                if pid in picks_by_gw[gw]:
                    start = gw
                elif start is not None:
                    break
            starts[pid] = start

        to_price = [pid for pid, gw in starts.items() if gw is not None]
        summaries = self.client.fetch_all_element_summaries(
            to_price, max_workers=self.cfg.max_workers,
        )

        results: dict[int, PurchaseInfo | None] = {}
        for pid, start in starts.items():
            results[pid] = None
            if start is None:
                continue
            for entry in summaries.get(pid, {}).get("history", []):
                if entry.get("round") == start and entry.get("value") is not None:
                    results[pid] = PurchaseInfo(
                        player_id=pid,
                        purchase_price=int(entry["value"]),
                        gameweek_added=start,
                    )
                    break

        resolved = sum(1 for info in results.values() if info is not None)
        logger.info(
            "Reconstructed %d / %d purchase prices for entry %d",
            resolved, len(results), entry_id,
        )
        return results
