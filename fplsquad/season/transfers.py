"""Transfer engine: validate and apply one player swap.

:func:`apply_transfer` is pure: it returns the updated roster and the
ledger record, leaving the caller to persist both in one transaction.
"""

from __future__ import annotations

from fplsquad.errors import (
    ExternalDependencyError,
    InsufficientFundsError,
    NotFoundError,
    PositionMismatchError,
    StateConflictError,
)
from fplsquad.schemas.fpl_rules import transfer_points_cost
from fplsquad.schemas.player import FeedPlayer
from fplsquad.schemas.squad import (
    PlayerInLeg,
    PlayerOutLeg,
    Roster,
    RosterPlayer,
    TransferRecord,
)


def apply_transfer(
    roster: Roster,
    player_out_id: int,
    player_in_id: int,
    gameweek: int,
    players: dict[int, FeedPlayer],
) -> tuple[Roster, TransferRecord]:
    """Swap *player_out_id* for *player_in_id* in *roster*.

    The incoming player takes the outgoing player's slot, captaincy flags
    and multiplier, and is bought at the feed's current price.
    """
    if roster.gameweek != gameweek:
        raise StateConflictError(
            f"Transfers can only be made for the live gameweek (GW{roster.gameweek})",
            current_gameweek=roster.gameweek,
            gameweek=gameweek,
        )
    out = roster.find_player(player_out_id)
    if out is None:
        raise NotFoundError(
            f"Player {player_out_id} is not in the squad", player_id=player_out_id,
        )
    if player_in_id == player_out_id or player_in_id in roster.player_ids:
        raise StateConflictError(
            f"Player {player_in_id} is already in the squad", player_id=player_in_id,
        )

    missing = [pid for pid in (player_out_id, player_in_id) if pid not in players]
    if missing:
        raise ExternalDependencyError(
            f"Players missing from the data feed: {missing}", player_ids=missing,
        )
    feed_out = players[player_out_id]
    feed_in = players[player_in_id]

    if feed_out.position != feed_in.position:
        raise PositionMismatchError(
            f"Position mismatch: {feed_out.position} out, {feed_in.position} in",
            player_out_position=feed_out.position,
            player_in_position=feed_in.position,
        )

    sell = out.selling_price
    new_bank = roster.bank + sell - feed_in.now_cost
    if new_bank < 0:
        raise InsufficientFundsError(
            "Insufficient funds for this transfer",
            bank=roster.bank,
            selling_price=sell,
            player_in_cost=feed_in.now_cost,
            shortfall=-new_bank,
        )

    cost = transfer_points_cost(
        roster.transfers_made_this_week, roster.free_transfers, roster.active_chip,
    )

    new_roster = roster.model_copy(deep=True)
    new_roster.players = [
        RosterPlayer(
            player_id=player_in_id,
            slot=p.slot,
            purchase_price=feed_in.now_cost,
            current_price=feed_in.now_cost,
            is_captain=p.is_captain,
            is_vice_captain=p.is_vice_captain,
            multiplier=p.multiplier,
        ) if p.player_id == player_out_id else p
        for p in new_roster.players
    ]
    new_roster.bank = new_bank
    new_roster.transfers_made_this_week += 1
    new_roster.points_deducted += cost
    new_roster.recompute_value()

    record = TransferRecord(
        participant_id=roster.participant_id,
        gameweek=gameweek,
        player_in=PlayerInLeg(player_id=player_in_id, price=feed_in.now_cost),
        player_out=PlayerOutLeg(
            player_id=player_out_id,
            purchase_price=out.purchase_price,
            selling_price=sell,
        ),
        is_free=cost == 0,
        points_cost=cost,
        chip_active=roster.active_chip,
    )
    return new_roster, record
