"""Roster lifecycle: building a roster from feed picks and gameweek rollover.

Both functions are pure; persistence is left to :class:`SquadManager`.
"""

from __future__ import annotations

from pydantic import ValidationError as PydanticValidationError

from fplsquad.errors import ExternalDependencyError, ValidationError
from fplsquad.logging_config import get_logger
from fplsquad.schemas.fpl_rules import (
    CAPTAIN_MULTIPLIER,
    DEFAULT_FREE_TRANSFERS,
    NORMAL_MULTIPLIER,
    SQUAD_REVERTING_CHIPS,
    SQUAD_SIZE,
    TOTAL_GAMEWEEKS,
    TRIPLE_CAPTAIN_MULTIPLIER,
    compute_next_gw_fts,
)
from fplsquad.schemas.player import FeedPlayer
from fplsquad.schemas.requests import _extract_errors
from fplsquad.schemas.squad import HistorySnapshot, Roster, RosterPlayer

logger = get_logger(__name__)

_PICK_KEYS = {"element", "position"}


def build_roster(
    participant_id: str,
    gameweek: int,
    picks: list[dict],
    players: dict[int, FeedPlayer],
    bank: int,
) -> Roster:
    """Build a fresh roster from one gameweek of feed picks.

    Every player is bought at today's price, so ``purchase_price`` equals
    ``current_price``.  Picks use the feed's shape (``element``,
    ``position`` as the slot, captaincy flags and ``multiplier``).
    """
    if len(picks) != SQUAD_SIZE:
        raise ValidationError(
            f"Need {SQUAD_SIZE} picks, got {len(picks)}", picks=len(picks),
        )

    malformed = [
        i for i, p in enumerate(picks)
        if not isinstance(p, dict) or not _PICK_KEYS <= p.keys()
    ]
    if malformed:
        raise ValidationError(
            f"Picks missing {sorted(_PICK_KEYS)}: indexes {malformed}", picks=malformed,
        )

    missing = [p["element"] for p in picks if p["element"] not in players]
    if missing:
        raise ExternalDependencyError(
            f"Players missing from the data feed: {missing}", player_ids=missing,
        )

    try:
        roster_players = []
        for pick in picks:
            price = players[pick["element"]].now_cost
            roster_players.append(RosterPlayer(
                player_id=pick["element"],
                slot=pick["position"],
                purchase_price=price,
                current_price=price,
                is_captain=bool(pick.get("is_captain", False)),
                is_vice_captain=bool(pick.get("is_vice_captain", False)),
                multiplier=pick.get("multiplier", NORMAL_MULTIPLIER),
            ))
        roster = Roster(
            participant_id=participant_id,
            gameweek=gameweek,
            players=roster_players,
            bank=bank,
            free_transfers=DEFAULT_FREE_TRANSFERS,
        )
    except PydanticValidationError as exc:
        errors = _extract_errors(exc)
        raise ValidationError("; ".join(errors), errors=errors) from exc
    roster.recompute_value()
    return roster


def advance(
    roster: Roster,
    new_gameweek: int,
    revert_to: HistorySnapshot | None = None,
) -> Roster:
    """Return *roster* rolled forward to *new_gameweek*.

    When a Free Hit was active and *revert_to* is given, the players, bank
    and squad value come back from that snapshot.  Free transfers accrue
    from this week's count, weekly counters reset and the chip clears.
    """
    if new_gameweek > TOTAL_GAMEWEEKS:
        raise ValidationError(
            f"GW{new_gameweek} is beyond the last gameweek (GW{TOTAL_GAMEWEEKS})",
            gameweek=new_gameweek,
        )
    if new_gameweek <= roster.gameweek:
        raise ValidationError(
            f"Cannot advance from GW{roster.gameweek} to GW{new_gameweek}",
            current_gameweek=roster.gameweek,
            gameweek=new_gameweek,
        )

    nxt = roster.model_copy(deep=True)

    if roster.active_chip in SQUAD_REVERTING_CHIPS and revert_to is not None:
        nxt.players = [p.model_copy() for p in revert_to.players]
        nxt.bank = revert_to.bank
        nxt.squad_value = revert_to.squad_value
        logger.info(
            "Reverted Free Hit squad for %s to GW%d (%s)",
            roster.participant_id, revert_to.gameweek, revert_to.snapshot_type.value,
        )

    nxt.free_transfers = compute_next_gw_fts(
        roster.free_transfers, roster.transfers_made_this_week,
    )
    nxt.gameweek = new_gameweek
    nxt.transfers_made_this_week = 0
    nxt.points_deducted = 0
    nxt.active_chip = None
    for p in nxt.players:
        if p.multiplier == TRIPLE_CAPTAIN_MULTIPLIER:
            p.multiplier = CAPTAIN_MULTIPLIER
    return nxt
