"""Chip activation state machine.

Phases per participant-gameweek:
    IDLE → ACTIVATED → CONSUMED   (gameweek rolls over with the chip played)
                     → CANCELLED → IDLE
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from fplsquad.errors import StateConflictError
from fplsquad.logging_config import get_logger
from fplsquad.schemas.fpl_rules import (
    CANCELLABLE_CHIPS,
    CAPTAIN_MULTIPLIER,
    FREE_HIT_MIN_GAP,
    TRIPLE_CAPTAIN_MULTIPLIER,
    UNLIMITED_TRANSFER_CHIPS,
    ChipType,
    chip_kind,
)
from fplsquad.schemas.squad import (
    ChipInstance,
    ChipRegistry,
    HistorySnapshot,
    Roster,
    SnapshotType,
)

logger = get_logger(__name__)


class ChipPhase(str, Enum):
    IDLE = "idle"
    ACTIVATED = "activated"
    CONSUMED = "consumed"
    CANCELLED = "cancelled"


# Valid (from -> {to, ...}) transitions.
_TRANSITIONS: dict[ChipPhase, set[ChipPhase]] = {
    ChipPhase.IDLE: {ChipPhase.ACTIVATED},
    ChipPhase.ACTIVATED: {ChipPhase.CONSUMED, ChipPhase.CANCELLED},
    ChipPhase.CONSUMED: set(),
    ChipPhase.CANCELLED: {ChipPhase.IDLE},
}


def can_transition(from_phase: ChipPhase, to_phase: ChipPhase) -> bool:
    """Return True if *from_phase* → *to_phase* is a valid transition."""
    return to_phase in _TRANSITIONS.get(from_phase, set())


def detect_phase(roster: Roster) -> ChipPhase:
    """Phase of the roster's live gameweek: ACTIVATED while a chip is set."""
    return ChipPhase.ACTIVATED if roster.active_chip is not None else ChipPhase.IDLE


@dataclass
class ChipActivation:
    """Result of a successful activation, ready to be persisted."""

    roster: Roster
    registry: ChipRegistry
    instance_id: str
    pre_chip: HistorySnapshot | None = None


def activate_chip(
    roster: Roster,
    registry: ChipRegistry,
    chip: str,
    gameweek: int,
    last_free_hit_gameweek: int | None = None,
) -> ChipActivation:
    """Validate and apply a chip activation on copies of *roster* and *registry*.

    *chip* is an instance id (``"free_hit_2"``) or a bare kind
    (``"free_hit"``).  Raises :class:`StateConflictError` without touching
    the inputs when any rule is violated.
    """
    if roster.gameweek != gameweek:
        raise StateConflictError(
            f"Chips can only be played in the live gameweek (GW{roster.gameweek})",
            current_gameweek=roster.gameweek,
            gameweek=gameweek,
        )

    phase = detect_phase(roster)
    if not can_transition(phase, ChipPhase.ACTIVATED):
        raise StateConflictError(
            f"A chip is already active this gameweek: {roster.active_chip.value}",
            active_chip=roster.active_chip.value,
        )

    instance_id = registry.resolve_instance(chip, gameweek)
    if instance_id is None:
        raise StateConflictError(
            f"No {chip} chip can be played in GW{gameweek}", chip=chip, gameweek=gameweek,
        )
    kind = chip_kind(instance_id)

    pre_chip = None
    if kind is ChipType.FREE_HIT:
        if (
            last_free_hit_gameweek is not None
            and gameweek - last_free_hit_gameweek < FREE_HIT_MIN_GAP
        ):
            raise StateConflictError(
                "Free Hit cannot be played in consecutive gameweeks",
                last_used=last_free_hit_gameweek,
                gameweek=gameweek,
            )
        pre_chip = HistorySnapshot.from_roster(roster, SnapshotType.PRE_CHIP)

    new_registry = registry.model_copy(deep=True)
    if not new_registry.consume(instance_id, gameweek):
        inst = registry.instances[instance_id]
        raise StateConflictError(
            f"Chip {instance_id} is not available in GW{gameweek}",
            chip=instance_id,
            available=inst.available,
            available_from=inst.available_from,
            available_until=inst.available_until,
        )

    new_roster = roster.model_copy(deep=True)
    new_roster.active_chip = kind
    if kind in UNLIMITED_TRANSFER_CHIPS:
        new_roster.transfers_made_this_week = 0
        new_roster.points_deducted = 0
    elif kind is ChipType.TRIPLE_CAPTAIN:
        captain = new_roster.captain()
        if captain is not None:
            captain.multiplier = TRIPLE_CAPTAIN_MULTIPLIER

    return ChipActivation(
        roster=new_roster,
        registry=new_registry,
        instance_id=instance_id,
        pre_chip=pre_chip,
    )


def cancel_chip(roster: Roster, registry: ChipRegistry) -> tuple[Roster, ChipRegistry, ChipInstance]:
    """Withdraw the active chip; only Bench Boost and Triple Captain allow it."""
    if not can_transition(detect_phase(roster), ChipPhase.CANCELLED):
        raise StateConflictError("No chip is active", gameweek=roster.gameweek)

    chip = roster.active_chip
    if chip not in CANCELLABLE_CHIPS:
        raise StateConflictError(
            f"{chip.value} cannot be cancelled once activated", active_chip=chip.value,
        )

    new_roster = roster.model_copy(deep=True)
    new_registry = registry.model_copy(deep=True)
    if chip is ChipType.TRIPLE_CAPTAIN:
        captain = new_roster.captain()
        if captain is not None:
            captain.multiplier = CAPTAIN_MULTIPLIER
    restored = new_registry.restore(roster.gameweek)
    new_roster.active_chip = None
    return new_roster, new_registry, restored
