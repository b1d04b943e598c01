"""Pydantic value types for rosters, chips, history snapshots and transfers.

These carry the roster rules themselves (selling prices, chip windows,
consumption) so they can be exercised without a database.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, model_validator

from fplsquad.errors import NotFoundError
from fplsquad.schemas.fpl_rules import (
    CHIP_WINDOWS,
    DEFAULT_FREE_TRANSFERS,
    FREE_HIT_MIN_GAP,
    MAX_FREE_TRANSFERS,
    SQUAD_SIZE,
    STARTING_XI,
    TOTAL_GAMEWEEKS,
    ChipType,
    get_chip_half,
    selling_price,
)


# ---------------------------------------------------------------------------
# Roster
# ---------------------------------------------------------------------------

class RosterPlayer(BaseModel):
    """One of the 15 slots of a roster."""

    player_id: int
    slot: int = Field(..., ge=1, le=SQUAD_SIZE)
    purchase_price: int
    current_price: int
    is_captain: bool = False
    is_vice_captain: bool = False
    multiplier: int = 1

    @property
    def is_starter(self) -> bool:
        return self.slot <= STARTING_XI

    @property
    def selling_price(self) -> int:
        return selling_price(self.purchase_price, self.current_price)


class Roster(BaseModel):
    """Authoritative per-participant squad, bank and weekly transfer state."""

    participant_id: str
    gameweek: int = Field(..., ge=1, le=TOTAL_GAMEWEEKS)
    players: list[RosterPlayer]
    bank: int = 0
    squad_value: int = 0
    free_transfers: int = Field(DEFAULT_FREE_TRANSFERS, ge=0, le=MAX_FREE_TRANSFERS)
    transfers_made_this_week: int = Field(0, ge=0)
    points_deducted: int = Field(0, ge=0)
    active_chip: ChipType | None = None
    version: int = 0

    @model_validator(mode="after")
    def validate_squad(self) -> "Roster":
        errors: list[str] = []
        if len(self.players) != SQUAD_SIZE:
            errors.append(f"Need {SQUAD_SIZE} players, got {len(self.players)}")
        slots = [p.slot for p in self.players]
        if len(set(slots)) != len(slots):
            errors.append("Duplicate slots in squad")
        ids = [p.player_id for p in self.players]
        if len(set(ids)) != len(ids):
            errors.append("Duplicate player IDs in squad")
        if sum(p.is_captain for p in self.players) > 1:
            errors.append("More than one captain")
        if sum(p.is_vice_captain for p in self.players) > 1:
            errors.append("More than one vice-captain")
        if errors:
            raise ValueError("; ".join(errors))
        return self

    @property
    def player_ids(self) -> set[int]:
        return {p.player_id for p in self.players}

    def find_player(self, player_id: int) -> RosterPlayer | None:
        for p in self.players:
            if p.player_id == player_id:
                return p
        return None

    def captain(self) -> RosterPlayer | None:
        for p in self.players:
            if p.is_captain:
                return p
        return None

    def recompute_value(self) -> int:
        """Refresh ``squad_value`` (sum of current prices plus bank)."""
        self.squad_value = sum(p.current_price for p in self.players) + self.bank
        return self.squad_value


# ---------------------------------------------------------------------------
# Chips
# ---------------------------------------------------------------------------

class ChipInstance(BaseModel):
    instance_id: str
    kind: ChipType
    available: bool = True
    used_in_gameweek: int | None = None
    available_from: int
    available_until: int

    def in_window(self, gameweek: int) -> bool:
        return self.available_from <= gameweek <= self.available_until


class ChipRegistry(BaseModel):
    """The eight chip instances (two per kind) owned by one participant."""

    participant_id: str
    instances: dict[str, ChipInstance]

    @classmethod
    def fresh(cls, participant_id: str) -> "ChipRegistry":
        """A registry with every instance unused."""
        instances = {
            instance_id: ChipInstance(
                instance_id=instance_id,
                kind=kind,
                available_from=start,
                available_until=end,
            )
            for instance_id, (kind, start, end) in CHIP_WINDOWS.items()
        }
        return cls(participant_id=participant_id, instances=instances)

    def _used_index(self) -> dict[int, ChipInstance]:
        return {
            inst.used_in_gameweek: inst
            for inst in self.instances.values()
            if inst.used_in_gameweek is not None
        }

    def instance_used_in(self, gameweek: int) -> ChipInstance | None:
        return self._used_index().get(gameweek)

    def list_available(
        self, gameweek: int, last_free_hit_gameweek: int | None = None,
    ) -> list[str]:
        """Instance ids usable in *gameweek*.

        Free Hit instances are withheld when a Free Hit was played fewer
        than two gameweeks ago.
        """
        free_hit_ok = (
            last_free_hit_gameweek is None
            or gameweek - last_free_hit_gameweek >= FREE_HIT_MIN_GAP
        )
        available = []
        for instance_id, inst in self.instances.items():
            if not inst.available or not inst.in_window(gameweek):
                continue
            if inst.kind is ChipType.FREE_HIT and not free_hit_ok:
                continue
            available.append(instance_id)
        return available

    def resolve_instance(self, chip: str, gameweek: int) -> str | None:
        """Map an instance id or a bare chip kind to an instance id.

        A bare kind (``"wildcard"``) resolves to that kind's instance for
        the half *gameweek* falls in, used or not, provided its window
        covers *gameweek*. Unknown names return ``None``.
        """
        if chip in self.instances:
            return chip
        try:
            kind = ChipType(chip)
        except ValueError:
            return None
        inst = self.instances.get(f"{kind.value}_{get_chip_half(gameweek)}")
        if inst is None or not inst.in_window(gameweek):
            return None
        return inst.instance_id

    def consume(self, instance_id: str, gameweek: int) -> bool:
        inst = self.instances.get(instance_id)
        if inst is None or not inst.available:
            return False
        if not inst.in_window(gameweek):
            return False
        inst.available = False
        inst.used_in_gameweek = gameweek
        return True

    def restore(self, gameweek_used: int) -> ChipInstance:
        """Make the instance consumed in *gameweek_used* available again."""
        inst = self.instance_used_in(gameweek_used)
        if inst is None:
            raise NotFoundError(
                f"No chip recorded as used in GW{gameweek_used}",
                gameweek=gameweek_used,
            )
        inst.available = True
        inst.used_in_gameweek = None
        return inst


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------

class SnapshotType(str, Enum):
    REGULAR = "regular"
    PRE_CHIP = "pre_chip"


class HistorySnapshot(BaseModel):
    participant_id: str
    gameweek: int
    snapshot_type: SnapshotType = SnapshotType.REGULAR
    players: list[RosterPlayer]
    bank: int = 0
    squad_value: int = 0
    free_transfers: int = DEFAULT_FREE_TRANSFERS
    transfers_made_this_week: int = 0
    points_deducted: int = 0
    active_chip: ChipType | None = None
    points_scored: int = 0
    overall_rank: int | None = None
    created_at: str | None = None

    @classmethod
    def from_roster(
        cls,
        roster: Roster,
        snapshot_type: SnapshotType = SnapshotType.REGULAR,
        points_scored: int = 0,
        overall_rank: int | None = None,
    ) -> "HistorySnapshot":
        return cls(
            participant_id=roster.participant_id,
            gameweek=roster.gameweek,
            snapshot_type=snapshot_type,
            players=[p.model_copy() for p in roster.players],
            bank=roster.bank,
            squad_value=roster.squad_value,
            free_transfers=roster.free_transfers,
            transfers_made_this_week=roster.transfers_made_this_week,
            points_deducted=roster.points_deducted,
            active_chip=roster.active_chip,
            points_scored=points_scored,
            overall_rank=overall_rank,
        )

    @property
    def player_ids(self) -> set[int]:
        return {p.player_id for p in self.players}

    def find_player(self, player_id: int) -> RosterPlayer | None:
        for p in self.players:
            if p.player_id == player_id:
                return p
        return None


# ---------------------------------------------------------------------------
# Transfers
# ---------------------------------------------------------------------------

class PlayerInLeg(BaseModel):
    player_id: int
    price: int


class PlayerOutLeg(BaseModel):
    player_id: int
    purchase_price: int
    selling_price: int


class TransferRecord(BaseModel):
    """One executed swap, as written to the append-only ledger."""

    participant_id: str
    gameweek: int
    player_in: PlayerInLeg
    player_out: PlayerOutLeg
    is_free: bool
    points_cost: int = 0
    chip_active: ChipType | None = None
    id: int | None = None
    created_at: str | None = None


class PurchaseInfo(BaseModel):
    player_id: int
    purchase_price: int
    gameweek_added: int
