"""FPL rule constants and the pure pricing / transfer rules.

Encodes the game rules as constants and small functions, used by the
roster lifecycle, the transfer engine and the chip state machine.
"""

from __future__ import annotations

from enum import Enum

from fplsquad.config import rules_cfg


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# Squad composition
SQUAD_SIZE = rules_cfg.squad_size
STARTING_XI = rules_cfg.starting_xi

# Transfers
HIT_COST = rules_cfg.hit_cost
MAX_FREE_TRANSFERS = rules_cfg.max_free_transfers
DEFAULT_FREE_TRANSFERS = rules_cfg.initial_free_transfers

# Captaincy multipliers
NORMAL_MULTIPLIER = 1
CAPTAIN_MULTIPLIER = rules_cfg.captain_multiplier
TRIPLE_CAPTAIN_MULTIPLIER = rules_cfg.triple_captain_multiplier

# Season structure
TOTAL_GAMEWEEKS = rules_cfg.total_gameweeks
FIRST_HALF_END = 19  # GW1-19 is first half
SECOND_HALF_START = 20  # GW20-38 is second half

# Minimum gap between two Free Hits (no consecutive gameweeks)
FREE_HIT_MIN_GAP = 2

# element_type -> position category
ELEMENT_TYPE_MAP = {1: "GKP", 2: "DEF", 3: "MID", 4: "FWD"}


# ---------------------------------------------------------------------------
# Chip definitions
# ---------------------------------------------------------------------------

class ChipType(str, Enum):
    BENCH_BOOST = "bench_boost"
    TRIPLE_CAPTAIN = "triple_captain"
    FREE_HIT = "free_hit"
    WILDCARD = "wildcard"


# Chips that allow unlimited transfers
UNLIMITED_TRANSFER_CHIPS = {ChipType.WILDCARD, ChipType.FREE_HIT}

# Chips that revert squad after use
SQUAD_REVERTING_CHIPS = {ChipType.FREE_HIT}

# Chips that can be withdrawn after activation
CANCELLABLE_CHIPS = {ChipType.BENCH_BOOST, ChipType.TRIPLE_CAPTAIN}

# instance id -> (kind, available_from, available_until)
CHIP_WINDOWS: dict[str, tuple[ChipType, int, int]] = {
    "bench_boost_1": (ChipType.BENCH_BOOST, 1, FIRST_HALF_END),
    "bench_boost_2": (ChipType.BENCH_BOOST, SECOND_HALF_START, TOTAL_GAMEWEEKS),
    "triple_captain_1": (ChipType.TRIPLE_CAPTAIN, 1, FIRST_HALF_END),
    "triple_captain_2": (ChipType.TRIPLE_CAPTAIN, SECOND_HALF_START, TOTAL_GAMEWEEKS),
    "free_hit_1": (ChipType.FREE_HIT, 2, FIRST_HALF_END),  # After first gameweek
    "free_hit_2": (ChipType.FREE_HIT, SECOND_HALF_START, TOTAL_GAMEWEEKS),
    "wildcard_1": (ChipType.WILDCARD, 2, FIRST_HALF_END),  # After first gameweek
    "wildcard_2": (ChipType.WILDCARD, SECOND_HALF_START, TOTAL_GAMEWEEKS),
}

CHIP_DESCRIPTIONS: dict[ChipType, tuple[str, str]] = {
    ChipType.BENCH_BOOST: (
        "Bench Boost",
        "Points scored by your bench players are included in your total",
    ),
    ChipType.TRIPLE_CAPTAIN: (
        "Triple Captain",
        "Your captain points are tripled instead of doubled",
    ),
    ChipType.FREE_HIT: (
        "Free Hit",
        "Make unlimited free transfers for a single gameweek. "
        "Squad returns to its previous state next gameweek",
    ),
    ChipType.WILDCARD: (
        "Wildcard",
        "All transfers in the gameweek are free of charge",
    ),
}


def chip_kind(instance_id: str) -> ChipType:
    """Return the chip kind of an instance id (``"free_hit_2"`` -> FREE_HIT)."""
    return CHIP_WINDOWS[instance_id][0]


def get_chip_half(gameweek: int) -> int:
    """Return which half a gameweek belongs to (1 or 2)."""
    if gameweek <= FIRST_HALF_END:
        return 1
    return 2


# ---------------------------------------------------------------------------
# Pricing
# ---------------------------------------------------------------------------

def selling_price(purchase_price: int, current_price: int) -> int:
    """Price received when selling a player.

    Half of any profit is kept, rounded down to the nearest 0.1m. A price
    drop is never passed on: the seller gets at least the purchase price.
    """
    profit = current_price - purchase_price
    profit_to_keep = profit // 2 if profit > 0 else 0
    return purchase_price + profit_to_keep


# ---------------------------------------------------------------------------
# Transfers
# ---------------------------------------------------------------------------

def transfer_points_cost(
    transfers_made: int,
    free_transfers: int,
    chip_active: ChipType | None = None,
) -> int:
    """Points cost of the *next* transfer given this week's counters."""
    if chip_active in UNLIMITED_TRANSFER_CHIPS:
        return 0
    if transfers_made < free_transfers:
        return 0
    return HIT_COST


def weekly_transfer_cost(
    transfers_made: int,
    free_transfers: int,
    chip_active: ChipType | None = None,
) -> int:
    """Total points cost of the transfers already made this week."""
    if chip_active in UNLIMITED_TRANSFER_CHIPS:
        return 0
    return max(0, transfers_made - free_transfers) * HIT_COST


def compute_next_gw_fts(current_fts: int, transfers_made: int) -> int:
    """Compute free transfers available for the NEXT gameweek.

    - No transfers made: bank one more, capped at ``MAX_FREE_TRANSFERS``.
    - Any transfer made: back to one.
    """
    if transfers_made == 0:
        return min(current_fts + 1, MAX_FREE_TRANSFERS)
    return DEFAULT_FREE_TRANSFERS
