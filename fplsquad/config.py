"""Central configuration: every magic number in one place."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from fplsquad.paths import MOCK_DATA_DIR


# ---------------------------------------------------------------------------
# Game rules
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class RulesConfig:
    squad_size: int = 15
    starting_xi: int = 11
    total_gameweeks: int = 38
    hit_cost: int = 4                # Points deducted per extra transfer
    max_free_transfers: int = 2      # Banked FT cap
    initial_free_transfers: int = 1
    captain_multiplier: int = 2
    triple_captain_multiplier: int = 3


# ---------------------------------------------------------------------------
# Cache TTLs (seconds)
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class CacheConfig:
    fpl_api: int = 30 * 60           # 30 minutes
    element_summary: int = 30 * 60   # 30 minutes
    manager_api: int = 60            # 1 minute
    max_manager_entries: int = 200


# ---------------------------------------------------------------------------
# Data source
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class DataConfig:
    fpl_api_base: str = "https://fantasy.premierleague.com/api"
    request_timeout: int = 30        # seconds
    use_mock: bool = False           # Serve feed reads from local JSON files
    mock_dir: Path = MOCK_DATA_DIR

    @classmethod
    def from_env(cls) -> "DataConfig":
        """Build a config honouring ``FPLSQUAD_USE_MOCK`` / ``FPLSQUAD_API_BASE``."""
        use_mock = os.environ.get("FPLSQUAD_USE_MOCK", "false").lower() in ("1", "true", "yes")
        base = os.environ.get("FPLSQUAD_API_BASE", cls.fpl_api_base)
        return cls(fpl_api_base=base, use_mock=use_mock)


# ---------------------------------------------------------------------------
# Purchase-price reconstruction
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class PricingConfig:
    batch_size: int = 5              # Gameweeks of picks fetched per batch
    max_workers: int = 5             # Concurrent feed calls within a batch


# ---------------------------------------------------------------------------
# Transfer recommendations
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class RecommendationConfig:
    weak_per_position: int = 3
    alternatives: int = 5
    band_width: int = 5              # 0.5m in tenths
    max_gameweeks_ahead: int = 6
    # Band draw order per weak-player rank (0 = weakest).
    band_patterns: dict[int, tuple[str, ...]] = field(default_factory=lambda: {
        0: ("similar", "premium", "similar", "budget", "premium"),
        1: ("similar", "budget", "similar", "premium", "budget"),
        2: ("budget", "similar", "budget", "premium", "similar"),
    })


# ---------------------------------------------------------------------------
# Position groups
# ---------------------------------------------------------------------------
POSITION_GROUPS: list[str] = ["GKP", "DEF", "MID", "FWD"]


# ---------------------------------------------------------------------------
# Singleton instances (importable as `from fplsquad.config import rules_cfg, ...`)
# ---------------------------------------------------------------------------
rules_cfg = RulesConfig()
cache_cfg = CacheConfig()
data_cfg = DataConfig.from_env()
pricing_cfg = PricingConfig()
recommendation_cfg = RecommendationConfig()
