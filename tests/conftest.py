"""Shared test fixtures for the squad ledger."""

import pytest

from fplsquad.config import DataConfig
from fplsquad.data.fpl_api import FplClient
from fplsquad.errors import ExternalDependencyError
from fplsquad.schemas.player import index_elements


# (id, element_type, now_cost, ep_next)
ELEMENTS = [
    # GKP
    (1, 1, 45, 3.0), (2, 1, 40, 2.0), (3, 1, 50, 4.0),
    # DEF
    (4, 2, 55, 4.0), (5, 2, 50, 3.5), (6, 2, 45, 3.0), (7, 2, 45, 2.5),
    (8, 2, 40, 2.0), (9, 2, 45, 3.2), (10, 2, 60, 5.0), (11, 2, 40, 2.1),
    # MID
    (12, 3, 100, 6.0), (13, 3, 80, 5.0), (14, 3, 65, 4.0), (15, 3, 55, 3.0),
    (16, 3, 50, 2.0), (17, 3, 55, 3.5), (18, 3, 85, 6.5), (19, 3, 130, 8.0),
    (20, 3, 45, 2.5), (21, 3, 60, 4.5),
    # FWD
    (22, 4, 110, 6.0), (23, 4, 75, 4.0), (24, 4, 55, 2.5), (25, 4, 60, 3.0),
    (26, 4, 95, 5.5), (27, 4, 45, 1.0), (28, 4, 70, 4.5), (29, 4, 80, 5.0),
    (30, 4, 50, 2.6),
]

# Starting XI in slots 1-11, bench in 12-15.  Costs sum to 910.
SQUAD_IDS = [1, 4, 5, 6, 7, 12, 13, 14, 15, 22, 23, 2, 8, 16, 24]
CAPTAIN_ID = 22
VICE_ID = 12
BANK = 90


def make_picks(element_ids, captain=CAPTAIN_ID, vice=VICE_ID):
    """Feed-shaped picks: slot order follows *element_ids*."""
    picks = []
    for slot, pid in enumerate(element_ids, start=1):
        if pid == captain:
            multiplier = 2
        else:
            multiplier = 1 if slot <= 11 else 0
        picks.append({
            "element": pid,
            "position": slot,
            "is_captain": pid == captain,
            "is_vice_captain": pid == vice,
            "multiplier": multiplier,
        })
    return picks


def make_bootstrap(price_overrides=None):
    price_overrides = price_overrides or {}
    return {
        "elements": [
            {
                "id": pid,
                "web_name": f"P{pid}",
                "element_type": et,
                "team": (pid % 10) + 1,
                "now_cost": price_overrides.get(pid, cost),
                "ep_next": str(ep),
            }
            for pid, et, cost, ep in ELEMENTS
        ],
    }


class FakeFplClient(FplClient):
    """In-memory feed: tests edit ``bootstrap``, ``picks`` and ``summaries``."""

    def __init__(self):
        super().__init__(cfg=DataConfig())
        self.bootstrap = make_bootstrap()
        self.picks: dict[int, dict] = {}
        self.summaries: dict[int, dict] = {}
        self.failing_gameweeks: set[int] = set()
        self.missing_gameweeks: set[int] = set()
        self.bootstrap_down = False
        self.picks_calls: list[int] = []

    def set_price(self, player_id, now_cost):
        for el in self.bootstrap["elements"]:
            if el["id"] == player_id:
                el["now_cost"] = now_cost

    def fetch_bootstrap(self, force=False):
        if self.bootstrap_down:
            raise ExternalDependencyError("feed down", endpoint="bootstrap-static")
        return self.bootstrap

    def fetch_manager_picks(self, entry_id, event):
        self.picks_calls.append(event)
        if event in self.missing_gameweeks:
            raise ExternalDependencyError(
                "picks not found", endpoint=f"picks_{entry_id}_{event}", status_code=404,
            )
        if event in self.failing_gameweeks or event not in self.picks:
            raise ExternalDependencyError("picks unavailable", endpoint=f"picks_{entry_id}_{event}")
        return self.picks[event]

    def fetch_player_summary(self, player_id):
        if player_id not in self.summaries:
            raise ExternalDependencyError("summary unavailable", endpoint=f"player_summary_{player_id}")
        return self.summaries[player_id]


@pytest.fixture
def tmp_db(tmp_path):
    """Temporary database path for DB tests."""
    return tmp_path / "test_squad.db"


@pytest.fixture
def fake_client():
    client = FakeFplClient()
    client.picks[5] = {
        "picks": make_picks(SQUAD_IDS),
        "entry_history": {"event": 5, "bank": BANK, "points": 61},
    }
    return client


@pytest.fixture
def feed_players(fake_client):
    return index_elements(fake_client.bootstrap)


@pytest.fixture
def manager(tmp_db, fake_client):
    from fplsquad.season.manager import SquadManager
    return SquadManager(db_path=tmp_db, client=fake_client)


@pytest.fixture
def squad(manager):
    """Manager with participant ``alice`` initialised at GW5."""
    manager.initialize_from_entry("alice", entry_id=1234, gameweek=5)
    return manager
