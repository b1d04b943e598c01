"""Tests for the transfer recommendation heuristic."""

import pandas as pd
import pytest

from fplsquad.config import RecommendationConfig
from fplsquad.strategy.recommendations import flat_forecast, pool_frame, recommend_transfers

from tests.conftest import SQUAD_IDS


def _pool(rows):
    """Forward-only pool from ``(player_id, price, ep_next)`` tuples."""
    return pd.DataFrame(
        [
            {"player_id": pid, "web_name": f"P{pid}", "position": "FWD",
             "price": price, "ep_next": ep}
            for pid, price, ep in rows
        ],
        columns=["player_id", "web_name", "position", "price", "ep_next"],
    )


@pytest.fixture
def banded_pool():
    return _pool([
        (1, 60, 2.0),   # owned
        (2, 62, 5.0),   # similar
        (3, 58, 4.0),   # similar
        (4, 80, 6.0),   # premium
        (5, 40, 3.0),   # budget
        (6, 90, 7.0),   # premium
        (7, 60, 1.0),   # worse
        (8, 61, 2.0),   # equal
    ])


def _recommend(pool, owned, start=5, ahead=1, **kwargs):
    predictions = flat_forecast(pool, start, ahead)
    return recommend_transfers(set(owned), pool, predictions, start, ahead, **kwargs)


# ---------------------------------------------------------------------------
# Alternative selection
# ---------------------------------------------------------------------------

class TestAlternatives:
    def test_band_pattern_for_weakest(self, banded_pool):
        (rec,) = _recommend(banded_pool, {1})
        assert rec["rank"] == 0
        assert [a["player_id"] for a in rec["alternatives"]] == [2, 6, 3, 5, 4]
        bands = {a["player_id"]: a["band"] for a in rec["alternatives"]}
        assert bands == {2: "similar", 3: "similar", 4: "premium", 5: "budget", 6: "premium"}

    def test_never_equal_or_worse(self, banded_pool):
        (rec,) = _recommend(banded_pool, {1})
        ids = {a["player_id"] for a in rec["alternatives"]}
        assert ids.isdisjoint({7, 8})
        assert all(a["points_gain"] > 0 for a in rec["alternatives"])

    def test_back_fill_by_points(self):
        pool = _pool([(1, 60, 2.0), (4, 80, 6.0), (6, 90, 7.0), (9, 85, 5.5)])
        (rec,) = _recommend(pool, {1})
        assert [a["player_id"] for a in rec["alternatives"]] == [6, 4, 9]

    def test_limit_respected(self, banded_pool):
        cfg = RecommendationConfig(alternatives=2)
        (rec,) = _recommend(banded_pool, {1}, cfg=cfg)
        assert [a["player_id"] for a in rec["alternatives"]] == [2, 6]

    def test_no_better_player(self):
        pool = _pool([(1, 60, 9.0), (2, 60, 3.0)])
        (rec,) = _recommend(pool, {1})
        assert rec["alternatives"] == []

    def test_band_width(self, banded_pool):
        cfg = RecommendationConfig(band_width=25)
        (rec,) = _recommend(banded_pool, {1}, cfg=cfg)
        assert {a["band"] for a in rec["alternatives"]} == {"similar", "premium"}


# ---------------------------------------------------------------------------
# Weak-player selection over the full feed
# ---------------------------------------------------------------------------

class TestWeakPlayers:
    def test_weakest_per_position(self, feed_players):
        pool = pool_frame(feed_players)
        recs = _recommend(pool, SQUAD_IDS)
        by_position = {}
        for rec in recs:
            by_position.setdefault(rec["position"], []).append(rec["player_id"])
        assert by_position == {
            "GKP": [2, 1],
            "DEF": [8, 7, 6],
            "MID": [16, 15, 14],
            "FWD": [24, 23, 22],
        }

    def test_alternatives_same_position_and_unowned(self, feed_players):
        pool = pool_frame(feed_players)
        positions = {p.player_id: p.position for p in feed_players.values()}
        for rec in _recommend(pool, SQUAD_IDS):
            assert len(rec["alternatives"]) <= 5
            for alt in rec["alternatives"]:
                assert alt["player_id"] not in SQUAD_IDS
                assert positions[alt["player_id"]] == rec["position"]
                assert alt["predicted_points"] > rec["predicted_points"]

    def test_ties_broken_by_price(self):
        pool = _pool([(1, 70, 2.0), (2, 50, 2.0), (3, 90, 8.0)])
        recs = _recommend(pool, {1, 2})
        assert [r["player_id"] for r in recs] == [2, 1]


# ---------------------------------------------------------------------------
# Forecast window
# ---------------------------------------------------------------------------

class TestWindow:
    def test_flat_forecast_repeats_ep_next(self, banded_pool):
        forecast = flat_forecast(banded_pool, 5, 3)
        assert sorted(forecast["gameweek"].unique()) == [5, 6, 7]
        assert len(forecast) == 3 * len(banded_pool)

    def test_points_summed_over_window(self, banded_pool):
        (rec,) = _recommend(banded_pool, {1}, ahead=3)
        assert rec["predicted_points"] == pytest.approx(6.0)
        assert rec["alternatives"][0]["points_gain"] == pytest.approx(9.0)

    def test_gameweeks_outside_window_ignored(self):
        pool = _pool([(1, 60, 0.0), (2, 60, 0.0)])
        predictions = pd.DataFrame({
            "player_id": [1, 2, 2],
            "gameweek": [5, 5, 9],
            "predicted_points": [3.0, 1.0, 50.0],
        })
        (rec,) = recommend_transfers({1}, pool, predictions, 5, 2)
        assert rec["predicted_points"] == pytest.approx(3.0)
        assert rec["alternatives"] == []

    def test_manager_uses_feed_forecast(self, squad):
        recs = squad.recommend_transfers("alice", gameweeks_ahead=2)
        assert len(recs) == 11
        assert all(r["predicted_points"] >= 0 for r in recs)
