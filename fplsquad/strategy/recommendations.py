"""Transfer recommendations: cheap swaps for the weakest owned players.

For each position the lowest-scoring owned players over a forecast window
are paired with up to five higher-scoring alternatives, drawn from three
price bands around the player's own price.  A heuristic, not an optimiser.
"""

from __future__ import annotations

import pandas as pd

from fplsquad.config import POSITION_GROUPS, RecommendationConfig, recommendation_cfg
from fplsquad.logging_config import get_logger
from fplsquad.schemas.player import FeedPlayer

logger = get_logger(__name__)

_BANDS = ("similar", "budget", "premium")


def pool_frame(players: dict[int, FeedPlayer]) -> pd.DataFrame:
    """One row per feed player: ``player_id, web_name, position, price``."""
    return pd.DataFrame(
        [
            {
                "player_id": p.player_id,
                "web_name": p.web_name,
                "position": p.position,
                "price": p.now_cost,
                "ep_next": p.ep_next,
            }
            for p in players.values()
        ],
        columns=["player_id", "web_name", "position", "price", "ep_next"],
    )


def flat_forecast(pool: pd.DataFrame, start_gameweek: int, gameweeks_ahead: int) -> pd.DataFrame:
    """Repeat each player's ``ep_next`` for every gameweek of the window."""
    frames = [
        pd.DataFrame({
            "player_id": pool["player_id"],
            "gameweek": gw,
            "predicted_points": pool["ep_next"].astype(float),
        })
        for gw in range(start_gameweek, start_gameweek + gameweeks_ahead)
    ]
    if not frames:
        return pd.DataFrame(columns=["player_id", "gameweek", "predicted_points"])
    return pd.concat(frames, ignore_index=True)


def _window_points(
    predictions: pd.DataFrame, start_gameweek: int, gameweeks_ahead: int,
) -> pd.Series:
    """Cumulative predicted points per player over the window."""
    end = start_gameweek + gameweeks_ahead - 1
    window = predictions[
        (predictions["gameweek"] >= start_gameweek) & (predictions["gameweek"] <= end)
    ]
    return window.groupby("player_id")["predicted_points"].sum()


def _band(delta: int, width: int) -> str:
    if abs(delta) <= width:
        return "similar"
    return "budget" if delta < 0 else "premium"


def _pick_alternatives(
    eligible: pd.DataFrame,
    pattern: tuple[str, ...],
    limit: int,
) -> list[int]:
    """Draw ids band by band following *pattern*, then back-fill by points."""
    queues = {
        band: list(eligible.loc[eligible["band"] == band, "player_id"])
        for band in _BANDS
    }
    chosen: list[int] = []
    for band in pattern:
        queue = queues[band]
        while queue:
            pid = queue.pop(0)
            if pid not in chosen:
                chosen.append(pid)
                break
        if len(chosen) >= limit:
            return chosen
    for pid in eligible["player_id"]:
        if len(chosen) >= limit:
            break
        if pid not in chosen:
            chosen.append(pid)
    return chosen


def recommend_transfers(
    owned: set[int],
    pool: pd.DataFrame,
    predictions: pd.DataFrame,
    start_gameweek: int,
    gameweeks_ahead: int = 1,
    cfg: RecommendationConfig | None = None,
) -> list[dict]:
    """Suggest replacements for the weakest owned players in each position.

    Parameters
    ----------
    owned:
        Player ids in the roster.
    pool:
        Feed players (see :func:`pool_frame`); owned players included.
    predictions:
        Long frame ``player_id, gameweek, predicted_points``.

    Returns
    -------
    list[dict]
        One entry per weak player: ``{player_id, web_name, position, price,
        predicted_points, rank, alternatives: [...]}``.  Alternatives never
        score the same or less and are never already owned.
    """
    cfg = cfg or recommendation_cfg
    points = _window_points(predictions, start_gameweek, gameweeks_ahead)

    df = pool.copy()
    df["predicted_points"] = df["player_id"].map(points).fillna(0.0)
    df["owned"] = df["player_id"].isin(owned)

    recommendations: list[dict] = []
    for position in POSITION_GROUPS:
        pos_df = df[df["position"] == position]
        weak = pos_df[pos_df["owned"]].sort_values(
            ["predicted_points", "price"], ascending=[True, True],
        ).head(cfg.weak_per_position)
        others = pos_df[~pos_df["owned"]]

        for rank, (_, cand) in enumerate(weak.iterrows()):
            eligible = others[others["predicted_points"] > cand["predicted_points"]].copy()
            eligible["band"] = [
                _band(int(price) - int(cand["price"]), cfg.band_width)
                for price in eligible["price"]
            ]
            eligible = eligible.sort_values(
                ["predicted_points", "price"], ascending=[False, True],
            )
            pattern = cfg.band_patterns.get(rank, cfg.band_patterns[max(cfg.band_patterns)])
            picked = _pick_alternatives(eligible, pattern, cfg.alternatives)
            by_id = eligible.set_index("player_id")

            alternatives = []
            for pid in picked:
                row = by_id.loc[pid]
                alternatives.append({
                    "player_id": int(pid),
                    "web_name": row["web_name"],
                    "price": int(row["price"]),
                    "predicted_points": round(float(row["predicted_points"]), 2),
                    "band": row["band"],
                    "points_gain": round(
                        float(row["predicted_points"] - cand["predicted_points"]), 2,
                    ),
                })

            recommendations.append({
                "player_id": int(cand["player_id"]),
                "web_name": cand["web_name"],
                "position": position,
                "price": int(cand["price"]),
                "predicted_points": round(float(cand["predicted_points"]), 2),
                "rank": rank,
                "alternatives": alternatives,
            })

    logger.info(
        "Built %d transfer recommendations over GW%d-%d",
        len(recommendations), start_gameweek, start_gameweek + gameweeks_ahead - 1,
    )
    return recommendations
