"""Pydantic schemas for players as published by the data feed."""

from __future__ import annotations

from pydantic import BaseModel

from fplsquad.schemas.fpl_rules import ELEMENT_TYPE_MAP


class FeedPlayer(BaseModel):
    """A player from the bulk bootstrap snapshot."""

    player_id: int
    web_name: str
    position: str  # GKP, DEF, MID, FWD
    now_cost: int  # Price in 0.1m units (e.g. 100 = 10.0m)
    team: int | None = None
    ep_next: float = 0.0

    @classmethod
    def from_element(cls, el: dict) -> "FeedPlayer":
        """Build from one ``bootstrap["elements"]`` entry."""
        try:
            ep_next = float(el.get("ep_next") or 0.0)
        except (TypeError, ValueError):
            ep_next = 0.0
        return cls(
            player_id=el["id"],
            web_name=el.get("web_name") or f"Player {el['id']}",
            position=ELEMENT_TYPE_MAP.get(el.get("element_type"), str(el.get("element_type"))),
            now_cost=int(el.get("now_cost", 0)),
            team=el.get("team"),
            ep_next=ep_next,
        )


def index_elements(bootstrap: dict) -> dict[int, FeedPlayer]:
    """Return ``{player_id: FeedPlayer}`` for every element in *bootstrap*."""
    return {
        el["id"]: FeedPlayer.from_element(el)
        for el in bootstrap.get("elements", [])
    }
