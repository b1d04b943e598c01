"""Shared helpers for API blueprints."""

import numpy as np
from flask import current_app
from pydantic import BaseModel

from fplsquad.data.cache import read_csv_cache
from fplsquad.logging_config import get_logger
from fplsquad.paths import OUTPUT_DIR

log = get_logger(__name__)

_PREDICTION_COLUMNS = {"player_id", "gameweek", "predicted_points"}


def get_manager():
    """Return the app's SquadManager, building the default one on first use."""
    mgr = current_app.extensions.get("squad_manager")
    if mgr is None:
        from fplsquad.season.manager import SquadManager
        mgr = current_app.extensions["squad_manager"] = SquadManager()
    return mgr


def scrub_nan(obj):
    """Recursively replace NaN/Inf with None in dicts/lists."""
    if isinstance(obj, float):
        if np.isnan(obj) or np.isinf(obj):
            return None
        return obj
    if isinstance(obj, dict):
        return {k: scrub_nan(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [scrub_nan(v) for v in obj]
    return obj


def to_json(obj):
    """Dump pydantic models (or containers of them) to JSON-ready data."""
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json")
    if isinstance(obj, dict):
        return {k: to_json(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_json(v) for v in obj]
    return obj


def load_predictions_from_csv(path=None):
    """Load predictions.csv into a DataFrame, or return None.

    The file must hold ``player_id, gameweek, predicted_points`` columns;
    anything else is ignored with a warning.
    """
    path = path or OUTPUT_DIR / "predictions.csv"
    if not path.exists():
        return None
    df = read_csv_cache(path)
    missing = _PREDICTION_COLUMNS - set(df.columns)
    if missing:
        log.warning("Ignoring %s: missing columns %s", path.name, sorted(missing))
        return None
    return df[["player_id", "gameweek", "predicted_points"]]
