"""TTL-based cache manager for local file caching.

Provides helpers to check freshness and resolve cache file paths.
Cached files live under ``CACHE_DIR`` (see :mod:`fplsquad.paths`) unless
a caller passes its own directory.
"""

from __future__ import annotations

import json
import time
from pathlib import Path

import pandas as pd

from fplsquad.config import cache_cfg
from fplsquad.logging_config import get_logger
from fplsquad.paths import CACHE_DIR

logger = get_logger(__name__)


def cache_path(name: str, cache_dir: Path | None = None) -> Path:
    """Return the full path for a named cache file inside *cache_dir*."""
    return (cache_dir or CACHE_DIR) / name


def is_cache_fresh(path: Path, max_age: int | None = None) -> bool:
    """Return ``True`` if *path* exists and is younger than *max_age* seconds.

    Parameters
    ----------
    path:
        File to check.
    max_age:
        Maximum age in seconds.  Falls back to
        :pyattr:`CacheConfig.fpl_api` when *None*.
    """
    if not path.exists():
        return False
    age = time.time() - path.stat().st_mtime
    return age < (max_age if max_age is not None else cache_cfg.fpl_api)


# ── JSON helpers ────────────────────────────────────────────────────────

def read_json_cache(path: Path) -> dict | list | None:
    """Read a JSON cache file, returning ``None`` if it is missing or corrupt."""
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.debug("Unreadable cache file %s: %s", path.name, exc)
        return None


def write_json_cache(path: Path, data: dict | list) -> None:
    """Write *data* as JSON to *path*, creating its directory first."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")


# ── CSV helpers ─────────────────────────────────────────────────────────

def read_csv_cache(path: Path) -> pd.DataFrame:
    """Read a cached CSV file."""
    return pd.read_csv(path, encoding="utf-8")
