"""FPL API client: fetch and cache data from fantasy.premierleague.com.

The bootstrap snapshot uses a 30-minute file cache.  Per-entry and
per-player endpoints use a lightweight in-memory TTL cache (60 s) with
thread-safe stale fallback.  With ``DataConfig.use_mock`` set, every read
is served from JSON files in ``DataConfig.mock_dir`` instead.

Every failure surfaces as :class:`~fplsquad.errors.ExternalDependencyError`.
"""

from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Callable

import requests

from fplsquad.config import CacheConfig, DataConfig, cache_cfg, data_cfg
from fplsquad.data.cache import (
    cache_path,
    is_cache_fresh,
    read_json_cache,
    write_json_cache,
)
from fplsquad.errors import ExternalDependencyError
from fplsquad.logging_config import get_logger

logger = get_logger(__name__)


class FplClient:
    """Fetch-only access to the bootstrap, entry-picks and element-summary feeds."""

    def __init__(
        self,
        cfg: DataConfig | None = None,
        cache: CacheConfig | None = None,
        cache_dir: Path | None = None,
    ):
        self.cfg = cfg or data_cfg
        self.cache = cache or cache_cfg
        self.cache_dir = cache_dir
        self._memory: dict[str, tuple[object, float]] = {}
        self._memory_lock = threading.Lock()

    # ── Low-level HTTP ──────────────────────────────────────────────────

    def _fetch_url(self, url: str) -> dict:
        """GET *url* and decode JSON, raise on HTTP errors."""
        resp = requests.get(url, timeout=self.cfg.request_timeout)
        resp.raise_for_status()
        return resp.json()

    def _read_mock(self, *names: str) -> dict:
        """Return the first existing mock file among *names*."""
        for name in names:
            data = read_json_cache(Path(self.cfg.mock_dir) / name)
            if data is not None:
                return data
        raise ExternalDependencyError(
            f"Mock data file not found: {names[-1]}",
            mock_dir=str(self.cfg.mock_dir),
        )

    # ── Public endpoint (file-cached) ───────────────────────────────────

    def fetch_bootstrap(self, force: bool = False) -> dict:
        """Fetch ``bootstrap-static`` with file-based caching.

        Parameters
        ----------
        force:
            Bypass the cache and re-fetch.
        """
        if self.cfg.use_mock:
            return self._read_mock("bootstrap-static.json")

        cp = cache_path("fpl_api_bootstrap.json", self.cache_dir)
        if not force and is_cache_fresh(cp, max_age=self.cache.fpl_api):
            data = read_json_cache(cp)
            if data is not None:
                return data

        url = f"{self.cfg.fpl_api_base}/bootstrap-static/"
        logger.info("Fetching %s", url)
        try:
            data = self._fetch_url(url)
            write_json_cache(cp, data)
        except (requests.RequestException, OSError, ValueError) as exc:
            if cp.exists():
                logger.warning("Fetch failed (%s), using stale cache for %s", exc, cp.name)
                cached = read_json_cache(cp)
                if cached is not None:
                    return cached
            raise ExternalDependencyError(
                f"Player data feed unavailable: {exc}", endpoint="bootstrap-static",
            ) from exc
        return data

    # ── Per-entry endpoints (in-memory TTL cache) ───────────────────────

    def _cached_fetch(
        self, cache_key: str, fetch_fn: Callable[[], dict], ttl: int | None = None,
    ) -> dict:
        """Thread-safe in-memory TTL cache with stale-data fallback.

        If the live fetch fails, the most recent cached value is returned
        instead of propagating the exception.
        """
        now = time.time()
        ttl = self.cache.manager_api if ttl is None else ttl

        with self._memory_lock:
            if cache_key in self._memory:
                data, ts = self._memory[cache_key]
                if now - ts < ttl:
                    return data

        try:
            data = fetch_fn()
        except (requests.RequestException, ValueError) as exc:
            with self._memory_lock:
                if cache_key in self._memory:
                    logger.warning("Fetch failed (%s), using stale %s", exc, cache_key)
                    return self._memory[cache_key][0]
            status = getattr(getattr(exc, "response", None), "status_code", None)
            raise ExternalDependencyError(
                f"Data feed request failed: {exc}", endpoint=cache_key,
                status_code=status,
            ) from exc

        with self._memory_lock:
            self._memory[cache_key] = (data, now)
            # Evict stale entries when the cache grows large
            if len(self._memory) > self.cache.max_manager_entries:
                stale = [k for k, (_, ts) in self._memory.items() if now - ts > ttl]
                for k in stale:
                    del self._memory[k]

        return data

    def fetch_manager_picks(self, entry_id: int, event: int) -> dict:
        """Fetch an entry's 15 picks for gameweek *event*."""
        if self.cfg.use_mock:
            return self._read_mock(f"player-picks-{event}.json", "player-picks.json")
        url = f"{self.cfg.fpl_api_base}/entry/{entry_id}/event/{event}/picks/"
        return self._cached_fetch(
            f"picks_{entry_id}_{event}",
            lambda: self._fetch_url(url),
        )

    def fetch_player_summary(self, player_id: int) -> dict:
        """Fetch element summary (per-GW price history) for one player."""
        if self.cfg.use_mock:
            return self._read_mock(f"element-summary-{player_id}.json", "element-summary.json")
        url = f"{self.cfg.fpl_api_base}/element-summary/{player_id}/"
        return self._cached_fetch(
            f"player_summary_{player_id}",
            lambda: self._fetch_url(url),
            ttl=self.cache.element_summary,
        )

    # ── Bulk element-summary fetch ──────────────────────────────────────

    def fetch_all_element_summaries(
        self,
        player_ids: list[int],
        max_workers: int = 8,
    ) -> dict[int, dict]:
        """Concurrently fetch element-summary data for multiple players.

        Each individual call goes through :meth:`fetch_player_summary`
        (which uses the in-memory TTL cache), so repeated calls within the
        TTL window are free.

        Returns
        -------
        dict[int, dict]
            Mapping of ``player_id -> element-summary JSON``.  Players whose
            fetch failed are omitted.
        """
        results: dict[int, dict] = {}

        if not player_ids:
            return results

        logger.info(
            "Fetching element summaries for %d players (workers=%d)",
            len(player_ids),
            max_workers,
        )

        def _fetch_one(pid: int) -> tuple[int, dict | None]:
            try:
                return pid, self.fetch_player_summary(pid)
            except ExternalDependencyError as exc:
                logger.debug("Element-summary fetch failed for player %d: %s", pid, exc)
                return pid, None

        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            futures = {pool.submit(_fetch_one, pid): pid for pid in player_ids}
            for future in as_completed(futures):
                pid, data = future.result()
                if data is not None:
                    results[pid] = data

        logger.info(
            "Fetched %d / %d element summaries successfully",
            len(results),
            len(player_ids),
        )
        return results
