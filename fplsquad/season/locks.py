"""Per-participant mutual exclusion for roster read-modify-write sequences."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Generator


class ParticipantLocks:
    """Hands out one :class:`threading.Lock` per participant id."""

    def __init__(self):
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _lock_for(self, participant_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(participant_id)
            if lock is None:
                lock = self._locks[participant_id] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, participant_id: str) -> Generator[None, None, None]:
        with self._lock_for(participant_id):
            yield

    def forget(self, participant_id: str) -> None:
        with self._registry_lock:
            self._locks.pop(participant_id, None)
