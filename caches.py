"""
In-memory per-player caches used as fallbacks when Riot is unreachable.

All three are keyed by puuid and written through on every successful live
fetch. They live in process memory and reset on restart.
"""

import threading
import time


class PuuidCache:
    """puuid -> (data, cached_at), one lock for single get/set operations."""

    def __init__(self, clock=time.time):
        self._clock = clock
        self._entries = {}
        self._lock = threading.Lock()

    def _is_valid(self, data, cached_at):
        return True

    def get(self, puuid):
        with self._lock:
            entry = self._entries.get(puuid)
            if entry is None:
                return None
            if not self._is_valid(*entry):
                del self._entries[puuid]
                return None
            return entry[0]

    def set(self, puuid, data):
        with self._lock:
            self._entries[puuid] = (data, self._clock())

    def clear(self, puuid=None):
        with self._lock:
            if puuid is None:
                self._entries.clear()
            else:
                self._entries.pop(puuid, None)


class InventoryCache(PuuidCache):
    """Last hydrated inventory per player. No TTL: the newest write wins."""


class StoreCache(PuuidCache):
    """Last hydrated store per player, valid until the daily rotation expires."""

    def set(self, puuid, data, expires_at=None):
        # expires_at in epoch seconds; stored alongside the payload
        with self._lock:
            self._entries[puuid] = ({"data": data, "expires_at": expires_at}, self._clock())

    def _is_valid(self, data, cached_at):
        return data["expires_at"] is None or self._clock() < data["expires_at"]

    def get(self, puuid):
        entry = super().get(puuid)
        return entry["data"] if entry else None


class ProfileCache(PuuidCache):
    """Last non-partial profile per player."""
