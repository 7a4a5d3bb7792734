"""Transient in-process score cache."""

from datetime import timedelta

from gitscore.cache.base import ScoreCache
from gitscore.models.schemas import CacheEntry

DEFAULT_MEMORY_TTL = timedelta(hours=1)


class MemoryScoreCache(ScoreCache):
    """Cache holding serialized entries in a dict for the life of the process.

    Entries are stored as JSON strings so that a payload that cannot be
    serialized fails at write time, the same way it would for a persistent
    store.
    """

    def __init__(self, ttl: timedelta = DEFAULT_MEMORY_TTL) -> None:
        super().__init__(ttl)
        self._store: dict[tuple[str, str], str] = {}

    def _read(self, key: tuple[str, str]) -> CacheEntry | None:
        raw = self._store.get(key)
        if raw is None:
            return None
        return CacheEntry.model_validate_json(raw)

    def _write(self, key: tuple[str, str], entry: CacheEntry) -> None:
        self._store[key] = entry.model_dump_json()

    def _remove(self, key: tuple[str, str]) -> bool:
        return self._store.pop(key, None) is not None

    def clear(self) -> int:
        count = len(self._store)
        self._store.clear()
        return count

    def __len__(self) -> int:
        return len(self._store)
