"""Abstract score cache with time-based expiry."""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone

from gitscore.models.schemas import CacheEntry, ScoreResult

logger = logging.getLogger(__name__)


class ScoreCache(ABC):
    """Key-value store of scores keyed by (owner, repo).

    Keys are case-insensitive. Entries older than ``ttl`` are treated as
    absent. Backend failures are logged and reported as a miss (on read) or
    ``False`` (on write); they never propagate to the caller.
    """

    def __init__(self, ttl: timedelta) -> None:
        self.ttl = ttl

    @staticmethod
    def make_key(owner: str, repo: str) -> tuple[str, str]:
        """Normalize an (owner, repo) pair into a cache key."""
        return owner.strip().lower(), repo.strip().lower()

    def is_expired(self, entry: CacheEntry, now: datetime | None = None) -> bool:
        """Check whether an entry has outlived the TTL."""
        return entry.age_seconds(now) > self.ttl.total_seconds()

    def get(self, owner: str, repo: str, now: datetime | None = None) -> CacheEntry | None:
        """Get a fresh entry for a repository.

        Args:
            owner: Repository owner.
            repo: Repository name.
            now: Reference time for the TTL check. Defaults to the current time.

        Returns:
            The cached entry, or None if missing, expired or unreadable.
        """
        key = self.make_key(owner, repo)
        try:
            entry = self._read(key)
            expired = entry is not None and self.is_expired(entry, now)
        except Exception as e:
            logger.warning(f"Cache retrieval error for {key[0]}/{key[1]}: {e}")
            return None

        if entry is None:
            logger.debug(f"Cache miss for {key[0]}/{key[1]}")
            return None

        if expired:
            logger.debug(f"Cache expired for {key[0]}/{key[1]}")
            try:
                self._remove(key)
            except Exception as e:
                logger.warning(f"Could not evict expired entry {key[0]}/{key[1]}: {e}")
            return None

        logger.debug(f"Cache hit for {key[0]}/{key[1]}")
        return entry

    def put(
        self,
        owner: str,
        repo: str,
        payload: ScoreResult,
        now: datetime | None = None,
    ) -> bool:
        """Store a score, replacing any existing entry for the repository.

        Returns:
            True if stored, False if the backend failed.
        """
        owner_key, repo_key = self.make_key(owner, repo)
        entry = CacheEntry(
            owner=owner_key,
            repo=repo_key,
            payload=payload,
            created_at=now or datetime.now(timezone.utc),
        )
        try:
            self._write((owner_key, repo_key), entry)
        except Exception as e:
            logger.warning(f"Cache storage error for {owner_key}/{repo_key}: {e}")
            return False

        logger.debug(f"Cached score for {owner_key}/{repo_key}")
        return True

    def delete(self, owner: str, repo: str) -> bool:
        """Remove an entry. Returns True if one was removed."""
        key = self.make_key(owner, repo)
        try:
            return self._remove(key)
        except Exception as e:
            logger.warning(f"Cache delete error for {key[0]}/{key[1]}: {e}")
            return False

    def get_cached_score(self, owner: str, repo: str) -> ScoreResult | None:
        """Get the cached score for a repository, if still fresh."""
        entry = self.get(owner, repo)
        return entry.payload if entry else None

    def cache_score(self, owner: str, repo: str, result: ScoreResult) -> bool:
        """Cache a score for a repository."""
        return self.put(owner, repo, result)

    @abstractmethod
    def _read(self, key: tuple[str, str]) -> CacheEntry | None:
        """Load the stored entry for a key, regardless of age."""

    @abstractmethod
    def _write(self, key: tuple[str, str], entry: CacheEntry) -> None:
        """Persist an entry, overwriting any previous one."""

    @abstractmethod
    def _remove(self, key: tuple[str, str]) -> bool:
        """Delete the stored entry for a key."""

    @abstractmethod
    def clear(self) -> int:
        """Remove every entry. Returns the number removed."""
