"""Persistent file-based score cache.

Stores one JSON file per repository under the cache directory. Each file is
the JSON form of a CacheEntry (owner, repo, created_at, payload).
"""

import hashlib
import logging
import os
import tempfile
from datetime import timedelta
from pathlib import Path

from gitscore.cache.base import ScoreCache
from gitscore.config import DEFAULT_CACHE_DIR, DEFAULT_CACHE_TTL_HOURS
from gitscore.models.schemas import CacheEntry

logger = logging.getLogger(__name__)

DEFAULT_FILE_TTL = timedelta(hours=DEFAULT_CACHE_TTL_HOURS)


class FileScoreCache(ScoreCache):
    """File-backed cache that survives process restarts.

    Directory structure:
        {cache_dir}/
        ├── {hash}.json
        └── {hash}.json
    """

    def __init__(
        self,
        cache_dir: Path | str | None = None,
        ttl: timedelta = DEFAULT_FILE_TTL,
    ) -> None:
        """Initialize the cache.

        Args:
            cache_dir: Directory for cache files. Defaults to ~/.cache/gitscore.
            ttl: Age after which entries are treated as absent.
        """
        super().__init__(ttl)
        self.cache_dir = Path(cache_dir) if cache_dir is not None else DEFAULT_CACHE_DIR

    def _cache_path(self, key: tuple[str, str]) -> Path:
        """Get the file path for a key using a SHA-256 hash of owner/repo."""
        digest = hashlib.sha256(f"{key[0]}/{key[1]}".encode()).hexdigest()[:16]
        return self.cache_dir / f"{digest}.json"

    def _read(self, key: tuple[str, str]) -> CacheEntry | None:
        path = self._cache_path(key)
        if not path.exists():
            return None
        entry = CacheEntry.model_validate_json(path.read_text(encoding="utf-8"))
        if (entry.owner, entry.repo) != key:
            # Hash collision; treat as a miss
            return None
        return entry

    def _write(self, key: tuple[str, str], entry: CacheEntry) -> None:
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        path = self._cache_path(key)
        data = entry.model_dump_json(indent=2)

        fd, tmp_name = tempfile.mkstemp(dir=self.cache_dir, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(data)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def _remove(self, key: tuple[str, str]) -> bool:
        path = self._cache_path(key)
        if path.exists():
            path.unlink()
            return True
        return False

    def clear(self) -> int:
        """Delete all cache files. Returns the number removed."""
        if not self.cache_dir.exists():
            return 0

        count = 0
        for path in self.cache_dir.glob("*.json"):
            try:
                path.unlink()
                count += 1
            except OSError as e:
                logger.warning(f"Could not delete {path}: {e}")
        logger.info(f"Cleared {count} cached score(s) from {self.cache_dir}")
        return count
