"""Score caches keyed by repository."""

from gitscore.cache.base import ScoreCache
from gitscore.cache.file import FileScoreCache
from gitscore.cache.memory import MemoryScoreCache

__all__ = ["ScoreCache", "FileScoreCache", "MemoryScoreCache"]
