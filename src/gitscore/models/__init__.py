"""Data models and schemas."""

from gitscore.models.schemas import (
    CacheEntry,
    Category,
    CategoryResult,
    CategoryScore,
    CommitRecord,
    LicenseInfo,
    RateLimitInfo,
    RepositorySnapshot,
    RepositorySummary,
    ScoreMetadata,
    ScoreReport,
    ScoreResult,
    TokenValidation,
)

__all__ = [
    "CacheEntry",
    "Category",
    "CategoryResult",
    "CategoryScore",
    "CommitRecord",
    "LicenseInfo",
    "RateLimitInfo",
    "RepositorySnapshot",
    "RepositorySummary",
    "ScoreMetadata",
    "ScoreReport",
    "ScoreResult",
    "TokenValidation",
]
