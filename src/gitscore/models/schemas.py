"""Pydantic models for repository data and scores."""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _assume_utc(value: datetime | None) -> datetime | None:
    """Treat naive timestamps as UTC so they compare with aware ones."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Category(str, Enum):
    """Top-level scoring dimensions."""

    DOCUMENTATION = "documentation"
    MAINTENANCE = "maintenance"
    QUALITY = "quality"
    COMMUNITY = "community"
    POPULARITY = "popularity"
    SECURITY = "security"


# --- GitHub Data Models ---


class LicenseInfo(BaseModel):
    """License descriptor as reported by GitHub."""

    model_config = ConfigDict(frozen=True)

    name: str
    key: str


class CommitRecord(BaseModel):
    """A single commit from the default branch history."""

    model_config = ConfigDict(frozen=True)

    committed_at: datetime
    author_name: str | None = None
    author_email: str | None = None
    author_login: str | None = None
    signature_valid: bool | None = None  # Fetched but not scored

    @field_validator("committed_at")
    @classmethod
    def committed_at_utc(cls, value: datetime) -> datetime:
        return _assume_utc(value)

    @property
    def identity(self) -> str | None:
        """Author identity: login, else email, else display name (lowercased)."""
        for value in (self.author_login, self.author_email, self.author_name):
            if value and value.strip():
                return value.strip().lower()
        return None


class RepositorySnapshot(BaseModel):
    """Everything fetched about a repository for one scoring run."""

    model_config = ConfigDict(frozen=True)

    owner: str
    name: str
    description: str | None = None
    url: str = ""
    stars: int = 0
    forks: int = 0
    watchers: int = 0
    open_issues: int = 0
    closed_issues: int = 0
    open_prs: int = 0
    merged_prs: int = 0
    releases: int = 0
    license: LicenseInfo | None = None
    has_code_of_conduct: bool = False
    security_policy_url: str | None = None
    commits: list[CommitRecord] = Field(default_factory=list)  # Most recent first
    total_commits: int = 0
    readme: str | None = None
    contributing: str | None = None
    has_issues_enabled: bool = False
    has_wiki_enabled: bool = False
    has_discussions_enabled: bool = False
    has_vulnerability_alerts_enabled: bool = False
    workflows: list[str] | None = None  # None when the listing could not be fetched
    created_at: datetime | None = None
    updated_at: datetime | None = None
    pushed_at: datetime | None = None
    primary_language: str | None = None
    topics: list[str] = Field(default_factory=list)
    is_private: bool = False
    is_archived: bool = False

    @field_validator("created_at", "updated_at", "pushed_at")
    @classmethod
    def timestamps_utc(cls, value: datetime | None) -> datetime | None:
        return _assume_utc(value)


class RateLimitInfo(BaseModel):
    """GraphQL rate limit status returned alongside a query."""

    limit: int = 5000
    cost: int = 0
    remaining: int = 5000
    reset_at: datetime | None = None


class TokenValidation(BaseModel):
    """Result of checking the OAuth scopes granted to a token."""

    scopes: list[str] = Field(default_factory=list)
    extras: list[str] = Field(default_factory=list)  # Granted but not needed
    scopes_reported: bool = True  # Fine-grained tokens report no scopes header
    has_only_allowed_scopes: bool = True
    has_required_scope: bool = False


# --- Scoring Models ---


class CategoryResult(BaseModel):
    """Output of one category scorer on a 0-1 scale."""

    model_config = ConfigDict(frozen=True)

    score: float = Field(ge=0, le=1)
    details: str
    breakdown: dict[str, float] = Field(default_factory=dict)


class CategoryScore(BaseModel):
    """Category score as presented in a result, on a 0-10 scale."""

    model_config = ConfigDict(frozen=True)

    score: float = Field(ge=0, le=10)
    details: str
    weight: float
    breakdown: dict[str, float] = Field(default_factory=dict)


class RepositorySummary(BaseModel):
    """Short description of the scored repository."""

    model_config = ConfigDict(frozen=True)

    owner: str
    name: str
    description: str | None = None
    url: str = ""
    stars: int = 0
    forks: int = 0
    language: str = "Unknown"
    license: str | None = None
    updated_at: datetime | None = None


class ScoreMetadata(BaseModel):
    """How and when a score was produced."""

    model_config = ConfigDict(frozen=True)

    scoring_version: str
    category_weights: dict[str, float]
    calculated_at: datetime


class ScoreResult(BaseModel):
    """Complete score for a repository."""

    model_config = ConfigDict(frozen=True)

    final_score: float = Field(ge=0, le=10)
    categories: dict[str, CategoryScore]  # Keyed by Category value
    repository: RepositorySummary
    metadata: ScoreMetadata


class CacheEntry(BaseModel):
    """A stored score and the moment it was written."""

    owner: str
    repo: str
    payload: ScoreResult
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("created_at")
    @classmethod
    def created_at_utc(cls, value: datetime) -> datetime:
        return _assume_utc(value)

    def age_seconds(self, now: datetime | None = None) -> float:
        """Seconds elapsed since the entry was written."""
        now = now or datetime.now(timezone.utc)
        return (now - self.created_at).total_seconds()


class ScoreReport(BaseModel):
    """Result handed back to callers of the pipeline."""

    owner: str
    repo: str
    result: ScoreResult
    cached: bool = False
    cache_age_minutes: int | None = None
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    rate_limit: RateLimitInfo | None = None
