"""End-to-end scoring pipeline for repositories."""

import asyncio
import logging
from datetime import datetime, timezone

import httpx

from gitscore.analyzers.github import GitHubFetcher
from gitscore.analyzers.scorer import Scorer
from gitscore.cache.base import ScoreCache
from gitscore.errors import TokenScopeError
from gitscore.models.schemas import ScoreReport, ScoreResult, TokenValidation

logger = logging.getLogger(__name__)


class ScoringPipeline:
    """Orchestrates scoring for a single repository.

    Pipeline stages:
    1. Look up a fresh cached score
    2. Fetch the repository snapshot and workflow listing concurrently
    3. Calculate scores
    4. Store the result in the cache

    Token scopes are checked by the caller through ``verify_token`` before
    scoring; ``score_repository`` does not re-check them.
    """

    def __init__(
        self,
        github_token: str | None = None,
        cache: ScoreCache | None = None,
        scorer: Scorer | None = None,
        fetcher: GitHubFetcher | None = None,
        timeout: float = 30.0,
    ) -> None:
        """Initialize the pipeline.

        Args:
            github_token: GitHub personal access token.
            cache: Score cache. None disables caching.
            scorer: Scorer to use. Defaults to the standard weights.
            fetcher: GitHub fetcher. Built from ``github_token`` when omitted.
            timeout: HTTP timeout in seconds for the shared client.
        """
        self.github_token = github_token
        self.cache = cache
        self.scorer = scorer or Scorer()
        self.github = fetcher or GitHubFetcher(token=github_token, timeout=timeout)
        self.timeout = timeout
        self._http_client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "ScoringPipeline":
        """Set up shared HTTP client."""
        if not self.github.has_client:
            self._http_client = httpx.AsyncClient(timeout=self.timeout)
            self.github.bind_client(self._http_client)
        return self

    async def __aexit__(self, *args) -> None:
        """Clean up HTTP client."""
        if self._http_client:
            self.github.bind_client(None)
            await self._http_client.aclose()
            self._http_client = None

    async def verify_token(self) -> TokenValidation:
        """Check the token's scopes before any repository fetch.

        Returns:
            TokenValidation for the configured token.

        Raises:
            UnauthorizedError: If the token is missing or rejected.
            TokenScopeError: If the token lacks both 'repo' and 'public_repo'.
        """
        validation = await self.github.validate_token()

        if not validation.has_required_scope:
            raise TokenScopeError(validation.scopes)

        if validation.extras:
            logger.warning(
                f"Token has extra permissions you don't really need: {', '.join(validation.extras)}. "
                "Consider using a narrower-scoped token."
            )
        return validation

    async def score_repository(
        self,
        owner: str,
        repo: str,
        use_cache: bool = True,
    ) -> ScoreReport:
        """Score a repository, reusing a fresh cached result when available.

        Args:
            owner: Repository owner.
            repo: Repository name.
            use_cache: Whether to consult the cache before fetching.

        Returns:
            ScoreReport with the result and cache status.

        Raises:
            RepositoryNotFoundError: If the repository is missing or unreadable.
            RateLimitError: If the GitHub quota is exhausted.
            UnauthorizedError: If the token is rejected.
        """
        # Stage 1: Cache lookup
        if use_cache and self.cache is not None:
            entry = self.cache.get(owner, repo)
            if entry is not None:
                logger.info(f"Cache hit for {owner}/{repo}")
                return ScoreReport(
                    owner=owner,
                    repo=repo,
                    result=entry.payload,
                    cached=True,
                    cache_age_minutes=int(entry.age_seconds() // 60),
                    generated_at=entry.created_at,
                )

        # Stage 2: Fetch both sources concurrently
        logger.info(f"Fetching fresh data for {owner}/{repo}")
        # Both fetches settle before a snapshot error propagates
        snapshot, workflows = await asyncio.gather(
            self.github.fetch_repository_snapshot(owner, repo),
            self.github.fetch_workflow_listing(owner, repo),
            return_exceptions=True,
        )
        if isinstance(snapshot, BaseException):
            raise snapshot
        if isinstance(workflows, BaseException):
            logger.warning(f"Workflow listing failed for {owner}/{repo}: {workflows}")
            workflows = None

        # Stage 3: Score
        result = self.scorer.calculate_scores(snapshot, workflows)

        # Stage 4: Cache
        if self.cache is not None:
            self.cache.put(owner, repo, result)

        return ScoreReport(
            owner=owner,
            repo=repo,
            result=result,
            cached=False,
            generated_at=datetime.now(timezone.utc),
            rate_limit=self.github.rate_limit,
        )

    def get_cached_score(self, owner: str, repo: str) -> ScoreResult | None:
        """Return a fresh cached score, if caching is enabled."""
        if self.cache is None:
            return None
        return self.cache.get_cached_score(owner, repo)

    def cache_score(self, owner: str, repo: str, result: ScoreResult) -> bool:
        """Store a score, if caching is enabled."""
        if self.cache is None:
            return False
        return self.cache.cache_score(owner, repo, result)
