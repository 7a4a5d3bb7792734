"""Exceptions raised at the GitHub fetch boundary."""

from __future__ import annotations

from datetime import datetime


class GitScoreError(Exception):
    """Base class for all gitscore errors."""


class GitHubAPIError(GitScoreError):
    """Raised when GitHub returns an unexpected error."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class RepositoryNotFoundError(GitHubAPIError):
    """Raised when a repository does not exist or the token cannot read it."""

    def __init__(self, owner: str, repo: str):
        self.owner = owner
        self.repo = repo
        super().__init__(f"Repository {owner}/{repo} not found", status_code=404)


class UnauthorizedError(GitHubAPIError):
    """Raised when GitHub rejects the token."""

    def __init__(self, message: str = "Bad credentials", scopes: list[str] | None = None):
        self.scopes = scopes or []
        super().__init__(message, status_code=401)


class TokenScopeError(UnauthorizedError):
    """Raised when a token lacks the scopes needed to read repositories."""

    def __init__(self, scopes: list[str]):
        granted = ", ".join(scopes) if scopes else "none"
        super().__init__(
            "Token must have 'repo' or 'public_repo' permissions to access repository data. "
            f"Current scopes: {granted}",
            scopes=scopes,
        )


class RateLimitError(GitHubAPIError):
    """Raised when the GitHub API quota is exhausted."""

    def __init__(self, reset_at: datetime | None = None, remaining: int = 0):
        self.reset_at = reset_at
        self.remaining = remaining
        when = f", resets at {reset_at.isoformat()}" if reset_at else ""
        super().__init__(f"GitHub API rate limit exceeded{when}", status_code=429)
