"""GitHub data fetcher for repository scoring."""

import logging
import os
from datetime import datetime, timezone

import httpx

from gitscore.errors import (
    GitHubAPIError,
    RateLimitError,
    RepositoryNotFoundError,
    UnauthorizedError,
)
from gitscore.models.schemas import (
    CommitRecord,
    LicenseInfo,
    RateLimitInfo,
    RepositorySnapshot,
    TokenValidation,
)

logger = logging.getLogger(__name__)

# Scopes a token may carry without triggering an extra-permissions warning.
# Either one is enough to read repository data.
ALLOWED_SCOPES = ("repo", "public_repo")

TOKEN_PREFIXES = ("ghp_", "github_pat_")

COMMIT_HISTORY_LIMIT = 100

REPOSITORY_QUERY = """
query($owner: String!, $repo: String!, $historyLimit: Int!) {
  repository(owner: $owner, name: $repo) {
    name
    description
    url
    isPrivate
    isArchived
    createdAt
    updatedAt
    pushedAt
    stargazerCount
    forkCount
    watchers { totalCount }
    issues(states: OPEN) { totalCount }
    closedIssues: issues(states: CLOSED) { totalCount }
    pullRequests(states: OPEN) { totalCount }
    mergedPullRequests: pullRequests(states: MERGED) { totalCount }
    releases { totalCount }
    licenseInfo { name key }
    codeOfConduct { name key }
    securityPolicyUrl
    repositoryTopics(first: 10) { nodes { topic { name } } }
    languages(first: 10, orderBy: {field: SIZE, direction: DESC}) {
      edges { size node { name } }
    }
    defaultBranchRef {
      target {
        ... on Commit {
          history(first: $historyLimit) {
            totalCount
            nodes {
              committedDate
              author { name email user { login } }
              signature { isValid }
            }
          }
        }
      }
    }
    readme: object(expression: "HEAD:README.md") { ... on Blob { text } }
    readmeRst: object(expression: "HEAD:README.rst") { ... on Blob { text } }
    contributing: object(expression: "HEAD:CONTRIBUTING.md") { ... on Blob { text } }
    hasIssuesEnabled
    hasWikiEnabled
    hasDiscussionsEnabled
    hasVulnerabilityAlertsEnabled
  }
  rateLimit { limit cost remaining resetAt }
}
"""

WORKFLOW_QUERY = """
query($owner: String!, $repo: String!) {
  repository(owner: $owner, name: $repo) {
    object(expression: "HEAD:.github/workflows") {
      ... on Tree { entries { name type } }
    }
  }
}
"""


def _parse_datetime(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _total(node: dict | None) -> int:
    return (node or {}).get("totalCount", 0) or 0


def _blob_text(node: dict | None) -> str | None:
    return (node or {}).get("text")


def parse_repository_snapshot(owner: str, repo: str, data: dict) -> RepositorySnapshot:
    """Build a snapshot from the ``repository`` object of a GraphQL response.

    Missing optional fields map to their model defaults.
    """
    history = ((data.get("defaultBranchRef") or {}).get("target") or {}).get("history") or {}

    commits = []
    for node in history.get("nodes") or []:
        committed_at = _parse_datetime(node.get("committedDate"))
        if committed_at is None:
            continue
        author = node.get("author") or {}
        user = author.get("user") or {}
        signature = node.get("signature") or {}
        commits.append(
            CommitRecord(
                committed_at=committed_at,
                author_name=author.get("name"),
                author_email=author.get("email"),
                author_login=user.get("login"),
                signature_valid=signature.get("isValid") if signature else None,
            )
        )

    license_data = data.get("licenseInfo")
    license_info = None
    if license_data and license_data.get("name"):
        license_info = LicenseInfo(name=license_data["name"], key=license_data.get("key") or "")

    languages = (data.get("languages") or {}).get("edges") or []
    primary_language = None
    if languages:
        primary_language = (languages[0].get("node") or {}).get("name")

    topics = [
        (node.get("topic") or {}).get("name")
        for node in (data.get("repositoryTopics") or {}).get("nodes") or []
    ]

    return RepositorySnapshot(
        owner=owner,
        name=data.get("name") or repo,
        description=data.get("description"),
        url=data.get("url") or f"https://github.com/{owner}/{repo}",
        stars=data.get("stargazerCount") or 0,
        forks=data.get("forkCount") or 0,
        watchers=_total(data.get("watchers")),
        open_issues=_total(data.get("issues")),
        closed_issues=_total(data.get("closedIssues")),
        open_prs=_total(data.get("pullRequests")),
        merged_prs=_total(data.get("mergedPullRequests")),
        releases=_total(data.get("releases")),
        license=license_info,
        has_code_of_conduct=data.get("codeOfConduct") is not None,
        security_policy_url=data.get("securityPolicyUrl"),
        commits=commits,
        total_commits=history.get("totalCount") or len(commits),
        readme=_blob_text(data.get("readme")) or _blob_text(data.get("readmeRst")),
        contributing=_blob_text(data.get("contributing")),
        has_issues_enabled=bool(data.get("hasIssuesEnabled")),
        has_wiki_enabled=bool(data.get("hasWikiEnabled")),
        has_discussions_enabled=bool(data.get("hasDiscussionsEnabled")),
        has_vulnerability_alerts_enabled=bool(data.get("hasVulnerabilityAlertsEnabled")),
        created_at=_parse_datetime(data.get("createdAt")),
        updated_at=_parse_datetime(data.get("updatedAt")),
        pushed_at=_parse_datetime(data.get("pushedAt")),
        primary_language=primary_language,
        topics=[topic for topic in topics if topic],
        is_private=bool(data.get("isPrivate")),
        is_archived=bool(data.get("isArchived")),
    )


def parse_scopes_header(value: str | None) -> list[str]:
    """Split an ``X-OAuth-Scopes`` header into scope names."""
    if not value:
        return []
    return [scope.strip() for scope in value.split(",") if scope.strip()]


class GitHubFetcher:
    """Fetches repository data from the GitHub GraphQL API.

    Requires a GitHub personal access token. Set GITHUB_TOKEN environment
    variable or pass token to constructor. One fetcher is created per caller
    and passed where it is needed.
    """

    BASE_URL = "https://api.github.com"
    GRAPHQL_URL = "https://api.github.com/graphql"

    def __init__(
        self,
        token: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        """Initialize the fetcher.

        Args:
            token: GitHub personal access token. If not provided, uses GITHUB_TOKEN env var.
            client: Optional httpx client. If not provided, a new client is created per request.
            timeout: Request timeout in seconds for clients created by the fetcher.
        """
        self._token = token or os.environ.get("GITHUB_TOKEN")
        self._client = client
        self._timeout = timeout

        # Rate limit tracking
        self.rate_limit: RateLimitInfo | None = None
        self.rate_limit_remaining: int = 5000
        self.rate_limit_reset: datetime | None = None

    def bind_client(self, client: httpx.AsyncClient | None) -> None:
        """Share an externally managed HTTP client (None to stop sharing)."""
        self._client = client

    @property
    def has_client(self) -> bool:
        return self._client is not None

    def _headers(self) -> dict[str, str]:
        """Get headers for GitHub API requests."""
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create an HTTP client."""
        if self._client is not None:
            return self._client
        return httpx.AsyncClient(timeout=self._timeout, headers=self._headers())

    def _update_rate_limits(self, response: httpx.Response) -> None:
        """Extract and store rate limit info from response headers."""
        remaining = response.headers.get("X-RateLimit-Remaining")
        reset = response.headers.get("X-RateLimit-Reset")

        if remaining is not None:
            self.rate_limit_remaining = int(remaining)
        if reset is not None:
            self.rate_limit_reset = datetime.fromtimestamp(int(reset), tz=timezone.utc)

    def _raise_for_status(self, response: httpx.Response) -> None:
        """Map HTTP failures onto the error taxonomy."""
        if response.status_code == 401:
            raise UnauthorizedError()
        if response.status_code == 429 or (
            response.status_code == 403 and response.headers.get("X-RateLimit-Remaining") == "0"
        ):
            raise RateLimitError(reset_at=self.rate_limit_reset, remaining=0)
        if response.is_error:
            raise GitHubAPIError(
                f"GitHub API returned {response.status_code}", status_code=response.status_code
            )

    async def _graphql(self, query: str, variables: dict) -> dict:
        """Run a GraphQL query and return the decoded response body."""
        client = await self._get_client()
        try:
            response = await client.post(
                self.GRAPHQL_URL,
                json={"query": query, "variables": variables},
                headers=self._headers(),
            )
            self._update_rate_limits(response)
            self._raise_for_status(response)
            try:
                body = response.json()
            except ValueError as e:
                raise GitHubAPIError(f"Invalid response from GitHub: {e}") from e
            if not isinstance(body, dict):
                raise GitHubAPIError("Invalid response from GitHub: expected a JSON object")
            return body
        finally:
            if self._client is None:
                await client.aclose()

    def _check_errors(self, body: dict, owner: str, repo: str) -> None:
        """Raise for GraphQL-level errors reported with a 200 response."""
        errors = body.get("errors") or []
        for error in errors:
            error_type = error.get("type")
            if error_type == "RATE_LIMITED":
                raise RateLimitError(reset_at=self.rate_limit_reset, remaining=0)
            if error_type == "NOT_FOUND":
                raise RepositoryNotFoundError(owner, repo)
        if errors and not body.get("data"):
            raise GitHubAPIError(errors[0].get("message", "GraphQL query failed"))

    def _store_rate_limit(self, data: dict) -> None:
        rate = data.get("rateLimit")
        if not rate:
            return
        self.rate_limit = RateLimitInfo(
            limit=rate.get("limit", 5000),
            cost=rate.get("cost", 0),
            remaining=rate.get("remaining", 0),
            reset_at=_parse_datetime(rate.get("resetAt")),
        )
        self.rate_limit_remaining = self.rate_limit.remaining
        self.rate_limit_reset = self.rate_limit.reset_at

    async def fetch_repository_snapshot(self, owner: str, repo: str) -> RepositorySnapshot:
        """Fetch everything needed to score a repository.

        Args:
            owner: Repository owner.
            repo: Repository name.

        Returns:
            RepositorySnapshot for the repository.

        Raises:
            RepositoryNotFoundError: If the repository does not exist or is not readable.
            RateLimitError: If the API quota is exhausted.
            UnauthorizedError: If the token is rejected.
        """
        body = await self._graphql(
            REPOSITORY_QUERY,
            {"owner": owner, "repo": repo, "historyLimit": COMMIT_HISTORY_LIMIT},
        )
        self._check_errors(body, owner, repo)

        data = body.get("data") or {}
        self._store_rate_limit(data)

        repository = data.get("repository")
        if repository is None:
            raise RepositoryNotFoundError(owner, repo)

        return parse_repository_snapshot(owner, repo, repository)

    async def fetch_workflow_listing(self, owner: str, repo: str) -> list[str] | None:
        """Fetch the filenames under ``.github/workflows``.

        Never raises. Returns an empty list when the directory does not exist
        and None when the listing could not be fetched.
        """
        try:
            body = await self._graphql(WORKFLOW_QUERY, {"owner": owner, "repo": repo})
            self._check_errors(body, owner, repo)

            repository = (body.get("data") or {}).get("repository")
            if repository is None:
                return None

            tree = repository.get("object") or {}
            return [entry["name"] for entry in tree.get("entries") or [] if entry.get("name")]
        except Exception as e:
            logger.warning(f"Could not fetch workflows for {owner}/{repo}: {e}")
            return None

    async def validate_token(self) -> TokenValidation:
        """Check which OAuth scopes the token carries.

        Returns:
            TokenValidation listing granted scopes and any beyond the allow-list.

        Raises:
            UnauthorizedError: If no token is configured or GitHub rejects it.
        """
        if not self._token or not self._token.strip():
            raise UnauthorizedError("GitHub token is required to access repository data.")

        if not self._token.startswith(TOKEN_PREFIXES):
            logger.warning("Token format doesn't match expected GitHub personal access token format.")

        client = await self._get_client()
        try:
            response = await client.get(f"{self.BASE_URL}/user", headers=self._headers())
            self._update_rate_limits(response)
            self._raise_for_status(response)
        finally:
            if self._client is None:
                await client.aclose()

        header = response.headers.get("X-OAuth-Scopes")
        scopes = parse_scopes_header(header)
        extras = [scope for scope in scopes if scope not in ALLOWED_SCOPES]
        scopes_reported = header is not None

        return TokenValidation(
            scopes=scopes,
            extras=extras,
            scopes_reported=scopes_reported,
            has_only_allowed_scopes=not extras,
            # Fine-grained tokens carry no scope header; access is checked per request
            has_required_scope=any(scope in ALLOWED_SCOPES for scope in scopes) or not scopes_reported,
        )
