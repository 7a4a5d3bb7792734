"""Score calculator for repository health metrics."""

import math
import re
from datetime import datetime, timedelta, timezone

from gitscore.analyzers.normalize import normalize_linear, normalize_log
from gitscore.models.schemas import (
    Category,
    CategoryResult,
    CategoryScore,
    RepositorySnapshot,
    RepositorySummary,
    ScoreMetadata,
    ScoreResult,
)

SCORING_VERSION = "2.0"

# Sub-metrics with no data source yet
NOT_YET_MEASURABLE = 0.0
NEUTRAL_PLACEHOLDER = 0.5

# README patterns
HEADING_RE = re.compile(r"^#{1,6}\s", re.MULTILINE)
CODE_BLOCK_RE = re.compile(r"```.*?```", re.DOTALL)
LINK_RE = re.compile(r"\[.*?\]\(.*?\)")
IMAGE_RE = re.compile(r"!\[.*?\]\(.*?\)|<img\s", re.IGNORECASE)


def round_half_up(value: float, digits: int = 1) -> float:
    """Round like a percentage display would (0.25 -> 0.3, not 0.2)."""
    factor = 10**digits
    return math.floor(value * factor + 0.5 + 1e-9) / factor


class Scorer:
    """Calculates health scores from a repository snapshot.

    Scoring weights (total 1.0):
    - Documentation: 0.20
    - Maintenance: 0.20
    - Quality: 0.15
    - Community: 0.15
    - Popularity: 0.15
    - Security: 0.15

    Each category is the mean of four sub-metrics on a 0-1 scale. Categories
    never read each other's output.
    """

    WEIGHTS = {
        Category.DOCUMENTATION: 0.20,
        Category.MAINTENANCE: 0.20,
        Category.QUALITY: 0.15,
        Category.COMMUNITY: 0.15,
        Category.POPULARITY: 0.15,
        Category.SECURITY: 0.15,
    }

    # Maintenance windows
    RECENT_PUSH_DAYS = 30
    STALE_PUSH_DAYS = 90
    FREQUENCY_WINDOW_DAYS = 90
    FREQUENCY_WINDOW_WEEKS = 12
    TARGET_COMMITS_PER_WEEK = 2

    def __init__(self, weights: dict[Category, float] | None = None) -> None:
        """Initialize the scorer.

        Args:
            weights: Category weights. Defaults to ``WEIGHTS``.

        Raises:
            ValueError: If the weights do not cover every category or do not sum to 1.0.
        """
        weights = dict(weights) if weights is not None else dict(self.WEIGHTS)
        if set(weights) != set(Category):
            raise ValueError(f"Weights must cover exactly: {', '.join(c.value for c in Category)}")
        total = sum(weights.values())
        if not math.isclose(total, 1.0, abs_tol=1e-9):
            raise ValueError(f"Category weights must sum to 1.0, got {total}")
        self.weights = weights

    def calculate_scores(
        self,
        snapshot: RepositorySnapshot,
        workflows: list[str] | None = None,
        now: datetime | None = None,
    ) -> ScoreResult:
        """Calculate all category scores and the weighted overall score.

        Args:
            snapshot: Repository data fetched for this run.
            workflows: Workflow filenames. Falls back to ``snapshot.workflows``.
            now: Reference time for recency windows. Defaults to the current time.

        Returns:
            ScoreResult with per-category breakdown and metadata.
        """
        now = now or datetime.now(timezone.utc)
        if workflows is None:
            workflows = snapshot.workflows

        results = {
            Category.DOCUMENTATION: self.calculate_documentation_score(snapshot),
            Category.MAINTENANCE: self.calculate_maintenance_score(snapshot, now),
            Category.QUALITY: self.calculate_quality_score(workflows),
            Category.COMMUNITY: self.calculate_community_score(snapshot),
            Category.POPULARITY: self.calculate_popularity_score(snapshot),
            Category.SECURITY: self.calculate_security_score(snapshot),
        }

        weighted = sum(result.score * self.weights[category] for category, result in results.items())
        final_score = min(round_half_up(weighted * 10), 10.0)

        categories = {
            category.value: CategoryScore(
                score=round_half_up(result.score * 10),
                details=result.details,
                weight=self.weights[category],
                breakdown=result.breakdown,
            )
            for category, result in results.items()
        }

        return ScoreResult(
            final_score=final_score,
            categories=categories,
            repository=self._build_summary(snapshot),
            metadata=ScoreMetadata(
                scoring_version=SCORING_VERSION,
                category_weights={category.value: weight for category, weight in self.weights.items()},
                calculated_at=now,
            ),
        )

    def _build_summary(self, snapshot: RepositorySnapshot) -> RepositorySummary:
        return RepositorySummary(
            owner=snapshot.owner,
            name=snapshot.name,
            description=snapshot.description,
            url=snapshot.url,
            stars=snapshot.stars,
            forks=snapshot.forks,
            language=snapshot.primary_language or "Unknown",
            license=snapshot.license.name if snapshot.license else None,
            updated_at=snapshot.updated_at,
        )

    @staticmethod
    def _mean(breakdown: dict[str, float]) -> float:
        return max(0.0, min(1.0, sum(breakdown.values()) / len(breakdown)))

    # --- Documentation ---

    def calculate_documentation_score(self, snapshot: RepositorySnapshot) -> CategoryResult:
        """Calculate documentation score.

        Factors:
        - README length, structure, code examples, links and badges
        - CONTRIBUTING guide (> 100 characters)
        - Code of conduct
        - Release count (graduated)
        """
        readme = self._score_readme(snapshot.readme)
        contributing = 1.0 if snapshot.contributing and len(snapshot.contributing) > 100 else 0.0
        code_of_conduct = 1.0 if snapshot.has_code_of_conduct else 0.0
        releases = self._score_releases(snapshot.releases)

        breakdown = {
            "readme": readme,
            "contributing": contributing,
            "code_of_conduct": code_of_conduct,
            "releases": releases,
        }

        details = []
        if snapshot.readme is None:
            details.append("No README found")
        elif readme >= 1.0:
            details.append("Comprehensive README")
        elif readme > 0:
            details.append("Basic README")
        else:
            details.append("README too brief")
        details.append("CONTRIBUTING guide" if contributing else "No CONTRIBUTING guide")
        details.append("code of conduct" if code_of_conduct else "no code of conduct")
        details.append(f"{snapshot.releases} release(s)")

        return CategoryResult(score=self._mean(breakdown), details=", ".join(details), breakdown=breakdown)

    def _score_readme(self, text: str | None) -> float:
        """Score README quality on structure and richness (0, 0.5 or 1)."""
        if not text:
            return 0.0

        score = 0.0
        if len(text) > 500 and len(HEADING_RE.findall(text)) >= 2:
            score += 0.5

        has_code = len(CODE_BLOCK_RE.findall(text)) >= 1
        has_links = len(LINK_RE.findall(text)) >= 2
        has_images = len(IMAGE_RE.findall(text)) >= 1
        if has_code and has_links and has_images:
            score += 0.5

        return min(score, 1.0)

    def _score_releases(self, count: int) -> float:
        if count >= 5:
            return 1.0
        if count >= 2:
            return 0.7
        if count == 1:
            return 0.4
        return 0.0

    # --- Maintenance ---

    def calculate_maintenance_score(
        self,
        snapshot: RepositorySnapshot,
        now: datetime | None = None,
    ) -> CategoryResult:
        """Calculate maintenance score.

        Factors:
        - Push recency (30/90 day steps)
        - Commit frequency over the last 12 weeks against 2 commits/week
        - Issue close ratio (neutral 0.5 when there are no issues)
        - PR merge ratio (neutral 0.5 when there are no PRs)
        """
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)

        last_activity = snapshot.pushed_at
        if last_activity is None and snapshot.commits:
            last_activity = snapshot.commits[0].committed_at

        days_since_push = None
        recency = 0.0
        if last_activity is not None:
            days_since_push = (now - last_activity).days
            if days_since_push <= self.RECENT_PUSH_DAYS:
                recency = 1.0
            elif days_since_push <= self.STALE_PUSH_DAYS:
                recency = 0.5

        window_start = now - timedelta(days=self.FREQUENCY_WINDOW_DAYS)
        recent_commits = sum(1 for commit in snapshot.commits if commit.committed_at >= window_start)
        per_week = recent_commits / self.FREQUENCY_WINDOW_WEEKS
        frequency = max(0.0, min(per_week / self.TARGET_COMMITS_PER_WEEK, 1.0))

        total_issues = snapshot.open_issues + snapshot.closed_issues
        issue_management = snapshot.closed_issues / total_issues if total_issues > 0 else NEUTRAL_PLACEHOLDER

        total_prs = snapshot.open_prs + snapshot.merged_prs
        pr_management = snapshot.merged_prs / total_prs if total_prs > 0 else NEUTRAL_PLACEHOLDER

        breakdown = {
            "recency": recency,
            "frequency": frequency,
            "issue_management": issue_management,
            "pr_management": pr_management,
        }

        if days_since_push is None:
            activity = "No push activity recorded"
        else:
            activity = f"Last push {days_since_push} days ago"
        details = (
            f"{activity}, {recent_commits} commit(s) in the last 90 days, "
            f"{snapshot.closed_issues}/{total_issues} issues closed, "
            f"{snapshot.merged_prs}/{total_prs} PRs merged"
        )

        return CategoryResult(score=self._mean(breakdown), details=details, breakdown=breakdown)

    # --- Quality ---

    def calculate_quality_score(self, workflows: list[str] | None) -> CategoryResult:
        """Calculate quality score from the CI workflow listing.

        Test coverage and linting have no data source and stay at 0. Build status
        has no run data either and is held at the neutral placeholder.
        """
        has_workflows = bool(workflows)

        breakdown = {
            "ci_pipeline": 1.0 if has_workflows else 0.0,
            "test_coverage": NOT_YET_MEASURABLE,
            "linting": NOT_YET_MEASURABLE,
            "build_status": NEUTRAL_PLACEHOLDER,
        }

        details = f"{len(workflows)} workflow(s)" if has_workflows else "No CI/CD workflows"
        return CategoryResult(score=self._mean(breakdown), details=details, breakdown=breakdown)

    # --- Community ---

    def count_contributors(self, snapshot: RepositorySnapshot) -> int:
        """Count distinct commit authors in the fetched history (at least 1)."""
        identities = {commit.identity for commit in snapshot.commits if commit.identity}
        return max(len(identities), 1)

    def calculate_community_score(self, snapshot: RepositorySnapshot) -> CategoryResult:
        """Calculate community score.

        Factors:
        - Distinct contributors in recent history (log scale, 1-50)
        - Discussions or wiki enabled
        - Response time (placeholder, no issue timeline data)
        - Code of conduct
        """
        contributors = self.count_contributors(snapshot)
        has_forum = snapshot.has_discussions_enabled or snapshot.has_wiki_enabled

        breakdown = {
            "contributors": normalize_log(contributors, 1, 50),
            "discussions": 1.0 if has_forum else 0.0,
            "response_time": NEUTRAL_PLACEHOLDER,
            "community_health": 1.0 if snapshot.has_code_of_conduct else 0.0,
        }

        details = [f"{contributors} contributor(s)"]
        if snapshot.has_discussions_enabled:
            details.append("discussions enabled")
        elif snapshot.has_wiki_enabled:
            details.append("wiki enabled")
        else:
            details.append("no discussions or wiki")
        if snapshot.has_code_of_conduct:
            details.append("code of conduct")

        return CategoryResult(score=self._mean(breakdown), details=", ".join(details), breakdown=breakdown)

    # --- Popularity ---

    def calculate_popularity_score(self, snapshot: RepositorySnapshot) -> CategoryResult:
        """Calculate popularity score from stars, forks and watchers."""
        breakdown = {
            "stars": normalize_log(snapshot.stars, 0, 1000),
            "forks": normalize_log(snapshot.forks, 0, 100),
            "watchers": normalize_linear(snapshot.watchers, 0, 50),
            "downloads": NEUTRAL_PLACEHOLDER,
        }

        details = f"{snapshot.stars:,} stars, {snapshot.forks:,} forks, {snapshot.watchers:,} watchers"
        return CategoryResult(score=self._mean(breakdown), details=details, breakdown=breakdown)

    # --- Security ---

    def calculate_security_score(self, snapshot: RepositorySnapshot) -> CategoryResult:
        """Calculate security score.

        Factors:
        - Vulnerability alerts enabled
        - Dependency health (placeholder)
        - Signed commits (not yet measurable)
        - Published security policy
        """
        breakdown = {
            "vulnerability_alerts": 1.0 if snapshot.has_vulnerability_alerts_enabled else 0.0,
            "dependency_health": NEUTRAL_PLACEHOLDER,
            "signed_commits": NOT_YET_MEASURABLE,
            "security_practices": 1.0 if snapshot.security_policy_url else 0.0,
        }

        details = [
            "Vulnerability alerts enabled"
            if snapshot.has_vulnerability_alerts_enabled
            else "Vulnerability alerts disabled",
            "security policy published" if snapshot.security_policy_url else "no security policy",
        ]
        return CategoryResult(score=self._mean(breakdown), details=", ".join(details), breakdown=breakdown)


def calculate_repository_score(
    snapshot: RepositorySnapshot,
    workflows: list[str] | None = None,
    now: datetime | None = None,
) -> ScoreResult:
    """Score a repository with the default weights.

    Args:
        snapshot: Repository data fetched for this run.
        workflows: Workflow filenames, or None when the listing is unavailable.
        now: Reference time for recency windows.

    Returns:
        ScoreResult for the repository.
    """
    return Scorer().calculate_scores(snapshot, workflows, now=now)
