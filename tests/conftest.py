"""Shared test fixtures."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from gitscore.analyzers.scorer import calculate_repository_score
from gitscore.models.schemas import CommitRecord, RepositorySnapshot, ScoreResult

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

RICH_README = (
    "# Project\n\n"
    "![build](https://img.shields.io/badge/build-passing-green)\n\n"
    "## Installation\n\n"
    "```bash\npip install project\n```\n\n"
    "See the [docs](https://example.com/docs) and the "
    "[changelog](https://example.com/changelog).\n\n" + "Lorem ipsum dolor sit amet. " * 20
)

CONTRIBUTING = "Thanks for contributing! " * 10


def make_commit(days_ago: int, login: str | None = None, **kwargs: Any) -> CommitRecord:
    return CommitRecord(committed_at=NOW - timedelta(days=days_ago), author_login=login, **kwargs)


def make_snapshot(**overrides: Any) -> RepositorySnapshot:
    """Build a snapshot with every optional field at its default."""
    values: dict[str, Any] = {"owner": "octo", "name": "widget"}
    values.update(overrides)
    return RepositorySnapshot(**values)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def empty_snapshot() -> RepositorySnapshot:
    return make_snapshot()


@pytest.fixture
def healthy_snapshot() -> RepositorySnapshot:
    return make_snapshot(
        description="A healthy widget",
        url="https://github.com/octo/widget",
        stars=2500,
        forks=150,
        watchers=60,
        open_issues=5,
        closed_issues=45,
        open_prs=2,
        merged_prs=38,
        releases=12,
        has_code_of_conduct=True,
        security_policy_url="https://github.com/octo/widget/security/policy",
        commits=[make_commit(i, login=f"dev{i % 7}") for i in range(40)],
        total_commits=40,
        readme=RICH_README,
        contributing=CONTRIBUTING,
        has_discussions_enabled=True,
        has_vulnerability_alerts_enabled=True,
        workflows=["ci.yml", "release.yml"],
        pushed_at=NOW - timedelta(days=2),
        primary_language="Python",
    )


@pytest.fixture
def score_result(healthy_snapshot: RepositorySnapshot) -> ScoreResult:
    return calculate_repository_score(healthy_snapshot, now=NOW)
