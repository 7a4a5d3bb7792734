"""Tests for CLI interface."""

import json
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
from typer.testing import CliRunner

from gitscore import __version__
from gitscore.analyzers.pipeline import ScoringPipeline
from gitscore.cli import app, parse_repo_spec
from gitscore.errors import RateLimitError, RepositoryNotFoundError, TokenScopeError
from gitscore.models.schemas import RateLimitInfo, ScoreReport, TokenValidation

runner = CliRunner()


@pytest.fixture
def report(score_result) -> ScoreReport:
    return ScoreReport(
        owner="octo",
        repo="widget",
        result=score_result,
        rate_limit=RateLimitInfo(limit=5000, cost=1, remaining=4321),
    )


@pytest.fixture
def validation() -> TokenValidation:
    return TokenValidation(scopes=["public_repo"], has_required_scope=True)


def _patch_pipeline(validation=None, report=None, score_error=None, verify_error=None):
    """Patch network-facing pipeline methods for a CLI run."""
    verify = AsyncMock(return_value=validation, side_effect=verify_error)
    score = AsyncMock(return_value=report, side_effect=score_error)
    return (
        patch.object(ScoringPipeline, "verify_token", verify),
        patch.object(ScoringPipeline, "score_repository", score),
    )


class TestParseRepoSpec:
    @pytest.mark.parametrize(
        ("owner", "repo", "expected"),
        [
            ("pallets", "flask", ("pallets", "flask")),
            ("pallets/flask", None, ("pallets", "flask")),
            ("https://github.com/pallets/flask", None, ("pallets", "flask")),
            ("https://github.com/pallets/flask.git", None, ("pallets", "flask")),
            ("github.com/pallets/flask/tree/main", None, ("pallets", "flask")),
        ],
    )
    def test_valid(self, owner: str, repo: str | None, expected: tuple[str, str]) -> None:
        assert parse_repo_spec(owner, repo) == expected

    @pytest.mark.parametrize("value", ["pallets", "a/b/c", "/flask"])
    def test_invalid(self, value: str) -> None:
        with pytest.raises(ValueError):
            parse_repo_spec(value, None)


class TestScoreCommand:
    def test_renders_report(self, tmp_path: Path, validation, report) -> None:
        verify_patch, score_patch = _patch_pipeline(validation, report)
        with verify_patch, score_patch as score:
            result = runner.invoke(app, ["score", "octo", "widget", "--cache-dir", str(tmp_path)])

        assert result.exit_code == 0, result.output
        assert "octo/widget" in result.output
        assert f"{report.result.final_score:.1f}" in result.output
        assert "Documentation" in result.output
        assert "Security" in result.output
        score.assert_awaited_once_with("octo", "widget", use_cache=True)

    def test_owner_slash_repo_and_no_cache(self, tmp_path: Path, validation, report) -> None:
        verify_patch, score_patch = _patch_pipeline(validation, report)
        with verify_patch, score_patch as score:
            result = runner.invoke(app, ["score", "octo/widget", "--no-cache"])

        assert result.exit_code == 0, result.output
        score.assert_awaited_once_with("octo", "widget", use_cache=False)

    def test_writes_json_output(self, tmp_path: Path, validation, report) -> None:
        output = tmp_path / "score.json"
        verify_patch, score_patch = _patch_pipeline(validation, report)
        with verify_patch, score_patch:
            result = runner.invoke(
                app,
                ["score", "octo/widget", "--cache-dir", str(tmp_path), "--output", str(output)],
            )

        assert result.exit_code == 0, result.output
        data = json.loads(output.read_text())
        assert data["owner"] == "octo"
        assert data["cached"] is False
        assert data["result"]["final_score"] == report.result.final_score
        assert set(data["result"]["categories"]) == {
            "documentation",
            "maintenance",
            "quality",
            "community",
            "popularity",
            "security",
        }

    def test_warns_about_extra_scopes(self, tmp_path: Path, report) -> None:
        validation = TokenValidation(
            scopes=["repo", "delete_repo"],
            extras=["delete_repo"],
            has_only_allowed_scopes=False,
            has_required_scope=True,
        )
        verify_patch, score_patch = _patch_pipeline(validation, report)
        with verify_patch, score_patch:
            result = runner.invoke(app, ["score", "octo/widget", "--cache-dir", str(tmp_path)])

        assert result.exit_code == 0, result.output
        assert "delete_repo" in result.output

    def test_repository_not_found(self, tmp_path: Path, validation) -> None:
        verify_patch, score_patch = _patch_pipeline(
            validation, score_error=RepositoryNotFoundError("octo", "missing")
        )
        with verify_patch, score_patch:
            result = runner.invoke(app, ["score", "octo/missing", "--cache-dir", str(tmp_path)])

        assert result.exit_code == 1
        assert "not found" in result.output

    def test_rate_limited(self, tmp_path: Path, validation) -> None:
        verify_patch, score_patch = _patch_pipeline(validation, score_error=RateLimitError())
        with verify_patch, score_patch:
            result = runner.invoke(app, ["score", "octo/widget", "--cache-dir", str(tmp_path)])

        assert result.exit_code == 1
        assert "Try again later" in result.output

    def test_insufficient_scope(self, tmp_path: Path) -> None:
        verify_patch, score_patch = _patch_pipeline(verify_error=TokenScopeError(["gist"]))
        with verify_patch, score_patch as score:
            result = runner.invoke(app, ["score", "octo/widget", "--cache-dir", str(tmp_path)])

        assert result.exit_code == 1
        assert "public_repo" in result.output
        score.assert_not_awaited()

    def test_unparseable_repository(self) -> None:
        result = runner.invoke(app, ["score", "justanowner"])

        assert result.exit_code == 1
        assert "Cannot identify a repository" in result.output

    def test_invalid_environment_setting(self, tmp_path: Path) -> None:
        verify_patch, score_patch = _patch_pipeline()
        with verify_patch as verify, score_patch:
            result = runner.invoke(
                app,
                ["score", "octo/widget", "--cache-dir", str(tmp_path)],
                env={"GITSCORE_HTTP_TIMEOUT": "fast"},
            )

        assert result.exit_code == 1
        assert "Invalid configuration" in result.output
        assert "GITSCORE_HTTP_TIMEOUT" in result.output
        verify.assert_not_awaited()


class TestCheckTokenCommand:
    def test_public_repo_token(self, validation) -> None:
        with patch.object(ScoringPipeline, "verify_token", AsyncMock(return_value=validation)):
            result = runner.invoke(app, ["check-token", "--token", "ghp_testtoken"])

        assert result.exit_code == 0, result.output
        assert "public_repo" in result.output
        assert "minimal required permissions" in result.output

    def test_fine_grained_token(self) -> None:
        validation = TokenValidation(scopes_reported=False, has_required_scope=True)
        with patch.object(ScoringPipeline, "verify_token", AsyncMock(return_value=validation)):
            result = runner.invoke(app, ["check-token", "--token", "github_pat_abc"])

        assert result.exit_code == 0, result.output
        assert "Fine-grained" in result.output

    def test_missing_scope(self) -> None:
        with patch.object(ScoringPipeline, "verify_token", AsyncMock(side_effect=TokenScopeError([]))):
            result = runner.invoke(app, ["check-token", "--token", "ghp_testtoken"])

        assert result.exit_code == 1
        assert "public_repo" in result.output

    def test_invalid_environment_setting(self) -> None:
        result = runner.invoke(
            app,
            ["check-token", "--token", "ghp_testtoken"],
            env={"GITSCORE_CACHE_TTL_HOURS": "a day"},
        )

        assert result.exit_code == 1
        assert "Invalid configuration" in result.output


def test_cache_clear(tmp_path: Path) -> None:
    (tmp_path / "aaaa.json").write_text("{}")
    (tmp_path / "bbbb.json").write_text("{}")

    result = runner.invoke(app, ["cache-clear", "--cache-dir", str(tmp_path)])

    assert result.exit_code == 0, result.output
    assert "Removed 2 cached score(s)" in result.output
    assert not list(tmp_path.glob("*.json"))


def test_version() -> None:
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert __version__ in result.output
