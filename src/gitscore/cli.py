"""CLI entry point for gitscore."""

import asyncio
import json
import logging
import re
from datetime import timedelta
from pathlib import Path

import httpx

# Load .env file if it exists
from dotenv import load_dotenv
load_dotenv()

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from gitscore.analyzers.pipeline import ScoringPipeline
from gitscore.cache import FileScoreCache
from gitscore.config import Settings
from gitscore.errors import (
    GitHubAPIError,
    RateLimitError,
    RepositoryNotFoundError,
    TokenScopeError,
    UnauthorizedError,
)
from gitscore.models.schemas import Category, ScoreReport

app = typer.Typer(help="GitHub repository health scoring tool.")

console = Console()

GITHUB_URL_RE = re.compile(r"(?:https?://)?(?:www\.)?github\.com/([^/\s]+)/([^/\s#?]+)")


def parse_repo_spec(owner: str, repo: str | None) -> tuple[str, str]:
    """Resolve ``owner repo``, ``owner/repo`` or a GitHub URL into a pair.

    Raises:
        ValueError: If no repository can be identified.
    """
    if repo:
        return owner, repo

    match = GITHUB_URL_RE.search(owner)
    if match:
        owner, repo = match.group(1), match.group(2)
    elif owner.count("/") == 1:
        owner, repo = owner.split("/")
    else:
        raise ValueError(f"Cannot identify a repository from '{owner}'. Use OWNER REPO or OWNER/REPO.")

    repo = repo.removesuffix(".git")
    if not owner or not repo:
        raise ValueError(f"Cannot identify a repository from '{owner}/{repo}'.")
    return owner, repo


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _load_settings(**overrides) -> Settings:
    try:
        return Settings.from_env(**overrides)
    except ValueError as e:
        console.print(f"[red]Invalid configuration: {e}[/red]")
        raise typer.Exit(1)


@app.command()
def score(
    owner: str = typer.Argument(..., help="Repository owner, OWNER/REPO, or a GitHub URL"),
    repo: str | None = typer.Argument(None, help="Repository name"),
    token: str | None = typer.Option(None, "--token", "-t", help="GitHub token (defaults to GITHUB_TOKEN)"),
    cache_dir: Path | None = typer.Option(None, "--cache-dir", help="Directory for cached scores"),
    no_cache: bool = typer.Option(False, "--no-cache", help="Ignore and do not write the cache"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Output JSON file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    """Score a GitHub repository's health on a 0-10 scale."""
    _configure_logging(verbose)
    try:
        owner, repo = parse_repo_spec(owner, repo)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    settings = _load_settings(github_token=token, cache_dir=cache_dir)
    asyncio.run(_score(owner, repo, settings, no_cache, output))


async def _score(
    owner: str,
    repo: str,
    settings: Settings,
    no_cache: bool,
    output: Path | None,
) -> None:
    """Async implementation of score."""
    cache = None
    if not no_cache:
        cache = FileScoreCache(settings.cache_dir, ttl=timedelta(hours=settings.cache_ttl_hours))

    pipeline = ScoringPipeline(
        github_token=settings.github_token,
        cache=cache,
        timeout=settings.http_timeout,
    )

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task("Checking token...", total=None)
        try:
            async with pipeline:
                validation = await pipeline.verify_token()
                progress.update(task, description=f"Scoring {owner}/{repo}...")
                report = await pipeline.score_repository(owner, repo, use_cache=not no_cache)
        except TokenScopeError as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(1)
        except UnauthorizedError as e:
            console.print(f"[red]GitHub rejected the token: {e}[/red]")
            raise typer.Exit(1)
        except RepositoryNotFoundError:
            console.print(f"[red]Repository {owner}/{repo} not found[/red]")
            raise typer.Exit(1)
        except RateLimitError as e:
            console.print(f"[yellow]{e}. Try again later.[/yellow]")
            raise typer.Exit(1)
        except GitHubAPIError as e:
            console.print(f"[red]Failed to calculate score: {e}[/red]")
            raise typer.Exit(1)
        except httpx.HTTPError as e:
            console.print(f"[red]Could not reach GitHub: {e}[/red]")
            raise typer.Exit(1)

    if validation.extras:
        console.print(
            f"[yellow]Your token has extra permissions: {', '.join(validation.extras)}[/yellow]"
        )

    _print_report(report)

    if output:
        output.write_text(json.dumps(report.model_dump(mode="json"), indent=2))
        console.print(f"\n[green]Saved to {output}[/green]")


def _print_report(report: ScoreReport) -> None:
    """Render a score report."""
    result = report.result
    summary = result.repository

    console.print()
    console.print(f"[bold cyan]{report.owner}/{report.repo}[/bold cyan]")
    if summary.description:
        console.print(f"[dim]{summary.description}[/dim]")
    console.print()

    color = _score_color(result.final_score)
    source = f"cached {report.cache_age_minutes} min ago" if report.cached else "fresh"
    console.print(
        Panel(
            f"[bold][{color}]{result.final_score:.1f}[/{color}][/bold] / 10  [dim]({source})[/dim]",
            title="Repository Health Score",
            expand=False,
        )
    )
    console.print()

    scores_table = Table(title="Score Breakdown", show_header=True)
    scores_table.add_column("Category", style="bold")
    scores_table.add_column("Score", justify="right")
    scores_table.add_column("Weight", justify="right", style="dim")
    scores_table.add_column("Bar", width=20)
    scores_table.add_column("Details", style="white", max_width=60)

    for category in Category:
        component = result.categories[category.value]
        color = _score_color(component.score)
        scores_table.add_row(
            category.value.title(),
            f"[{color}]{component.score:.1f}[/{color}]",
            f"{component.weight:.0%}",
            _score_bar(component.score),
            component.details,
        )

    console.print(scores_table)

    info_table = Table(show_header=False, box=None)
    info_table.add_column("Key", style="bold")
    info_table.add_column("Value")
    info_table.add_row("Stars", f"{summary.stars:,}")
    info_table.add_row("Forks", f"{summary.forks:,}")
    info_table.add_row("Language", summary.language)
    info_table.add_row("License", summary.license or "-")
    if report.rate_limit:
        info_table.add_row(
            "API quota",
            f"{report.rate_limit.remaining:,}/{report.rate_limit.limit:,} remaining",
        )

    console.print()
    console.print(info_table)


def _score_color(score: float) -> str:
    return "green" if score >= 8 else "yellow" if score >= 6 else "red"


def _score_bar(score: float, width: int = 20) -> str:
    """Create a visual score bar for a 0-10 score."""
    filled = int(score / 10 * width)
    empty = width - filled
    color = _score_color(score)
    return f"[{color}]{'█' * filled}[/{color}][dim]{'░' * empty}[/dim]"


@app.command()
def check_token(
    token: str | None = typer.Option(None, "--token", "-t", help="GitHub token (defaults to GITHUB_TOKEN)"),
) -> None:
    """Show the scopes granted to a GitHub token."""
    _configure_logging(False)
    settings = _load_settings(github_token=token)
    asyncio.run(_check_token(settings))


async def _check_token(settings: Settings) -> None:
    """Async implementation of check_token."""
    pipeline = ScoringPipeline(github_token=settings.github_token, timeout=settings.http_timeout)

    try:
        async with pipeline:
            validation = await pipeline.verify_token()
    except TokenScopeError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    except (GitHubAPIError, httpx.HTTPError) as e:
        console.print(f"[red]Token check failed: {e}[/red]")
        raise typer.Exit(1)

    if not validation.scopes_reported:
        console.print("[green]Fine-grained token: access is checked per repository[/green]")
    elif "repo" in validation.scopes:
        console.print("[green]Token has 'repo' scope - can access public and private repositories[/green]")
    else:
        console.print("[green]Token has 'public_repo' scope - can access public repositories[/green]")

    if validation.extras:
        console.print(
            f"[yellow]Token has extra permissions you don't really need: "
            f"{', '.join(validation.extras)}[/yellow]"
        )
    elif validation.scopes_reported:
        console.print("[green]Token has minimal required permissions[/green]")


@app.command()
def cache_clear(
    cache_dir: Path | None = typer.Option(None, "--cache-dir", help="Directory for cached scores"),
) -> None:
    """Delete all cached scores."""
    settings = _load_settings(cache_dir=cache_dir)
    removed = FileScoreCache(settings.cache_dir).clear()
    console.print(f"Removed {removed} cached score(s) from {settings.cache_dir}")


@app.command()
def version() -> None:
    """Show version information."""
    from gitscore import __version__

    console.print(f"gitscore v{__version__}")


if __name__ == "__main__":
    app()
