"""Analyzers for fetching and scoring repository data."""

from gitscore.analyzers.github import GitHubFetcher
from gitscore.analyzers.normalize import normalize_linear, normalize_log
from gitscore.analyzers.pipeline import ScoringPipeline
from gitscore.analyzers.scorer import Scorer, calculate_repository_score

__all__ = [
    "GitHubFetcher",
    "ScoringPipeline",
    "Scorer",
    "calculate_repository_score",
    "normalize_linear",
    "normalize_log",
]
