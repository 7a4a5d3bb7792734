"""Runtime configuration read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_CACHE_DIR = Path.home() / ".cache" / "gitscore"

# Hours a persisted score stays fresh
DEFAULT_CACHE_TTL_HOURS = 24

# Seconds before an HTTP request to GitHub is abandoned
DEFAULT_HTTP_TIMEOUT = 30.0


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return float(default)
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got '{raw}'") from None


@dataclass
class Settings:
    """Settings for a scoring run.

    Values come from keyword arguments first, then environment variables
    (``.env`` is loaded by the CLI before this is built).
    """

    github_token: str | None = None
    cache_dir: Path = field(default_factory=lambda: DEFAULT_CACHE_DIR)
    cache_ttl_hours: float = DEFAULT_CACHE_TTL_HOURS
    http_timeout: float = DEFAULT_HTTP_TIMEOUT

    @classmethod
    def from_env(cls, **overrides) -> "Settings":
        """Build settings from the environment, applying non-None overrides."""
        values = {
            "github_token": os.environ.get("GITHUB_TOKEN") or None,
            "cache_dir": Path(os.environ.get("GITSCORE_CACHE_DIR", DEFAULT_CACHE_DIR)).expanduser(),
            "cache_ttl_hours": _env_float("GITSCORE_CACHE_TTL_HOURS", DEFAULT_CACHE_TTL_HOURS),
            "http_timeout": _env_float("GITSCORE_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT),
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)
