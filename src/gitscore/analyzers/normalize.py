"""Scaling helpers that map raw counts onto the 0-1 range."""

import math


def normalize_log(value: float, min_value: float, max_value: float) -> float:
    """Logarithmic scaling for heavy-tailed counts (stars, forks, contributors).

    Early increments weigh more than later ones. Values outside the range are
    clamped to 0 or 1.
    """
    if value <= min_value:
        return 0.0
    if value >= max_value:
        return 1.0
    return math.log(value - min_value + 1) / math.log(max_value - min_value + 1)


def normalize_linear(value: float, min_value: float, max_value: float) -> float:
    """Linear interpolation between ``min_value`` and ``max_value``, clamped."""
    if value <= min_value:
        return 0.0
    if value >= max_value:
        return 1.0
    return (value - min_value) / (max_value - min_value)
