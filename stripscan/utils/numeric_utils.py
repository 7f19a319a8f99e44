"""
Numeric utility functions.

Small helpers shared by the heuristic rules, mainly for handling missing
values coming from external records and for reproducing half-up rounding.

Functions:
    round_half_up: Round to the nearest integer, ties toward +infinity
    clamp: Restrict a value to a closed interval
    get_finite_values: Drop None/NaN/inf entries from a sequence
    safe_mean: Mean of finite values with a fallback for empty input

Example:
    >>> from stripscan.utils.numeric_utils import round_half_up, safe_mean
    >>> round_half_up(80.5)
    81
    >>> safe_mean([70, None, 74])
    72.0
"""

from __future__ import annotations

import math
from typing import Iterable, Optional, Union

import numpy as np

Number = Union[int, float]


def round_half_up(value: float) -> int:
    """
    Round a value to the nearest integer with ties going up.

    Python's built-in ``round`` uses banker's rounding (``round(2.5) == 2``);
    rate arithmetic needs ``x.5`` to always round toward +infinity.

    Args:
        value: Value to round.

    Returns:
        Rounded integer.

    Example:
        >>> round_half_up(2.5)
        3
        >>> round_half_up(-2.5)
        -2
    """
    return int(math.floor(value + 0.5))


def clamp(value: Number, lower: Number, upper: Number) -> Number:
    """
    Restrict ``value`` to the closed interval [lower, upper].

    Args:
        value: Value to clamp.
        lower: Lower bound.
        upper: Upper bound.

    Returns:
        Clamped value.
    """
    if lower > upper:
        raise ValueError(f"lower ({lower}) must not exceed upper ({upper})")
    return min(max(value, lower), upper)


def is_finite_number(value: object) -> bool:
    """Return True if value is a real, finite number (bools excluded)."""
    if value is None or isinstance(value, bool):
        return False
    try:
        return math.isfinite(float(value))
    except (TypeError, ValueError):
        return False


def get_finite_values(values: Iterable[object]) -> np.ndarray:
    """
    Extract finite numeric values from an iterable.

    Args:
        values: Iterable that may contain None, NaN or non-numeric entries.

    Returns:
        Float array containing only the finite values, in input order.

    Example:
        >>> get_finite_values([120, None, float('nan'), 130])
        array([120., 130.])
    """
    return np.array([float(v) for v in values if is_finite_number(v)], dtype=float)


def safe_mean(values: Iterable[object], default: Optional[float] = None) -> Optional[float]:
    """
    Calculate the mean of the finite values, with fallback for empty input.

    Args:
        values: Iterable of numbers (None/NaN entries are skipped).
        default: Value returned when no finite values exist.

    Returns:
        Mean of finite values, or ``default`` if none exist.
    """
    valid = get_finite_values(values)
    if len(valid) == 0:
        return default
    return float(np.mean(valid))


__all__ = [
    'round_half_up',
    'clamp',
    'is_finite_number',
    'get_finite_values',
    'safe_mean',
]
