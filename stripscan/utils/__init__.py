"""
Utility functions for StripScan.

This package contains reusable helpers:
- numeric_utils: Rounding, clamping and missing-value handling

Usage:
    from stripscan.utils import round_half_up, safe_mean
"""

from stripscan.utils.numeric_utils import (
    round_half_up,
    clamp,
    is_finite_number,
    get_finite_values,
    safe_mean,
)

__all__ = [
    'round_half_up',
    'clamp',
    'is_finite_number',
    'get_finite_values',
    'safe_mean',
]
