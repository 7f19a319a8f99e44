"""
Rule Engine Module for StripScan.

This package implements the heuristics that turn a gradient map into a
reading.

Modules:
    - heart_rate: Peak-density heart rate estimate with history blending
    - rhythm: Reference-matched rhythm classification with threshold fallback

The rules are deterministic: the same gradient map and the same reference and
history snapshot always produce the same result.

Example:
    >>> from stripscan.rules import estimate_heart_rate, classify_rhythm
    >>> rate = estimate_heart_rate(gradient, history=history)
    >>> rhythm = classify_rhythm(gradient, references=references)
"""

from .heart_rate import (
    estimate_heart_rate,
    count_peaks,
    history_baseline,
    HeartRateEstimate
)
from .rhythm import (
    classify_rhythm,
    gradient_variance,
    find_similar_cases,
    most_common_pattern_class,
    collect_reference_findings,
    rhythm_label_for_class,
    ClassificationSource,
    RhythmClassification
)

__all__ = [
    # Heart rate
    "estimate_heart_rate",
    "count_peaks",
    "history_baseline",
    "HeartRateEstimate",
    # Rhythm
    "classify_rhythm",
    "gradient_variance",
    "find_similar_cases",
    "most_common_pattern_class",
    "collect_reference_findings",
    "rhythm_label_for_class",
    "ClassificationSource",
    "RhythmClassification",
]
