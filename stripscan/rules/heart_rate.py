"""
Heart Rate Estimator.

Derives a heart-rate estimate from a strip's gradient-magnitude map.

Definition:
    Cells whose gradient exceeds 70% of the map maximum are treated as
    "peaks". Every plotted beat contributes two steep edges, and a standard
    strip covers 10 seconds, so

        raw = round(peak_count / 2 * 6)

    When the user has previous analyses, the estimate is averaged with the
    mean of their recent baselines:

        final = round((raw + mean_baseline) / 2)

    The result is always clamped to the plausible range 60-200 bpm.

This is a coarse heuristic, not a QRS detector: it counts bright pixels, not
beats, and its value lies in being deterministic and bounded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from stripscan.config import RATE
from stripscan.data.records import HistoryRecord
from stripscan.utils.numeric_utils import clamp, is_finite_number, round_half_up, safe_mean

# Configure module logger
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HeartRateEstimate:
    """
    Result of heart-rate estimation.

    Attributes:
        value: Final estimate in bpm, clamped to [60, 200].
        raw_estimate: Estimate from peak density alone (unclamped).
        peak_count: Number of cells above the threshold.
        threshold: Gradient threshold used (0.7 x max).
        history_baseline: Mean baseline of the history used, if any.
        history_count: Number of history records that contributed.
        was_clamped: True if the value was pulled into range.
    """

    value: int
    raw_estimate: int
    peak_count: int
    threshold: float
    history_baseline: Optional[float] = None
    history_count: int = 0
    was_clamped: bool = False

    def __post_init__(self) -> None:
        """Validate the range invariant."""
        if not RATE.MIN_BPM <= self.value <= RATE.MAX_BPM:
            raise ValueError(
                f"Heart rate must be {RATE.MIN_BPM}-{RATE.MAX_BPM} bpm, got {self.value}"
            )

    @property
    def blended(self) -> bool:
        """True if history baselines were blended into the estimate."""
        return self.history_baseline is not None

    def __repr__(self) -> str:
        return f"HeartRateEstimate(value={self.value} bpm, peaks={self.peak_count})"


def count_peaks(gradient: np.ndarray, ratio: float = RATE.PEAK_THRESHOLD_RATIO) -> tuple[int, float]:
    """
    Count cells strictly above ``ratio`` times the gradient maximum.

    Args:
        gradient: Gradient-magnitude map.
        ratio: Fraction of the maximum used as threshold (default: 0.7).

    Returns:
        Tuple of (peak count, threshold).

    Example:
        >>> count_peaks(np.zeros((4, 4)))
        (0, 0.0)
    """
    gradient = np.asarray(gradient, dtype=np.float64)
    if gradient.size == 0:
        return 0, 0.0

    threshold = float(np.max(gradient)) * ratio
    peak_count = int(np.count_nonzero(gradient > threshold))
    return peak_count, threshold


def history_baseline(history: Optional[Sequence[HistoryRecord]], limit: int = RATE.HISTORY_LIMIT) -> tuple[Optional[float], int]:
    """
    Mean baseline of the most recent history records.

    Records with a missing or non-finite baseline are skipped.

    Args:
        history: History records, most recent first.
        limit: Maximum number of records considered (default: 5).

    Returns:
        Tuple of (mean baseline or None, number of records used).
    """
    if not history:
        return None, 0

    values = [record.baseline_value for record in history[:limit]]
    return safe_mean(values), sum(1 for v in values if is_finite_number(v))


def estimate_heart_rate(
    gradient: np.ndarray,
    history: Optional[Sequence[HistoryRecord]] = None
) -> HeartRateEstimate:
    """
    Estimate heart rate from a gradient-magnitude map.

    Algorithm:
        1. threshold = 0.7 * max(gradient)
        2. peak_count = number of cells > threshold
        3. raw = round(peak_count / 2 * 6)
        4. If history exists: round((raw + mean_baseline) / 2)
        5. Clamp to [60, 200]

    Args:
        gradient: Gradient-magnitude map.
        history: Up to 5 history records, most recent first (optional).

    Returns:
        HeartRateEstimate with the final value and intermediates.

    Example:
        >>> estimate = estimate_heart_rate(np.zeros((224, 224)))
        >>> estimate.value
        60
    """
    peak_count, threshold = count_peaks(gradient)
    raw_estimate = round_half_up(peak_count / RATE.PEAKS_PER_BEAT * RATE.BEAT_WINDOW_FACTOR)

    estimate = raw_estimate
    mean_baseline, history_count = history_baseline(history)
    if mean_baseline is not None:
        estimate = round_half_up((raw_estimate + mean_baseline) / 2)
        logger.debug(
            f"Blended raw estimate {raw_estimate} with history mean {mean_baseline:.1f} "
            f"({history_count} records) -> {estimate}"
        )

    value = int(clamp(estimate, RATE.MIN_BPM, RATE.MAX_BPM))

    logger.info(
        f"Heart rate estimated: {value} bpm "
        f"(peaks: {peak_count}, raw: {raw_estimate}, blended: {mean_baseline is not None})"
    )

    return HeartRateEstimate(
        value=value,
        raw_estimate=raw_estimate,
        peak_count=peak_count,
        threshold=threshold,
        history_baseline=mean_baseline,
        history_count=history_count,
        was_clamped=value != estimate,
    )
