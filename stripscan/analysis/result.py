"""
Analysis result containers.

``AnalysisResult`` is the only thing the pipeline hands back to its caller.
``AnalysisReport`` additionally carries the intermediates for display and
debugging.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Tuple

import numpy as np

from stripscan.config import RATE
from stripscan.rules.heart_rate import HeartRateEstimate
from stripscan.rules.rhythm import RhythmClassification


@dataclass(frozen=True)
class AnalysisResult:
    """
    Heart rate and rhythm reading for one strip image.

    Attributes:
        heart_rate: Estimated heart rate in bpm (60-200).
        rhythm_type: Rhythm label.
        confidence: Confidence in the rhythm label (0-1).
        abnormalities: Ordered, duplicate-free findings.
    """

    heart_rate: int
    rhythm_type: str
    confidence: float
    abnormalities: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        """Normalize findings to a tuple and validate ranges."""
        object.__setattr__(self, 'abnormalities', tuple(self.abnormalities))

        if not RATE.MIN_BPM <= self.heart_rate <= RATE.MAX_BPM:
            raise ValueError(
                f"Heart rate must be {RATE.MIN_BPM}-{RATE.MAX_BPM} bpm, got {self.heart_rate}"
            )
        if not 0 <= self.confidence <= 1:
            raise ValueError(f"Confidence must be 0-1, got {self.confidence}")
        if len(set(self.abnormalities)) != len(self.abnormalities):
            raise ValueError(f"Duplicate abnormalities: {self.abnormalities}")

    @property
    def has_abnormalities(self) -> bool:
        return bool(self.abnormalities)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with the camelCase keys the web client expects."""
        return {
            'heartRate': self.heart_rate,
            'rhythmType': self.rhythm_type,
            'confidence': self.confidence,
            'abnormalities': list(self.abnormalities),
        }


@dataclass(frozen=True)
class AnalysisReport:
    """
    Full record of one pipeline run.

    Attributes:
        result: Final analysis result.
        grid: Intensity grid (read-only).
        gradient: Gradient-magnitude map (read-only).
        heart_rate: Heart-rate estimation details.
        rhythm: Rhythm classification details.
        reference_count: Reference records available to the classifier.
        history_count: History records available to the rate estimator.
        gateway_errors: Failed gateway reads, as "read: error" strings.
    """

    result: AnalysisResult
    grid: np.ndarray
    gradient: np.ndarray
    heart_rate: HeartRateEstimate
    rhythm: RhythmClassification
    reference_count: int = 0
    history_count: int = 0
    gateway_errors: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def degraded(self) -> bool:
        """True if any gateway read failed or timed out."""
        return bool(self.gateway_errors)
