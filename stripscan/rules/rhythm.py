"""
Rhythm Classifier.

Assigns a rhythm label, a confidence and a list of findings to a strip by
comparing the variability of its gradient map with reference CTG cases.

Reference matching:
    The scalar statistic is the population variance of the gradient map.
    Reference cases whose mean short-term variability (MSTV) lies within 0.5
    of that variance are "similar". When similar cases exist:
        - confidence is the mean of 0.95 (normal fetal state) / 0.85 (other)
        - findings are collected from the similar cases with fetal state > 1
        - the rhythm label is the pattern class most common among them

Fallback thresholds (no similar case):
    - variance <  0.1 -> normal sinus rhythm (0.92)
    - variance <  0.2 -> sinus tachycardia (0.85), elevated heart rate
    - variance >= 0.2 -> arrhythmia (0.78), rhythm irregularity + possible fibrillation
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Tuple

import numpy as np

from stripscan.config import CLASSIFIER, LABELS
from stripscan.data.records import ReferenceRecord
from stripscan.utils.numeric_utils import is_finite_number

# Configure module logger
logger = logging.getLogger(__name__)


class ClassificationSource(Enum):
    """Which branch produced a classification."""
    REFERENCE_MATCH = "Reference match"
    VARIANCE_FALLBACK = "Variance fallback"


@dataclass(frozen=True)
class RhythmClassification:
    """
    Result of rhythm classification.

    Attributes:
        rhythm_type: Rhythm label.
        confidence: Confidence in [0, 1].
        abnormalities: Ordered, duplicate-free findings.
        variance: Gradient-map variance the decision was based on.
        source: Reference match or variance fallback.
        similar_cases: Number of matching reference records.
        pattern_class: Most common pattern class among matches, if any.
    """

    rhythm_type: str
    confidence: float
    abnormalities: Tuple[str, ...] = field(default_factory=tuple)
    variance: float = 0.0
    source: ClassificationSource = ClassificationSource.VARIANCE_FALLBACK
    similar_cases: int = 0
    pattern_class: Optional[int] = None

    def __post_init__(self) -> None:
        """Validate confidence and finding uniqueness."""
        if not 0 <= self.confidence <= 1:
            raise ValueError(f"Confidence must be 0-1, got {self.confidence}")
        if len(set(self.abnormalities)) != len(self.abnormalities):
            raise ValueError(f"Duplicate abnormalities: {self.abnormalities}")

    def __repr__(self) -> str:
        return (
            f"RhythmClassification(rhythm={self.rhythm_type!r}, "
            f"confidence={self.confidence:.2f}, source={self.source.value})"
        )


def gradient_variance(gradient: np.ndarray) -> float:
    """
    Population variance of the gradient map: mean((g - mean(g))^2).

    Args:
        gradient: Gradient-magnitude map.

    Returns:
        Variance as float (0.0 for an empty map).
    """
    gradient = np.asarray(gradient, dtype=np.float64)
    if gradient.size == 0:
        return 0.0
    return float(np.mean(np.square(gradient - np.mean(gradient))))


def find_similar_cases(
    variance: float,
    references: Sequence[ReferenceRecord],
    tolerance: float = CLASSIFIER.SIMILARITY_TOLERANCE
) -> List[ReferenceRecord]:
    """
    Select reference records whose MSTV is within ``tolerance`` of ``variance``.

    Records with a missing or non-finite MSTV never match.

    Args:
        variance: Gradient-map variance.
        references: Reference records.
        tolerance: Strict upper bound on the absolute difference (default: 0.5).

    Returns:
        Matching records, in input order.
    """
    return [
        record for record in references
        if is_finite_number(record.mean_short_term_variability)
        and abs(record.mean_short_term_variability - variance) < tolerance
    ]


def most_common_pattern_class(cases: Sequence[ReferenceRecord]) -> Optional[int]:
    """
    Most frequent pattern class among cases.

    Ties are broken in favour of the largest class code. Cases without a
    pattern class are not counted.

    Args:
        cases: Reference records.

    Returns:
        Class code, or None if no case carries one.

    Example:
        >>> most_common_pattern_class([ReferenceRecord(pattern_class=2), ReferenceRecord(pattern_class=7)])
        7
    """
    counts = Counter(case.pattern_class for case in cases if case.pattern_class is not None)
    if not counts:
        return None
    return max(counts.items(), key=lambda item: (item[1], item[0]))[0]


def rhythm_label_for_class(class_code: Optional[int]) -> str:
    """Look up the rhythm label for a pattern class (unknown -> normal sinus rhythm)."""
    return LABELS.pattern_classes.get(class_code, LABELS.RHYTHM_NORMAL)


def collect_reference_findings(cases: Sequence[ReferenceRecord]) -> Tuple[str, ...]:
    """
    Findings from the abnormal (fetal state > 1) cases, in fixed check order.

    Args:
        cases: Similar reference records.

    Returns:
        Tuple of distinct finding labels.
    """
    abnormal = [case for case in cases if case.is_abnormal]
    if not abnormal:
        return ()

    checks = (
        (LABELS.FINDING_ACCELERATIONS, lambda c: c.accelerations),
        (LABELS.FINDING_MILD_DECELS, lambda c: c.light_decelerations),
        (LABELS.FINDING_SEVERE_DECELS, lambda c: c.severe_decelerations),
        (LABELS.FINDING_ABNORMAL_STV, lambda c: c.abnormal_short_term_variability),
    )

    findings: List[str] = []
    for label, value_of in checks:
        if any(_is_positive(value_of(case)) for case in abnormal):
            findings.append(label)
    return tuple(findings)


def classify_rhythm(
    gradient: np.ndarray,
    references: Optional[Sequence[ReferenceRecord]] = None
) -> RhythmClassification:
    """
    Classify the rhythm shown in a strip from its gradient map.

    Args:
        gradient: Gradient-magnitude map.
        references: Up to 100 reference records (optional).

    Returns:
        RhythmClassification with label, confidence and findings.

    Example:
        >>> result = classify_rhythm(np.zeros((224, 224)))
        >>> result.rhythm_type, result.confidence
        ('normal sinus rhythm', 0.92)
    """
    variance = gradient_variance(gradient)
    similar = find_similar_cases(variance, references or [])

    if similar:
        result = _classify_from_references(variance, similar)
    else:
        result = _classify_from_variance(variance)

    logger.info(
        f"Rhythm classified: {result.rhythm_type} "
        f"(confidence: {result.confidence:.2f}, variance: {variance:.4f}, "
        f"source: {result.source.value}, similar cases: {result.similar_cases})"
    )
    return result


def _classify_from_references(variance: float, similar: Sequence[ReferenceRecord]) -> RhythmClassification:
    """Reference-matched branch."""
    weights = [
        CLASSIFIER.NORMAL_CASE_CONFIDENCE if case.fetal_state == CLASSIFIER.NORMAL_FETAL_STATE
        else CLASSIFIER.ABNORMAL_CASE_CONFIDENCE
        for case in similar
    ]
    confidence = float(sum(weights) / len(weights))

    pattern_class = most_common_pattern_class(similar)

    return RhythmClassification(
        rhythm_type=rhythm_label_for_class(pattern_class),
        confidence=confidence,
        abnormalities=collect_reference_findings(similar),
        variance=variance,
        source=ClassificationSource.REFERENCE_MATCH,
        similar_cases=len(similar),
        pattern_class=pattern_class,
    )


def _classify_from_variance(variance: float) -> RhythmClassification:
    """Fixed-threshold fallback branch."""
    if variance < CLASSIFIER.VARIANCE_NORMAL_MAX:
        rhythm = LABELS.RHYTHM_NORMAL
        confidence = CLASSIFIER.NORMAL_CONFIDENCE
        findings: Tuple[str, ...] = ()
    elif variance < CLASSIFIER.VARIANCE_TACHYCARDIA_MAX:
        rhythm = LABELS.RHYTHM_TACHYCARDIA
        confidence = CLASSIFIER.TACHYCARDIA_CONFIDENCE
        findings = (LABELS.FINDING_ELEVATED_RATE,)
    else:
        rhythm = LABELS.RHYTHM_ARRHYTHMIA
        confidence = CLASSIFIER.ARRHYTHMIA_CONFIDENCE
        findings = (LABELS.FINDING_IRREGULARITY, LABELS.FINDING_FIBRILLATION)

    return RhythmClassification(
        rhythm_type=rhythm,
        confidence=confidence,
        abnormalities=findings,
        variance=variance,
        source=ClassificationSource.VARIANCE_FALLBACK,
    )


def _is_positive(value: Optional[float]) -> bool:
    return is_finite_number(value) and value > 0
