"""
Strip analysis pipeline.

Runs one image through the full StripScan pipeline:

    1. Image Loader      -> intensity grid (224x224, [0, 1])
    2. Edge Extractor    -> gradient-magnitude map
    3. Rate Estimator    -> heart rate, blended with the user's history
    4. Rhythm Classifier -> rhythm label, confidence, findings

Gateway reads (reference sample, identity + history) start on daemon threads as
soon as the request starts, so they overlap with decoding and edge
extraction. Every read is bounded by one shared deadline; a read that
fails or misses the deadline contributes no data and is logged. The only
error that reaches the caller is ``ImageDecodeError``.

Usage:
    >>> from stripscan.analysis import StripAnalyzer
    >>> analyzer = StripAnalyzer(gateway=create_gateway())
    >>> result = analyzer.analyze("strip.jpg")
    >>> print(result.heart_rate, result.rhythm_type)
"""

from __future__ import annotations

import logging
import time
import threading
from typing import Callable, List, Optional, Tuple

import numpy as np

from stripscan.config import CLASSIFIER, GATEWAY, RATE
from stripscan.data.edges import extract_edges
from stripscan.data.loader import ImageDecodeError, ImageSource, load_intensity_grid
from stripscan.data.records import HistoryRecord, ReferenceRecord
from stripscan.gateway.base import GatewayResult, NullGateway, ReferenceGateway, safe_read
from stripscan.rules.heart_rate import estimate_heart_rate
from stripscan.rules.rhythm import classify_rhythm

from .result import AnalysisReport, AnalysisResult

logger = logging.getLogger(__name__)


class StripAnalyzer:
    """
    Analysis pipeline bound to a reference gateway.

    The analyzer holds no per-request state; one instance can serve any number
    of sequential or concurrent ``analyze`` calls.

    Args:
        gateway: Reference data gateway (default: ``NullGateway``).
        timeout: Seconds to wait for gateway reads (default: 5.0).
        reference_limit: Maximum reference records fetched (default: 100).
        history_limit: Maximum history records fetched (default: 5).
    """

    def __init__(
        self,
        gateway: Optional[ReferenceGateway] = None,
        timeout: Optional[float] = None,
        reference_limit: int = CLASSIFIER.REFERENCE_LIMIT,
        history_limit: int = RATE.HISTORY_LIMIT,
    ) -> None:
        if timeout is not None and not timeout > 0:
            raise ValueError(f"timeout must be positive, got {timeout}")

        self.gateway = gateway if gateway is not None else NullGateway()
        self.timeout = timeout if timeout is not None else GATEWAY.DEFAULT_TIMEOUT_SECONDS
        self.reference_limit = reference_limit
        self.history_limit = history_limit

    def analyze(self, source: ImageSource) -> AnalysisResult:
        """
        Analyze one strip image.

        Args:
            source: Image bytes, data URL, path, file object, PIL image or array.

        Returns:
            AnalysisResult.

        Raises:
            ImageDecodeError: If the image cannot be decoded.
        """
        return self.analyze_detailed(source).result

    def analyze_detailed(self, source: ImageSource) -> AnalysisReport:
        """
        Analyze one strip image and keep every intermediate.

        Args:
            source: Image resource.

        Returns:
            AnalysisReport with the result, grid, gradient map and stage details.

        Raises:
            ImageDecodeError: If the image cannot be decoded.
        """
        if not self.gateway.enabled:
            grid, gradient = self._extract(source)
            references_read = GatewayResult(value=[])
            history_read = GatewayResult(value=[])
        else:
            deadline = time.monotonic() + self.timeout
            pending_references = _BackgroundRead('reference sample', self._read_references)
            pending_history = _BackgroundRead('recent history', self._read_history)

            grid, gradient = self._extract(source)

            references_read = pending_references.wait(deadline)
            history_read = pending_history.wait(deadline)

        references: List[ReferenceRecord] = references_read.value
        history: List[HistoryRecord] = history_read.value

        heart_rate = estimate_heart_rate(gradient, history=history)
        rhythm = classify_rhythm(gradient, references=references)

        result = AnalysisResult(
            heart_rate=heart_rate.value,
            rhythm_type=rhythm.rhythm_type,
            confidence=rhythm.confidence,
            abnormalities=rhythm.abnormalities,
        )

        errors = tuple(
            f"{name}: {read.error}"
            for name, read in (('reference sample', references_read), ('recent history', history_read))
            if not read.ok
        )

        logger.info(
            f"Analysis complete: {result.heart_rate} bpm, {result.rhythm_type} "
            f"({result.confidence:.0%}), {len(result.abnormalities)} findings, "
            f"{len(references)} references, {len(history)} history records"
        )

        return AnalysisReport(
            result=result,
            grid=grid,
            gradient=gradient,
            heart_rate=heart_rate,
            rhythm=rhythm,
            reference_count=len(references),
            history_count=len(history),
            gateway_errors=errors,
        )

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    @staticmethod
    def _extract(source: ImageSource) -> Tuple[np.ndarray, np.ndarray]:
        """Decode the image and compute its gradient map."""
        try:
            grid = load_intensity_grid(source)
        except ImageDecodeError as e:
            logger.warning(f"Image decode failed: {e}")
            raise
        return grid, extract_edges(grid)

    def _read_references(self) -> GatewayResult[List[ReferenceRecord]]:
        return safe_read(
            'reference sample',
            lambda: list(self.gateway.fetch_reference_sample(limit=self.reference_limit) or [])[:self.reference_limit],
            [],
        )

    def _read_history(self) -> GatewayResult[List[HistoryRecord]]:
        user = safe_read('current user', self.gateway.get_current_user, None)
        if not user.ok:
            return GatewayResult(value=[], error=user.error)
        if not user.value:
            logger.debug("No authenticated user; skipping history")
            return GatewayResult(value=[])

        return safe_read(
            'recent history',
            lambda: list(self.gateway.fetch_recent_history(user.value, limit=self.history_limit) or [])[:self.history_limit],
            [],
        )


class _BackgroundRead:
    """
    One gateway read running on a daemon thread.

    A read that misses the deadline is abandoned: the thread is a daemon, so
    it never holds up interpreter exit, and its late result is discarded.
    """

    def __init__(self, description: str, read: Callable[[], GatewayResult]) -> None:
        self.description = description
        self._read = read
        self._result: Optional[GatewayResult] = None
        self._thread = threading.Thread(
            target=self._run, name=f"stripscan-{description.replace(' ', '-')}", daemon=True
        )
        self._thread.start()

    def _run(self) -> None:
        try:
            self._result = self._read()
        except Exception as e:
            logger.warning(f"Gateway read '{self.description}' failed, continuing without data: {e}")
            self._result = GatewayResult(value=[], error=f"{type(e).__name__}: {e}")

    def wait(self, deadline: float) -> GatewayResult:
        """Wait for the read until the shared deadline."""
        self._thread.join(timeout=max(0.0, deadline - time.monotonic()))
        result = self._result
        if self._thread.is_alive() or result is None:
            logger.warning(f"Gateway read '{self.description}' timed out; continuing without data")
            return GatewayResult(value=[], error="timeout")
        return result


def analyze_strip_image(
    source: ImageSource,
    gateway: Optional[ReferenceGateway] = None,
    timeout: Optional[float] = None
) -> AnalysisResult:
    """
    Analyze a strip image in one call.

    Args:
        source: Image resource.
        gateway: Reference data gateway (default: no reference data).
        timeout: Seconds to wait for gateway reads.

    Returns:
        AnalysisResult.

    Raises:
        ImageDecodeError: If the image cannot be decoded.

    Example:
        >>> result = analyze_strip_image("strip.png")
        >>> result.to_dict()
        {'heartRate': 60, 'rhythmType': 'normal sinus rhythm', 'confidence': 0.92, 'abnormalities': []}
    """
    return StripAnalyzer(gateway=gateway, timeout=timeout).analyze(source)
