"""
Centralized configuration for StripScan.

This module contains all hardcoded constants used by the analysis pipeline.
Centralizing configuration keeps the heuristic thresholds in one place and
ensures every stage reads the same values.

Usage:
    from stripscan.config import IMAGE, RATE, CLASSIFIER, LABELS

    grid_size = IMAGE.GRID_SIZE
    lower_bound = RATE.MIN_BPM
"""

from dataclasses import dataclass
from typing import Dict, Final, Tuple


# =============================================================================
# Image Configuration
# =============================================================================

@dataclass(frozen=True)
class ImageConfig:
    """Image decoding and grid constants."""

    GRID_SIZE: int = 224           # Output grid is GRID_SIZE x GRID_SIZE
    PIXEL_MAX: float = 255.0       # 8-bit channel divisor for normalisation
    COLOR_CHANNELS: int = 3        # Alpha is dropped before averaging

    @property
    def grid_shape(self) -> Tuple[int, int]:
        """Shape of every intensity grid."""
        return (self.GRID_SIZE, self.GRID_SIZE)


IMAGE: Final[ImageConfig] = ImageConfig()


# =============================================================================
# Heart Rate Estimation
# =============================================================================

@dataclass(frozen=True)
class RateConfig:
    """Peak-count heart rate heuristic constants."""

    PEAK_THRESHOLD_RATIO: float = 0.7   # Fraction of the gradient maximum
    PEAKS_PER_BEAT: float = 2.0         # Two edges per plotted beat
    BEAT_WINDOW_FACTOR: float = 6.0     # 10-second strip -> per minute
    MIN_BPM: int = 60
    MAX_BPM: int = 200
    HISTORY_LIMIT: int = 5              # Most recent history records blended


RATE: Final[RateConfig] = RateConfig()


# =============================================================================
# Rhythm Classification
# =============================================================================

@dataclass(frozen=True)
class ClassifierConfig:
    """Reference matching and fallback threshold constants."""

    # Reference matching
    REFERENCE_LIMIT: int = 100
    SIMILARITY_TOLERANCE: float = 0.5   # |MSTV - variance| must be below this
    NORMAL_CASE_CONFIDENCE: float = 0.95
    ABNORMAL_CASE_CONFIDENCE: float = 0.85
    NORMAL_FETAL_STATE: int = 1

    # Fallback thresholds on gradient variance
    VARIANCE_NORMAL_MAX: float = 0.1
    VARIANCE_TACHYCARDIA_MAX: float = 0.2
    NORMAL_CONFIDENCE: float = 0.92
    TACHYCARDIA_CONFIDENCE: float = 0.85
    ARRHYTHMIA_CONFIDENCE: float = 0.78


CLASSIFIER: Final[ClassifierConfig] = ClassifierConfig()


# =============================================================================
# Display Strings
# =============================================================================

@dataclass(frozen=True)
class LabelStrings:
    """User-visible rhythm and finding labels."""

    # Rhythm labels
    RHYTHM_NORMAL: str = "normal sinus rhythm"
    RHYTHM_TACHYCARDIA: str = "sinus tachycardia"
    RHYTHM_ARRHYTHMIA: str = "arrhythmia"

    # Reference findings (fixed check order)
    FINDING_ACCELERATIONS: str = "accelerations detected"
    FINDING_MILD_DECELS: str = "mild decelerations"
    FINDING_SEVERE_DECELS: str = "severe decelerations"
    FINDING_ABNORMAL_STV: str = "abnormal short-term variability"

    # Fallback findings
    FINDING_ELEVATED_RATE: str = "elevated heart rate"
    FINDING_IRREGULARITY: str = "rhythm irregularity"
    FINDING_FIBRILLATION: str = "possible fibrillation"

    @property
    def pattern_classes(self) -> Dict[int, str]:
        """CTG pattern class code (1-10) to rhythm label."""
        return {
            1: "calm sleep",
            2: "REM sleep",
            3: "calm vigilance",
            4: "active vigilance",
            5: "shift pattern",
            6: "accelerative/decelerative pattern",
            7: "decelerative pattern",
            8: "largely decelerative pattern",
            9: "flat-sinusoidal pattern",
            10: "suspect pattern",
        }


LABELS: Final[LabelStrings] = LabelStrings()


# =============================================================================
# Reference Data Gateway
# =============================================================================

@dataclass(frozen=True)
class GatewayConfig:
    """Remote and local reference store constants."""

    REFERENCE_TABLE: str = 'ctg_reference_data'
    HISTORY_TABLE: str = 'ctg_data'
    HISTORY_USER_COLUMN: str = 'user_id'
    DEFAULT_TIMEOUT_SECONDS: float = 5.0

    # Environment variables
    ENV_SUPABASE_URL: str = 'SUPABASE_URL'
    ENV_SUPABASE_KEYS: Tuple[str, ...] = ('SUPABASE_ANON_KEY', 'SUPABASE_KEY')
    ENV_TIMEOUT: str = 'STRIPSCAN_GATEWAY_TIMEOUT'
    ENV_REFERENCE_CSV: str = 'STRIPSCAN_REFERENCE_CSV'
    ENV_HISTORY_CSV: str = 'STRIPSCAN_HISTORY_CSV'
    ENV_USER_ID: str = 'STRIPSCAN_USER_ID'


GATEWAY: Final[GatewayConfig] = GatewayConfig()


# =============================================================================
# UI Colors
# =============================================================================

@dataclass(frozen=True)
class UIColors:
    """Color scheme for dashboard components."""

    HEART_RATE: str = '#1E90FF'   # Dodger Blue
    GAUGE_NORMAL: str = 'rgba(0, 200, 0, 0.2)'
    GAUGE_ALERT: str = 'rgba(255, 0, 0, 0.15)'
    BACKGROUND: str = '#FAFAFA'

    NORMAL: str = '#28a745'       # Green
    ATTENTION: str = '#fd7e14'    # Orange
    ALERT: str = '#dc3545'        # Red


COLORS: Final[UIColors] = UIColors()


# =============================================================================
# Convenience Exports
# =============================================================================

__all__ = [
    'IMAGE',
    'RATE',
    'CLASSIFIER',
    'LABELS',
    'GATEWAY',
    'COLORS',
    'ImageConfig',
    'RateConfig',
    'ClassifierConfig',
    'LabelStrings',
    'GatewayConfig',
    'UIColors',
]
