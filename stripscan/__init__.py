"""
StripScan - Heart rate and rhythm estimates from strip photographs.

A heuristic analysis pipeline for still images of ECG/CTG strips:
- Image loading into a fixed 224x224 grayscale grid
- Sobel edge extraction into a gradient-magnitude map
- Peak-density heart-rate estimate blended with the user's history
- Rhythm classification matched against reference CTG cases

Modules:
    config: Centralized configuration constants
    data: Image loading, edge extraction, record containers
    rules: Heart-rate and rhythm heuristics
    gateway: Reference data access (Supabase, CSV)
    analysis: End-to-end pipeline and result types
    ui: Streamlit dashboard and visualizations
    utils: Reusable numeric helpers

Quick Start:
    >>> from stripscan import analyze_strip_image
    >>> result = analyze_strip_image("strip.jpg")
    >>> print(result.heart_rate, result.rhythm_type, result.abnormalities)
"""

__version__ = "1.0.0"

# Expose main configuration
from stripscan.config import IMAGE, RATE, CLASSIFIER, LABELS, GATEWAY
from stripscan.errors import StripScanError
from stripscan.analysis import AnalysisResult, StripAnalyzer, analyze_strip_image

__all__ = [
    '__version__',
    'IMAGE',
    'RATE',
    'CLASSIFIER',
    'LABELS',
    'GATEWAY',
    'StripScanError',
    'AnalysisResult',
    'StripAnalyzer',
    'analyze_strip_image',
]
