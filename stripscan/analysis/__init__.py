"""
Analysis module for StripScan.

This module provides:
    - The end-to-end pipeline (image -> heart rate + rhythm)
    - The result containers handed back to callers

Usage:
    >>> from stripscan.analysis import analyze_strip_image, StripAnalyzer
    >>> result = analyze_strip_image("strip.png")
    >>> report = StripAnalyzer().analyze_detailed("strip.png")
"""

from .result import AnalysisResult, AnalysisReport
from .pipeline import StripAnalyzer, analyze_strip_image

__all__ = [
    # Pipeline
    'StripAnalyzer',
    'analyze_strip_image',
    # Results
    'AnalysisResult',
    'AnalysisReport',
]
