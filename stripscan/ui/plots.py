"""
Visualization Utilities for StripScan.

This module provides Plotly-based visualizations for analysis results:
- Heart-rate gauge with the plausible 60-200 bpm range
- Gradient-map heatmap showing the detected "ink"
- Intensity-grid image of the resampled strip
"""

from __future__ import annotations

from typing import Optional

import numpy as np
import plotly.graph_objects as go

from stripscan.analysis.result import AnalysisResult
from stripscan.config import COLORS, LABELS, RATE


# Rhythm labels that do not call for attention
NORMAL_RHYTHMS = frozenset({
    LABELS.RHYTHM_NORMAL,
    LABELS.pattern_classes[1],
    LABELS.pattern_classes[2],
    LABELS.pattern_classes[3],
    LABELS.pattern_classes[4],
})

NORMAL_RATE_RANGE = (110, 160)


def get_result_status(result: AnalysisResult) -> int:
    """
    Map a result to a display status.

    Returns:
        1 (normal), 2 (attention: findings or unusual rhythm) or
        3 (alert: arrhythmia or severe decelerations).
    """
    if result.rhythm_type == LABELS.RHYTHM_ARRHYTHMIA or LABELS.FINDING_SEVERE_DECELS in result.abnormalities:
        return 3
    if result.abnormalities or result.rhythm_type not in NORMAL_RHYTHMS:
        return 2
    return 1


def get_status_color(status: int) -> str:
    """
    Get the display color for a status.

    Args:
        status: Display status (1, 2, or 3).

    Returns:
        Hex color string.
    """
    colors = {1: COLORS.NORMAL, 2: COLORS.ATTENTION, 3: COLORS.ALERT}
    return colors.get(status, 'gray')


def get_status_emoji(status: int) -> str:
    """
    Get the emoji indicator for a status.

    Args:
        status: Display status (1, 2, or 3).

    Returns:
        Emoji string.
    """
    emojis = {1: '🟢', 2: '🟠', 3: '🔴'}
    return emojis.get(status, '⚪')


def create_heart_rate_gauge(
    heart_rate: int,
    confidence: Optional[float] = None,
    height: int = 250
) -> go.Figure:
    """
    Create a heart-rate gauge spanning the estimator's output range.

    Args:
        heart_rate: Estimated heart rate in bpm.
        confidence: Rhythm confidence shown under the number (optional).
        height: Figure height in pixels.

    Returns:
        Plotly Figure object.

    Example:
        >>> fig = create_heart_rate_gauge(81, confidence=0.92)
        >>> st.plotly_chart(fig)
    """
    low, high = NORMAL_RATE_RANGE
    title = 'Heart rate'
    if confidence is not None:
        title += f"<br><span style='font-size:0.6em'>confidence {confidence:.0%}</span>"

    fig = go.Figure(go.Indicator(
        mode="gauge+number",
        value=heart_rate,
        title={'text': title},
        number={'suffix': ' bpm'},
        gauge={
            'axis': {'range': [RATE.MIN_BPM, RATE.MAX_BPM]},
            'bar': {'color': COLORS.HEART_RATE},
            'steps': [
                {'range': [RATE.MIN_BPM, low], 'color': COLORS.GAUGE_ALERT},
                {'range': [low, high], 'color': COLORS.GAUGE_NORMAL},
                {'range': [high, RATE.MAX_BPM], 'color': COLORS.GAUGE_ALERT},
            ],
            'threshold': {
                'line': {'color': 'black', 'width': 2},
                'thickness': 0.75,
                'value': heart_rate
            }
        }
    ))

    fig.update_layout(
        height=height,
        margin=dict(l=20, r=20, t=60, b=20),
        paper_bgcolor=COLORS.BACKGROUND
    )

    return fig


def create_gradient_heatmap(
    gradient: np.ndarray,
    threshold: Optional[float] = None,
    title: str = "Gradient magnitude",
    height: int = 450
) -> go.Figure:
    """
    Create a heatmap of a gradient-magnitude map.

    Args:
        gradient: Gradient-magnitude map.
        threshold: Peak threshold; cells above it are outlined (optional).
        title: Plot title.
        height: Plot height in pixels.

    Returns:
        Plotly Figure object.
    """
    gradient = np.asarray(gradient, dtype=np.float64)

    fig = go.Figure(go.Heatmap(
        z=gradient,
        colorscale='Viridis',
        colorbar=dict(title='|∇|'),
        hovertemplate='x: %{x}<br>y: %{y}<br>|∇|: %{z:.3f}<extra></extra>'
    ))

    if threshold is not None and gradient.size and float(gradient.max()) > 0:
        fig.add_trace(go.Contour(
            z=(gradient > threshold).astype(float),
            contours=dict(start=0.5, end=0.5, coloring='lines'),
            line=dict(color='red', width=1),
            showscale=False,
            hoverinfo='skip',
            name='peaks'
        ))

    _style_image_axes(fig, title, height)
    return fig


def create_intensity_image(
    grid: np.ndarray,
    title: str = "Resampled strip",
    height: int = 450
) -> go.Figure:
    """
    Create a grayscale rendering of an intensity grid.

    Args:
        grid: Intensity grid with values in [0, 1].
        title: Plot title.
        height: Plot height in pixels.

    Returns:
        Plotly Figure object.
    """
    fig = go.Figure(go.Heatmap(
        z=np.asarray(grid, dtype=np.float64),
        colorscale='Gray',
        zmin=0.0,
        zmax=1.0,
        showscale=False,
        hovertemplate='x: %{x}<br>y: %{y}<br>intensity: %{z:.2f}<extra></extra>'
    ))

    _style_image_axes(fig, title, height)
    return fig


def _style_image_axes(fig: go.Figure, title: str, height: int) -> None:
    """Image-style layout: y axis pointing down, square pixels."""
    fig.update_layout(
        title=dict(text=title, font=dict(size=16), x=0.5),
        height=height,
        margin=dict(l=20, r=20, t=50, b=20),
        paper_bgcolor=COLORS.BACKGROUND,
        plot_bgcolor='white'
    )
    fig.update_yaxes(autorange='reversed', scaleanchor='x', showgrid=False)
    fig.update_xaxes(showgrid=False)
