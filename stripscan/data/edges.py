"""
Strip Edge Extractor.

Turns an intensity grid into a gradient-magnitude map that approximates where
the plotted waveform's "ink" is.

Algorithm:
    1. Cross-correlate the grid with a fixed horizontal Sobel kernel
    2. Cross-correlate the grid with a fixed vertical Sobel kernel
    3. Combine elementwise as sqrt(h^2 + v^2)

Both correlations are same-size: the grid is padded with zeros at its border
so that the output shape equals the input shape. The kernels and padding are
fixed; there is nothing to configure.

Example:
    >>> from stripscan.data import load_intensity_grid, extract_edges
    >>> grid = load_intensity_grid("strip.png")
    >>> gradient = extract_edges(grid)
    >>> gradient.shape == grid.shape
    True
"""

from __future__ import annotations

import logging

import numpy as np
from scipy import signal as scipy_signal

from stripscan.errors import StripScanError

# Configure module logger
logger = logging.getLogger(__name__)


def _constant_kernel(rows: list) -> np.ndarray:
    kernel = np.array(rows, dtype=np.float64)
    kernel.setflags(write=False)
    return kernel


SOBEL_HORIZONTAL = _constant_kernel([[-1, -2, -1], [0, 0, 0], [1, 2, 1]])
SOBEL_VERTICAL = _constant_kernel([[-1, 0, 1], [-2, 0, 2], [-1, 0, 1]])


class EdgeExtractionError(StripScanError):
    """Base exception for edge extraction errors."""
    pass


class InvalidGridError(EdgeExtractionError):
    """Raised when the input is not a non-empty 2-D numeric grid."""
    pass


def directional_gradients(grid: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """
    Apply the horizontal and vertical kernels to a grid.

    Args:
        grid: 2-D intensity grid.

    Returns:
        Tuple of (horizontal response, vertical response), each with the
        grid's shape.

    Raises:
        InvalidGridError: If the grid is not a non-empty 2-D array.
    """
    grid = _validate_grid(grid)

    horizontal = scipy_signal.correlate2d(
        grid, SOBEL_HORIZONTAL, mode='same', boundary='fill', fillvalue=0.0
    )
    vertical = scipy_signal.correlate2d(
        grid, SOBEL_VERTICAL, mode='same', boundary='fill', fillvalue=0.0
    )
    return horizontal, vertical


def extract_edges(grid: np.ndarray) -> np.ndarray:
    """
    Compute the gradient-magnitude map of an intensity grid.

    Args:
        grid: 2-D intensity grid (typically 224x224, values in [0, 1]).

    Returns:
        Read-only float64 array with the grid's shape, value
        ``sqrt(h**2 + v**2)`` per cell.

    Raises:
        InvalidGridError: If the grid is not a non-empty 2-D array.

    Example:
        >>> gradient = extract_edges(np.zeros((224, 224)))
        >>> float(gradient.max())
        0.0
    """
    horizontal, vertical = directional_gradients(grid)

    gradient = np.sqrt(np.square(horizontal) + np.square(vertical))
    gradient.setflags(write=False)

    logger.debug(
        f"Gradient map {gradient.shape}: max={gradient.max():.3f}, mean={gradient.mean():.3f}"
    )
    return gradient


def _validate_grid(grid: np.ndarray) -> np.ndarray:
    """Check shape and dtype, returning a float64 view of the grid."""
    if grid is None:
        raise InvalidGridError("Input grid is None")

    array = np.asarray(grid)
    if array.ndim != 2:
        raise InvalidGridError(f"Grid must be 2-D, got shape {array.shape}")
    if array.size == 0:
        raise InvalidGridError("Grid is empty")
    if not np.issubdtype(array.dtype, np.number):
        raise InvalidGridError(f"Grid must be numeric, got dtype {array.dtype}")

    return array.astype(np.float64, copy=False)
