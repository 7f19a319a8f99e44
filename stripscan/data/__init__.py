"""
Image ingestion modules for StripScan.

Modules:
    loader: Image decoding into a fixed-size intensity grid
    edges: Sobel gradient-magnitude extraction
    records: Reference and history record containers

Usage:
    >>> from stripscan.data import load_intensity_grid, extract_edges
    >>> grid = load_intensity_grid("strip.png")
    >>> gradient = extract_edges(grid)
"""

from .loader import ImageDecodeError, ImageLoaderError, decode_image, load_intensity_grid
from .edges import (
    SOBEL_HORIZONTAL,
    SOBEL_VERTICAL,
    EdgeExtractionError,
    InvalidGridError,
    directional_gradients,
    extract_edges,
)
from .records import HistoryRecord, ReferenceRecord, UCI_COLUMN_ALIASES

__all__ = [
    "load_intensity_grid",
    "decode_image",
    "ImageLoaderError",
    "ImageDecodeError",
    "extract_edges",
    "directional_gradients",
    "SOBEL_HORIZONTAL",
    "SOBEL_VERTICAL",
    "EdgeExtractionError",
    "InvalidGridError",
    "ReferenceRecord",
    "HistoryRecord",
    "UCI_COLUMN_ALIASES",
]
