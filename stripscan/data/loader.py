"""
Strip Image Loader.

Decodes a photographed or uploaded waveform strip into a normalized grayscale
intensity grid of fixed resolution.

This module provides:
    - load_intensity_grid: Decode any supported image source into a grid
    - decode_image: Decode a source into an RGB ``PIL.Image.Image``
    - ImageLoaderError / ImageDecodeError: Loader exceptions

Supported sources:
    - Raw encoded bytes (PNG, JPEG, ...)
    - ``data:`` URL strings, as produced by browser upload or camera capture
    - Filesystem paths (``str`` or ``pathlib.Path``)
    - Binary file objects
    - ``PIL.Image.Image`` instances
    - Numpy arrays shaped ``H x W`` or ``H x W x C``

Example:
    >>> grid = load_intensity_grid("strip.jpg")
    >>> print(grid.shape, grid.min(), grid.max())
    (224, 224) 0.0 1.0
"""

from __future__ import annotations

import base64
import binascii
import io
import logging
from pathlib import Path
from typing import Any, BinaryIO, Union

import numpy as np
from PIL import Image, UnidentifiedImageError

from stripscan.config import IMAGE
from stripscan.errors import StripScanError

# Configure module logger
logger = logging.getLogger(__name__)

ImageSource = Union[bytes, bytearray, memoryview, str, Path, BinaryIO, Image.Image, np.ndarray]

DATA_URL_PREFIX = "data:"


class ImageLoaderError(StripScanError):
    """Base exception for image loader errors."""
    pass


class ImageDecodeError(ImageLoaderError):
    """Raised when a source cannot be interpreted as pixel data."""
    pass


def load_intensity_grid(source: ImageSource, size: int = IMAGE.GRID_SIZE) -> np.ndarray:
    """
    Decode an image source into a normalized grayscale intensity grid.

    Algorithm:
        1. Decode the source into RGB pixel data (alpha dropped)
        2. Resample to ``size x size`` with nearest-neighbour sampling
        3. Average the colour channels into a single channel
        4. Scale 8-bit values into [0, 1]

    Args:
        source: Image resource (see module docstring for accepted types).
        size: Output grid side length (default: 224).

    Returns:
        Read-only float64 array of shape ``(size, size)``.

    Raises:
        ImageDecodeError: If the source cannot be decoded into pixel data.

    Example:
        >>> grid = load_intensity_grid(open("strip.png", "rb").read())
        >>> grid.shape
        (224, 224)
    """
    if size <= 0:
        raise ValueError(f"size must be positive, got {size}")

    if isinstance(source, np.ndarray):
        pixels = _array_to_pixels(source)
    else:
        image = decode_image(source)
        pixels = np.asarray(image, dtype=np.float64) / IMAGE.PIXEL_MAX

    resized = _resize_nearest(pixels, size)

    if resized.ndim == 3:
        grid = resized.mean(axis=2)
    else:
        grid = resized

    grid = np.ascontiguousarray(grid, dtype=np.float64)
    grid.setflags(write=False)

    logger.debug(
        f"Loaded intensity grid {grid.shape} from {pixels.shape[1]}x{pixels.shape[0]} source "
        f"(mean={grid.mean():.3f})"
    )
    return grid


def decode_image(source: ImageSource) -> Image.Image:
    """
    Decode an image source into an RGB Pillow image.

    Args:
        source: Encoded bytes, data URL, path, binary file object or PIL image.

    Returns:
        Fully loaded RGB ``PIL.Image.Image``.

    Raises:
        ImageDecodeError: If decoding fails for any reason.
    """
    if isinstance(source, Image.Image):
        image = source
    else:
        stream = _open_stream(source)
        try:
            image = Image.open(stream)
            image.load()
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError, SyntaxError) as e:
            raise ImageDecodeError(f"Could not decode image: {e}") from e

    try:
        return image.convert('RGB')
    except (OSError, ValueError) as e:
        raise ImageDecodeError(f"Could not convert image mode '{image.mode}' to RGB: {e}") from e


def _open_stream(source: Any) -> Union[BinaryIO, Path]:
    """
    Turn a source into something ``Image.open`` accepts.

    Raises:
        ImageDecodeError: For empty, unreadable or unsupported sources.
    """
    if isinstance(source, (bytes, bytearray, memoryview)):
        data = bytes(source)
        if not data:
            raise ImageDecodeError("Image data is empty")
        return io.BytesIO(data)

    if isinstance(source, str):
        if source.startswith(DATA_URL_PREFIX):
            return io.BytesIO(_decode_data_url(source))
        source = Path(source)

    if isinstance(source, Path):
        if not source.is_file():
            raise ImageDecodeError(f"Image file not found: {source}")
        return source

    if hasattr(source, 'read'):
        return source

    raise ImageDecodeError(f"Unsupported image source type: {type(source).__name__}")


def _decode_data_url(url: str) -> bytes:
    """
    Decode the payload of a ``data:[<mime>][;base64],<payload>`` URL.

    Raises:
        ImageDecodeError: If the URL is malformed or not base64 encoded.
    """
    header, sep, payload = url.partition(',')
    if not sep:
        raise ImageDecodeError("Malformed data URL: missing ',' separator")
    if not header.endswith(';base64'):
        raise ImageDecodeError("Only base64-encoded data URLs are supported")

    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ImageDecodeError(f"Invalid base64 payload in data URL: {e}") from e

    if not data:
        raise ImageDecodeError("Data URL payload is empty")
    return data


def _array_to_pixels(array: np.ndarray) -> np.ndarray:
    """
    Normalize a raw pixel array to float values in [0, 1].

    Integer arrays are treated as 8-bit pixel data; float arrays are assumed
    to be normalized already. Alpha/extra channels beyond RGB are dropped.

    Raises:
        ImageDecodeError: If the array is empty or has an unsupported shape.
    """
    if array.size == 0:
        raise ImageDecodeError("Pixel array is empty")
    if array.ndim not in (2, 3):
        raise ImageDecodeError(f"Pixel array must be 2-D or 3-D, got shape {array.shape}")

    if array.ndim == 3:
        array = array[:, :, :IMAGE.COLOR_CHANNELS]

    if np.issubdtype(array.dtype, np.integer) or array.dtype == np.bool_:
        pixels = array.astype(np.float64) / IMAGE.PIXEL_MAX
    else:
        pixels = array.astype(np.float64)

    if not np.all(np.isfinite(pixels)):
        raise ImageDecodeError("Pixel array contains NaN or infinite values")
    return pixels


def _resize_nearest(pixels: np.ndarray, size: int) -> np.ndarray:
    """
    Nearest-neighbour resampling to ``size x size``.

    Source index for output index ``i`` is ``floor(i * in / out)`` (corners
    not aligned, no half-pixel offset).

    Args:
        pixels: ``H x W`` or ``H x W x C`` array.
        size: Output side length.

    Returns:
        Resampled array with the same number of channels.
    """
    height, width = pixels.shape[:2]
    rows = np.minimum((np.arange(size) * height) // size, height - 1)
    cols = np.minimum((np.arange(size) * width) // size, width - 1)
    return pixels[rows[:, None], cols[None, :]]
