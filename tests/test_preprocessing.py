"""
Unit tests for image loading and edge extraction.

Tests the fixed-size grayscale grid and the Sobel gradient-magnitude map
using small synthetic images with known pixel values.
"""

import base64
import io
import sys
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

# Add repository root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from stripscan.data.loader import ImageDecodeError, ImageLoaderError, load_intensity_grid
from stripscan.data.edges import (
    SOBEL_HORIZONTAL,
    SOBEL_VERTICAL,
    InvalidGridError,
    directional_gradients,
    extract_edges,
)
from stripscan.config import IMAGE
from stripscan.errors import StripScanError


def _png_bytes(pixels: np.ndarray) -> bytes:
    """Encode a uint8 pixel array as PNG."""
    buffer = io.BytesIO()
    Image.fromarray(pixels.astype(np.uint8)).save(buffer, format='PNG')
    return buffer.getvalue()


# =============================================================================
# Image Loader Tests
# =============================================================================

class TestImageLoader:
    """Tests for decoding images into the 224x224 intensity grid."""

    def test_output_shape_is_fixed(self):
        """Test that any source size is resampled to 224x224."""
        for height, width in [(50, 80), (224, 224), (600, 300), (1, 1)]:
            grid = load_intensity_grid(_png_bytes(np.zeros((height, width), dtype=np.uint8)))
            assert grid.shape == IMAGE.grid_shape, f"Unexpected shape for {height}x{width}"

    def test_white_image_is_one(self):
        """Test that 8-bit values are normalized to [0, 1]."""
        grid = load_intensity_grid(_png_bytes(np.full((30, 30, 3), 255, dtype=np.uint8)))
        np.testing.assert_array_equal(grid, np.ones((224, 224)))

    def test_black_image_is_zero(self):
        grid = load_intensity_grid(_png_bytes(np.zeros((30, 30, 3), dtype=np.uint8)))
        assert float(grid.max()) == 0.0

    def test_color_channels_are_averaged(self):
        """Test that pure red becomes one third intensity."""
        pixels = np.zeros((10, 10, 3), dtype=np.uint8)
        pixels[:, :, 0] = 255
        grid = load_intensity_grid(_png_bytes(pixels))
        np.testing.assert_allclose(grid, np.full((224, 224), 1.0 / 3.0))

    def test_alpha_channel_is_dropped(self):
        """Test that a fully transparent white pixel still counts as white."""
        pixels = np.full((10, 10, 4), 255, dtype=np.uint8)
        pixels[:, :, 3] = 0
        grid = load_intensity_grid(_png_bytes(pixels))
        np.testing.assert_allclose(grid, np.ones((224, 224)))

    def test_grayscale_image(self):
        grid = load_intensity_grid(_png_bytes(np.full((16, 16), 51, dtype=np.uint8)))
        np.testing.assert_allclose(grid, np.full((224, 224), 51 / 255.0))

    def test_nearest_neighbour_resampling_keeps_quadrants(self):
        """Test that a 2x2 image maps each pixel onto one 112x112 quadrant."""
        pixels = np.array([[0, 255], [255, 0]], dtype=np.uint8)
        grid = load_intensity_grid(_png_bytes(pixels))

        assert np.all(grid[:112, :112] == 0.0)
        assert np.all(grid[:112, 112:] == 1.0)
        assert np.all(grid[112:, :112] == 1.0)
        assert np.all(grid[112:, 112:] == 0.0)

    def test_data_url_matches_raw_bytes(self):
        """Test that browser-style data URLs decode like the raw bytes."""
        rng = np.random.default_rng(7)
        data = _png_bytes(rng.integers(0, 256, size=(40, 60, 3), dtype=np.uint8))
        url = "data:image/png;base64," + base64.b64encode(data).decode('ascii')

        np.testing.assert_array_equal(load_intensity_grid(url), load_intensity_grid(data))

    def test_path_and_file_object(self, tmp_path: Path):
        data = _png_bytes(np.full((20, 20), 200, dtype=np.uint8))
        path = tmp_path / "strip.png"
        path.write_bytes(data)

        from_path = load_intensity_grid(path)
        from_str = load_intensity_grid(str(path))
        with open(path, 'rb') as f:
            from_file = load_intensity_grid(f)

        np.testing.assert_array_equal(from_path, from_str)
        np.testing.assert_array_equal(from_path, from_file)

    def test_pil_image_input(self):
        image = Image.new('RGB', (32, 32), color=(0, 0, 255))
        grid = load_intensity_grid(image)
        np.testing.assert_allclose(grid, np.full((224, 224), 1.0 / 3.0))

    def test_numpy_array_input(self):
        """Test that uint8 arrays are scaled and float arrays are used as-is."""
        uint8_grid = load_intensity_grid(np.full((8, 8), 255, dtype=np.uint8))
        float_grid = load_intensity_grid(np.full((8, 8, 3), 0.5))

        np.testing.assert_allclose(uint8_grid, np.ones((224, 224)))
        np.testing.assert_allclose(float_grid, np.full((224, 224), 0.5))

    def test_grid_is_read_only(self):
        grid = load_intensity_grid(_png_bytes(np.zeros((4, 4), dtype=np.uint8)))
        assert grid.flags.writeable is False
        with pytest.raises(ValueError):
            grid[0, 0] = 1.0

    @pytest.mark.parametrize("source", [
        b"this is not an image",
        b"",
        "data:image/png;base64,@@@not-base64@@@",
        "data:image/png,rawpayload",
        "data:image/png;base64",
        "/nonexistent/strip.png",
        42,
        np.zeros((0, 0)),
        np.zeros((2, 2, 2, 2)),
    ])
    def test_decode_failures_raise(self, source):
        """Test that undecodable sources raise ImageDecodeError."""
        with pytest.raises(ImageDecodeError):
            load_intensity_grid(source)

    def test_truncated_png_raises(self):
        data = _png_bytes(np.zeros((64, 64), dtype=np.uint8))
        with pytest.raises(ImageDecodeError):
            load_intensity_grid(data[: len(data) // 2])

    def test_oversized_image_raises(self, monkeypatch):
        """Test that Pillow's pixel-count guard surfaces as ImageDecodeError."""
        data = _png_bytes(np.zeros((100, 100), dtype=np.uint8))
        monkeypatch.setattr(Image, 'MAX_IMAGE_PIXELS', 1000)

        with pytest.raises(ImageDecodeError):
            load_intensity_grid(data)

    def test_exception_hierarchy(self):
        assert issubclass(ImageDecodeError, ImageLoaderError)
        assert issubclass(ImageLoaderError, StripScanError)


# =============================================================================
# Edge Extractor Tests
# =============================================================================

class TestEdgeExtractor:
    """Tests for the Sobel gradient-magnitude map."""

    def test_zero_grid_gives_zero_map(self):
        gradient = extract_edges(np.zeros((224, 224)))
        assert gradient.shape == (224, 224)
        assert float(gradient.max()) == 0.0

    def test_constant_grid_only_border_responds(self):
        """Test zero padding: a constant grid has edges only at its border."""
        gradient = extract_edges(np.ones((10, 10)))

        assert np.all(gradient[1:-1, 1:-1] == 0.0)
        assert gradient[0, 5] == pytest.approx(4.0)
        assert gradient[5, 0] == pytest.approx(4.0)
        assert gradient[0, 0] == pytest.approx(np.sqrt(18.0))

    def test_vertical_step_edge(self):
        """Test that a left/right step responds only along the step."""
        grid = np.zeros((10, 10))
        grid[:, 5:] = 1.0

        horizontal, vertical = directional_gradients(grid)
        gradient = extract_edges(grid)

        assert np.all(horizontal[1:-1, :] == 0.0)
        assert vertical[5, 4] == pytest.approx(4.0)
        assert vertical[5, 5] == pytest.approx(4.0)
        assert gradient[5, 2] == 0.0

    def test_horizontal_step_edge(self):
        grid = np.zeros((10, 10))
        grid[5:, :] = 1.0

        horizontal, vertical = directional_gradients(grid)

        assert np.all(vertical[:, 1:-1] == 0.0)
        assert horizontal[4, 5] == pytest.approx(4.0)

    def test_kernels_are_constant(self):
        np.testing.assert_array_equal(SOBEL_HORIZONTAL, [[-1, -2, -1], [0, 0, 0], [1, 2, 1]])
        np.testing.assert_array_equal(SOBEL_VERTICAL, [[-1, 0, 1], [-2, 0, 2], [-1, 0, 1]])
        with pytest.raises(ValueError):
            SOBEL_HORIZONTAL[0, 0] = 5

    def test_output_is_read_only_and_deterministic(self):
        rng = np.random.default_rng(3)
        grid = rng.random((224, 224))

        first = extract_edges(grid)
        second = extract_edges(grid)

        assert first.flags.writeable is False
        assert np.array_equal(first, second)

    @pytest.mark.parametrize("grid", [
        np.zeros(10),
        np.zeros((3, 3, 3)),
        np.zeros((0, 5)),
        np.array([["a", "b"], ["c", "d"]]),
        None,
    ])
    def test_invalid_grid_raises(self, grid):
        with pytest.raises(InvalidGridError):
            extract_edges(grid)
