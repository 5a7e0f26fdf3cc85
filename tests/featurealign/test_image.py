"""Unit tests for image.py module."""

from pathlib import Path

import cv2
import numpy as np
import pytest

from featurealign.common.buffer import FloatBuffer2D
from featurealign.common.exceptions import FeatureAlignFileException
from featurealign.image import load_image, to_float_buffer


class TestToFloatBuffer:
    """Test conversion of arrays into normalized buffers."""

    def test_full_range_is_normalized(self) -> None:
        """Test that the array range maps onto [0, 1]."""
        # Execute
        buffer = to_float_buffer(np.array([[10, 20], [30, 50]], dtype=np.uint8))

        # Verify
        assert isinstance(buffer, FloatBuffer2D)
        assert buffer.data.dtype == np.float32
        assert np.allclose(buffer.data, [[0.0, 0.25], [0.5, 1.0]])

    def test_display_range_clips(self) -> None:
        """Test that values outside the display range saturate."""
        # Execute
        buffer = to_float_buffer(
            np.array([[0.0, 50.0, 100.0]]), display_min=25.0, display_max=75.0
        )

        # Verify
        assert np.allclose(buffer.data, [[0.0, 0.5, 1.0]])


class TestLoadImage:
    """Test loading image files."""

    def test_load_grayscale_png(self, temp_dir: Path) -> None:
        """Test that a written 8-bit image loads normalized."""
        # Setup
        path = temp_dir / "gradient.png"
        pixels = np.tile(np.arange(0, 256, 16, dtype=np.uint8), (4, 1))
        cv2.imwrite(str(path), pixels)

        # Execute
        buffer = load_image(path)

        # Verify
        assert (buffer.width, buffer.height) == (16, 4)
        assert buffer.get(0, 0) == 0.0
        assert buffer.get(15, 3) == 1.0

    def test_missing_file_raises(self, temp_dir: Path) -> None:
        """Test that a missing file raises FeatureAlignFileException."""
        with pytest.raises(FeatureAlignFileException):
            load_image(temp_dir / "missing.png")
