"""Pytest configuration and shared fixtures."""

import tempfile
from collections.abc import Generator
from pathlib import Path

import cv2
import numpy as np
import pytest


def gaussian_blob(
    width: int, height: int, centers: list[tuple[float, float]], sigma: float
) -> np.ndarray:
    """Bright Gaussian blobs on a black background."""
    ys, xs = np.mgrid[0:height, 0:width].astype(np.float64)
    image = np.zeros((height, width))
    for cx, cy in centers:
        image += np.exp(-((xs - cx) ** 2 + (ys - cy) ** 2) / (2.0 * sigma * sigma))
    return image.astype(np.float32)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory(prefix="test_feature_align_") as tmp:
        yield Path(tmp)


@pytest.fixture
def blob_image() -> np.ndarray:
    """64x64 image with a single Gaussian blob of sigma 3 at (32, 32)."""
    return gaussian_blob(64, 64, [(32.0, 32.0)], 3.0)


@pytest.fixture
def multi_blob_image() -> np.ndarray:
    """256x256 image with a 3x3 grid of Gaussian blobs of sigma 3."""
    centers = [(float(x), float(y)) for x in (64, 128, 192) for y in (64, 128, 192)]
    return gaussian_blob(256, 256, centers, 3.0)


@pytest.fixture
def noise_image() -> np.ndarray:
    """128x128 smooth random texture."""
    rng = np.random.default_rng(42)
    noise = rng.random((128, 128)).astype(np.float32)
    return cv2.GaussianBlur(noise, (0, 0), 2.0)


@pytest.fixture
def ramp_image() -> np.ndarray:
    """48x64 image whose values are 1 + x + 100 * y, all distinct and positive."""
    ys, xs = np.mgrid[0:48, 0:64]
    return (1.0 + xs + 100.0 * ys).astype(np.float32)
