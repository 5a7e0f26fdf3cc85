"""Dominant gradient orientations around a scale-space candidate."""

import math

import numpy as np

from ...util.image import ImageUtils

ORIENTATION_BINS = 36
ORIENTATION_BIN_SIZE = 2.0 * math.pi / ORIENTATION_BINS
SECONDARY_PEAK_RATIO = 0.8


def orientation_histogram(
    magnitude: np.ndarray, orientation: np.ndarray, x: float, y: float, sigma: float
) -> np.ndarray:
    """36-bin gradient orientation histogram weighted by a Gaussian of 1.5 * sigma.

    The Gaussian is centered on the sub-pixel location, its window is clipped
    to the image.
    """
    h, w = magnitude.shape
    cx, cy = int(x), int(y)
    mask = ImageUtils.create_gaussian_kernel_offset(1.5 * sigma, x - cx, y - cy)
    r = mask.shape[0] // 2

    x0, x1 = max(0, cx - r), min(w, cx + r + 1)
    y0, y1 = max(0, cy - r), min(h, cy + r + 1)
    if x0 >= x1 or y0 >= y1:
        return np.zeros(ORIENTATION_BINS)

    weights = mask[y0 - cy + r : y1 - cy + r, x0 - cx + r : x1 - cx + r]
    magnitudes = magnitude[y0:y1, x0:x1] * weights
    bins = ((orientation[y0:y1, x0:x1] + math.pi) / ORIENTATION_BIN_SIZE).astype(int)
    bins = np.clip(bins, 0, ORIENTATION_BINS - 1)

    return np.bincount(
        bins.ravel(),
        weights=magnitudes.ravel().astype(np.float64),
        minlength=ORIENTATION_BINS,
    )


def peak_orientation(histogram: np.ndarray, i: int) -> float:
    """Orientation of bin i refined by a parabola through its two neighbors.

    A flat neighborhood (zero curvature) keeps the bin center.
    """
    e0 = histogram[(i - 1) % ORIENTATION_BINS]
    e1 = histogram[i]
    e2 = histogram[(i + 1) % ORIENTATION_BINS]

    denominator = e0 - 2.0 * e1 + e2
    offset = 0.0 if denominator == 0 else (e0 - e2) / 2.0 / denominator

    angle = (i + 0.5 + offset) * ORIENTATION_BIN_SIZE - math.pi
    if angle > math.pi:
        angle -= 2.0 * math.pi
    elif angle < -math.pi:
        angle += 2.0 * math.pi
    return float(angle)


def assign_orientations(
    magnitude: np.ndarray, orientation: np.ndarray, x: float, y: float, sigma: float
) -> list[float]:
    """Main orientation first, then every other strict peak of at least 80% of it."""
    histogram = orientation_histogram(magnitude, orientation, x, y, sigma)
    max_i = int(np.argmax(histogram))
    max_value = histogram[max_i]

    orientations = [peak_orientation(histogram, max_i)]
    neighbors = {max_i, (max_i + 1) % ORIENTATION_BINS, (max_i - 1) % ORIENTATION_BINS}
    for i in range(ORIENTATION_BINS):
        if i in neighbors:
            continue
        e0 = histogram[(i - 1) % ORIENTATION_BINS]
        e1 = histogram[i]
        e2 = histogram[(i + 1) % ORIENTATION_BINS]
        if e1 >= SECONDARY_PEAK_RATIO * max_value and e0 < e1 and e2 < e1:
            orientations.append(peak_orientation(histogram, i))

    return orientations
