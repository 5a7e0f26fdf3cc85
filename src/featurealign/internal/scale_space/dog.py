"""Difference-of-Gaussian extremum detection with sub-pixel localization."""

import logging
import math
from typing import NamedTuple, Optional

import numpy as np

logger = logging.getLogger(__name__)


class Candidate(NamedTuple):
    x: float
    y: float
    scale: float


class DoGDetector:
    """Find strict 3-D extrema in a DoG stack and refine them to sub-pixel accuracy."""

    MAX_LOCALIZATION_STEPS = 5
    MAX_OFFSET_NORM = 2.0

    def __init__(self, min_contrast: float = 0.025, max_curvature: float = 10.0):
        self.min_contrast = min_contrast
        self.max_curvature_ratio = (max_curvature + 1) ** 2 / max_curvature

    def detect(self, dog: np.ndarray) -> list[Candidate]:
        """Detect localized candidates in a (levels, height, width) DoG stack.

        Returns:
            Candidates as (x, y, scale index) in octave coordinates
        """
        dog = np.asarray(dog, dtype=np.float64)
        if min(dog.shape) < 3:
            return []

        extrema = self.find_extrema(dog)
        candidates = []
        for i, y, x in extrema:
            candidate = self._localize(dog, int(x), int(y), int(i))
            if candidate is not None:
                candidates.append(candidate)

        logger.debug(
            f"{len(candidates)} of {len(extrema)} DoG extrema survived localization"
        )
        return candidates

    @staticmethod
    def find_extrema(dog: np.ndarray) -> np.ndarray:
        """Indices (i, y, x) of samples strictly above or below all 26 neighbors."""
        levels, h, w = dog.shape
        center = dog[1:-1, 1:-1, 1:-1]
        is_max = np.ones(center.shape, dtype=bool)
        is_min = np.ones(center.shape, dtype=bool)

        for di in range(3):
            for dy in range(3):
                for dx in range(3):
                    if di == 1 and dy == 1 and dx == 1:
                        continue
                    neighbor = dog[di : di + levels - 2, dy : dy + h - 2, dx : dx + w - 2]
                    is_max &= center > neighbor
                    is_min &= center < neighbor

        return np.argwhere(is_max | is_min) + 1

    def _localize(self, dog: np.ndarray, x: int, y: int, i: int) -> Optional[Candidate]:
        levels, h, w = dog.shape
        previous_norm = math.inf

        for _ in range(self.MAX_LOCALIZATION_STEPS):
            cube = dog[i - 1 : i + 2, y - 1 : y + 2, x - 1 : x + 2]
            e111 = cube[1, 1, 1]

            gradient = np.array(
                [
                    (cube[1, 1, 2] - cube[1, 1, 0]) / 2.0,
                    (cube[1, 2, 1] - cube[1, 0, 1]) / 2.0,
                    (cube[2, 1, 1] - cube[0, 1, 1]) / 2.0,
                ]
            )

            dxx = cube[1, 1, 0] - 2.0 * e111 + cube[1, 1, 2]
            dyy = cube[1, 0, 1] - 2.0 * e111 + cube[1, 2, 1]
            dii = cube[0, 1, 1] - 2.0 * e111 + cube[2, 1, 1]
            dxy = (cube[1, 2, 2] - cube[1, 2, 0] - cube[1, 0, 2] + cube[1, 0, 0]) / 4.0
            dxi = (cube[2, 1, 2] - cube[2, 1, 0] - cube[0, 1, 2] + cube[0, 1, 0]) / 4.0
            dyi = (cube[2, 2, 1] - cube[2, 0, 1] - cube[0, 2, 1] + cube[0, 0, 1]) / 4.0

            hessian = np.array([[dxx, dxy, dxi], [dxy, dyy, dyi], [dxi, dyi, dii]])
            det = (
                dxx * (dyy * dii - dyi * dyi)
                - dxy * (dxy * dii - dyi * dxi)
                + dxi * (dxy * dyi - dyy * dxi)
            )
            if det == 0:
                return None

            try:
                offset = -np.linalg.solve(hessian, gradient)
            except np.linalg.LinAlgError:
                return None

            norm = float(np.dot(offset, offset))
            if norm >= self.MAX_OFFSET_NORM:
                return None

            if np.any(np.abs(offset) >= 0.5) and norm < previous_norm:
                # Re-center on the neighbor the offset points to
                previous_norm = norm
                x = int(math.floor(x + offset[0] + 0.5))
                y = int(math.floor(y + offset[1] + 0.5))
                i = int(math.floor(i + offset[2] + 0.5))
                if not (1 <= x <= w - 2 and 1 <= y <= h - 2 and 1 <= i <= levels - 2):
                    return None
                continue

            fx, fy, fi = x + offset[0], y + offset[1], i + offset[2]
            if not (0 <= fx <= w - 1 and 0 <= fy <= h - 1 and 0 <= fi <= levels - 1):
                return None
            break
        else:
            return None

        if abs(e111 + 0.5 * float(np.dot(gradient, offset))) < self.min_contrast:
            return None

        # Edge response from the 2-D Hessian
        det2 = dxx * dyy - dxy * dxy
        if det2 == 0:
            return None
        trace = dxx + dyy
        if trace * trace / det2 > self.max_curvature_ratio:
            return None

        return Candidate(float(fx), float(fy), float(fi))
