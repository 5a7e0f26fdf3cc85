import logging
import math

import numpy as np

from ....common.enums import DetectorChoice
from ....common.feature import Feature
from ...config.detector import MOPSConfig
from ...scale_space.dog import Candidate
from ...util.image import ImageUtils
from ..decorators import Detector
from .base import FeatureDetector as FeatureDetectorBase
from .base import _round

logger = logging.getLogger(__name__)


@Detector(DetectorChoice.MOPS)
class MOPSDetector(FeatureDetectorBase):
    """Intensity patch descriptors sampled two octaves above the detection octave."""

    # Patches come from octave o + O_SCALE_LD2, which is O_SCALE times smaller
    O_SCALE = 4
    O_SCALE_LD2 = 2

    config: MOPSConfig

    def _min_octave_size(self) -> int:
        return self.config.min_octave_size // self.O_SCALE

    def _prescale(self, image: np.ndarray) -> tuple[np.ndarray, float]:
        h, w = image.shape
        max_size = self.config.max_octave_size
        if w <= max_size - 1 and h <= max_size - 1:
            return image, 1.0

        scale = min(max_size / w, max_size / h)
        logger.info(f"Pre-scaling {w}x{h} image by {scale:.3f}")
        resized = ImageUtils.create_downsampled(
            image, scale, self.SOURCE_SIGMA, self.SOURCE_SIGMA
        )
        return resized, scale

    def _run(self) -> list[Feature]:
        for octave in self.octaves:
            if self._fits(octave):
                octave.build()

        features: list[Feature] = []
        for o in range(len(self.octaves) - self.O_SCALE_LD2):
            octave = self.octaves[o]
            if not self._fits(octave):
                continue
            candidates = self.dog_detector.detect(octave.dog_stack())
            for candidate in candidates:
                features.extend(self._process_candidate(candidate, o, octave))
            logger.debug(
                f"Octave {o} ({octave.width}x{octave.height}): {len(candidates)} candidates"
            )

        for octave in self.octaves:
            octave.clear()

        logger.info(f"MOPS extracted {len(features)} features")
        return features

    def _create_descriptor(
        self, candidate: Candidate, o: int, sigma: float, orientation: float
    ) -> np.ndarray:
        level = self.octaves[o + self.O_SCALE_LD2].get_l(_round(candidate.scale))
        h, w = level.shape
        fd_size = self.config.fd_size

        cos_o = math.cos(orientation)
        sin_o = math.sin(orientation)
        grid = (np.arange(fd_size) - fd_size / 2.0 + 0.5) * sigma
        ys = grid[:, None]
        xs = grid[None, :]
        yr = cos_o * ys + sin_o * xs
        xr = cos_o * xs - sin_o * ys

        cy = candidate.y / self.O_SCALE
        cx = candidate.x / self.O_SCALE
        yg = ImageUtils.ping_pong(np.floor(yr + cy + 0.5).astype(int), h)
        xg = ImageUtils.ping_pong(np.floor(xr + cx + 0.5).astype(int), w)

        patch = level[yg, xg].astype(np.float64).ravel()
        low = patch.min()
        high = patch.max()
        if high <= low:
            return np.zeros(self.config.descriptor_length, dtype=np.float32)

        return ((patch - low) / (high - low)).astype(np.float32)
