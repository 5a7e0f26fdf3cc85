import logging
import math

import numpy as np

from ....common.enums import DetectorChoice
from ....common.feature import Feature
from ...config.detector import SIFTConfig
from ...scale_space.dog import Candidate
from ...util.image import ImageUtils
from ..decorators import Detector
from .base import FeatureDetector as FeatureDetectorBase
from .base import _round

logger = logging.getLogger(__name__)


@Detector(DetectorChoice.SIFT)
class SIFTDetector(FeatureDetectorBase):
    """Gradient orientation histogram descriptors on a 4 * fd_size sample grid."""

    # Histogram entries above this share of the maximum saturate
    DESCRIPTOR_CLIP = 0.2

    def __init__(self, *, config: SIFTConfig) -> None:
        super().__init__(config=config)
        self.fd_width = 4 * config.fd_size
        self.fd_bin_width = 2.0 * math.pi / config.fd_bins

        center = self.fd_width / 2.0 - 0.5
        grid = np.arange(self.fd_width) - center
        two_sq_sigma = config.fd_size * config.fd_size * 8.0
        self.descriptor_mask = np.exp(
            -(grid[:, None] ** 2 + grid[None, :] ** 2) / two_sq_sigma
        )

        # Sub-region of every sample in the descriptor grid
        region = np.arange(self.fd_width) // 4
        self.sample_region = region[:, None] * config.fd_size + region[None, :]

    def _run(self) -> list[Feature]:
        features: list[Feature] = []
        for o, octave in enumerate(self.octaves):
            if not self._fits(octave):
                continue

            octave.build()
            candidates = self.dog_detector.detect(octave.dog_stack())
            for candidate in candidates:
                features.extend(self._process_candidate(candidate, o, octave))
            logger.debug(
                f"Octave {o} ({octave.width}x{octave.height}): "
                f"{len(candidates)} candidates, {len(features)} features so far"
            )
            octave.clear()

        logger.info(f"SIFT extracted {len(features)} features")
        return features

    def _create_descriptor(
        self, candidate: Candidate, o: int, sigma: float, orientation: float
    ) -> np.ndarray:
        octave = self.octaves[o]
        magnitude, gradient_orientation = octave.get_gradients(_round(candidate.scale))
        h, w = magnitude.shape
        fd_bins = self.config.fd_bins

        cos_o = math.cos(orientation)
        sin_o = math.sin(orientation)
        grid = (np.arange(self.fd_width) - self.fd_width / 2.0 + 0.5) * sigma
        ys = grid[:, None]
        xs = grid[None, :]
        yr = cos_o * ys + sin_o * xs
        xr = cos_o * xs - sin_o * ys

        yg = ImageUtils.ping_pong(np.floor(yr + candidate.y + 0.5).astype(int), h)
        xg = ImageUtils.ping_pong(np.floor(xr + candidate.x + 0.5).astype(int), w)

        magnitudes = magnitude[yg, xg] * self.descriptor_mask
        relative = np.mod(gradient_orientation[yg, xg] - orientation, 2.0 * math.pi)

        # Split every magnitude between its two nearest orientation bins
        position = relative / self.fd_bin_width
        lower = np.floor(position)
        weight_upper = position - lower
        bin_lower = lower.astype(int) % fd_bins
        bin_upper = (bin_lower + 1) % fd_bins

        histogram = np.zeros(self.config.descriptor_length)
        base = self.sample_region * fd_bins
        np.add.at(histogram, (base + bin_lower).ravel(), (magnitudes * (1.0 - weight_upper)).ravel())
        np.add.at(histogram, (base + bin_upper).ravel(), (magnitudes * weight_upper).ravel())

        max_value = histogram.max()
        if max_value <= 0:
            return np.zeros(self.config.descriptor_length, dtype=np.float32)

        return np.minimum(1.0, histogram / (self.DESCRIPTOR_CLIP * max_value)).astype(
            np.float32
        )
