import abc
import logging
import math
from typing import Union

import numpy as np

from ....common.buffer import FloatBuffer2D, as_array
from ....common.feature import Feature
from ...config.base import DetectorConfig
from ...scale_space.dog import Candidate, DoGDetector
from ...scale_space.octave import ScaleOctave, octave_kernels, octave_sigma
from ...util.image import ImageUtils
from ...util.resource_monitor import check_resources_before_extraction
from .orientation import assign_orientations

logger = logging.getLogger(__name__)


class FeatureDetector(abc.ABC):
    """Scale-space feature detector: init(image) builds octaves, extract_features() reads them.

    Instances keep per-image state and must not be shared between threads.
    """

    # Input images carry this much blur before any filtering
    SOURCE_SIGMA = 0.5

    def __init__(self, *, config: DetectorConfig) -> None:
        self.config = config
        self.octaves: list[ScaleOctave] = []
        self.sigma = config.initial_sigma
        self.scale = 1.0
        self.dog_detector = DoGDetector(
            min_contrast=config.min_contrast, max_curvature=config.max_curvature
        )

    def init(self, image: Union[FloatBuffer2D, np.ndarray]) -> None:
        """Normalize, pre-scale and pre-blur image, then lay out its octaves."""
        data = ImageUtils.normalize_contrast(as_array(image))
        data, scale = self._prescale(data)

        sigma = self.config.initial_sigma
        if sigma < 1.0:
            data = ImageUtils.upsample(data)
            scale *= 2.0
            sigma *= 2.0
            source_sigma = 2.0 * self.SOURCE_SIGMA
        else:
            source_sigma = self.SOURCE_SIGMA
        # Images already blurrier than sigma are not blurred further
        initial_blur = math.sqrt(max(0.0, sigma * sigma - source_sigma * source_sigma))

        kernel = ImageUtils.create_gaussian_kernel(initial_blur)
        data = ImageUtils.convolve_separable(data, kernel, kernel)

        check_resources_before_extraction(data.shape[1], data.shape[0], self.config.steps)

        self.sigma = sigma
        self.scale = scale
        self.octaves = self._layout_octaves(data)
        logger.debug(
            f"{type(self).__name__} laid out {len(self.octaves)} octaves "
            f"for {data.shape[1]}x{data.shape[0]} (scale {scale:.3f})"
        )

    def extract_features(self) -> list[Feature]:
        """Detect and describe features in the image passed to init.

        Returns:
            Features in original image coordinates, sorted by scale descending
        """
        features = self._run()
        if self.scale != 1.0:
            features = [f.scaled(1.0 / self.scale) for f in features]
        return sorted(features)

    def _prescale(self, image: np.ndarray) -> tuple[np.ndarray, float]:
        return image, 1.0

    def _min_octave_size(self) -> int:
        return self.config.min_octave_size

    def _layout_octaves(self, image: np.ndarray) -> list[ScaleOctave]:
        sigma, sigma_diff, kernel_diff = octave_kernels(self.sigma, self.config.steps)
        min_size = max(len(kernel_diff[-1]), self._min_octave_size() - 1)

        num_octaves = 0
        w, h = image.shape[1], image.shape[0]
        while w > min_size and h > min_size:
            w = w // 2 + w % 2
            h = h // 2 + h % 2
            num_octaves += 1

        octaves = []
        current = image
        for _ in range(num_octaves):
            octave = ScaleOctave(current, sigma, sigma_diff, kernel_diff)
            octave.build_stub()
            current = octave.downsample()
            if not self._fits(octave):
                octave.clear()
            octaves.append(octave)
        return octaves

    def _fits(self, octave: ScaleOctave) -> bool:
        max_size = self.config.max_octave_size
        return octave.width <= max_size and octave.height <= max_size

    def _process_candidate(
        self, candidate: Candidate, o: int, octave: ScaleOctave
    ) -> list[Feature]:
        sigma = octave_sigma(self.sigma, candidate.scale, self.config.steps)
        magnitude, orientation = octave.get_gradients(_round(candidate.scale))
        factor = 2.0**o

        features = []
        for angle in assign_orientations(
            magnitude, orientation, candidate.x, candidate.y, sigma
        ):
            descriptor = self._create_descriptor(candidate, o, sigma, angle)
            features.append(
                Feature(
                    scale=sigma * factor,
                    orientation=angle,
                    location=(candidate.x * factor, candidate.y * factor),
                    descriptor=descriptor,
                )
            )
        return features

    @abc.abstractmethod
    def _run(self) -> list[Feature]:
        """Build the octaves to process and return their features in working coordinates."""
        raise NotImplementedError

    @abc.abstractmethod
    def _create_descriptor(
        self, candidate: Candidate, o: int, sigma: float, orientation: float
    ) -> np.ndarray:
        """Sample the descriptor of a candidate at one orientation.

        Args:
            candidate: Localized candidate in octave o coordinates
            o: Octave index
            sigma: Blur of the candidate's scale within the octave
            orientation: Orientation to sample at in radians

        Returns:
            Descriptor of config.descriptor_length float32 values in [0, 1]
        """
        raise NotImplementedError


def _round(value: float) -> int:
    return int(math.floor(value + 0.5))
