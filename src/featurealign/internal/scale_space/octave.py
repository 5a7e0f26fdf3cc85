"""Gaussian and difference-of-Gaussian stacks for one octave of a pyramid."""

import logging
import math
from enum import Enum
from typing import Optional

import numpy as np

from ..util.image import ImageUtils

logger = logging.getLogger(__name__)


class OctaveState(Enum):
    EMPTY = "empty"
    STUB = "stub"
    COMPLETE = "complete"


def octave_kernels(
    initial_sigma: float, steps: int
) -> tuple[np.ndarray, np.ndarray, list[np.ndarray]]:
    """Per-level sigmas and the incremental kernels producing them from L0.

    Args:
        initial_sigma: Blur of the octave base image
        steps: Scale steps per octave

    Returns:
        Tuple of (sigma, sigma_diff, kernel_diff) with steps + 3 entries each,
        sigma[i] = initial_sigma * 2^(i / steps)
    """
    sigma = initial_sigma * np.power(2.0, np.arange(steps + 3) / steps)
    sigma_diff = np.sqrt(sigma * sigma - initial_sigma * initial_sigma)
    kernel_diff = [ImageUtils.create_gaussian_kernel(s) for s in sigma_diff]
    return sigma, sigma_diff, kernel_diff


class ScaleOctave:
    """Blurred levels L, DoG levels D and gradients of one octave.

    A stub holds only the base image and the 2 * initial_sigma level needed to
    seed the next octave. A complete octave holds steps + 3 blurred levels,
    steps + 2 DoG levels and gradient magnitude and orientation per level.
    """

    def __init__(
        self,
        image: np.ndarray,
        sigma: np.ndarray,
        sigma_diff: np.ndarray,
        kernel_diff: list[np.ndarray],
    ) -> None:
        self.image = image
        self.sigma = sigma
        self.sigma_diff = sigma_diff
        self.kernel_diff = kernel_diff
        self.state = OctaveState.EMPTY

        self._stub_level: Optional[np.ndarray] = None
        self.l: list[np.ndarray] = []
        self.d: list[np.ndarray] = []
        self.gradients: list[tuple[np.ndarray, np.ndarray]] = []

    @property
    def width(self) -> int:
        return self.image.shape[1]

    @property
    def height(self) -> int:
        return self.image.shape[0]

    @property
    def steps(self) -> int:
        return len(self.sigma) - 3

    def _blur(self, level: int) -> np.ndarray:
        kernel = self.kernel_diff[level]
        return ImageUtils.convolve_separable(self.image, kernel, kernel)

    def build_stub(self) -> None:
        if self.state != OctaveState.EMPTY:
            return
        self._stub_level = self._blur(self.steps)
        self.state = OctaveState.STUB

    def build(self) -> None:
        if self.state == OctaveState.COMPLETE:
            return

        self.l = [self.image.astype(np.float32, copy=False)]
        for i in range(1, self.steps + 3):
            if i == self.steps and self._stub_level is not None:
                self.l.append(self._stub_level)
            else:
                self.l.append(self._blur(i))
        self._stub_level = None

        self.d = [self.l[i + 1] - self.l[i] for i in range(self.steps + 2)]
        self.gradients = [ImageUtils.create_gradients(level) for level in self.l]
        self.state = OctaveState.COMPLETE
        logger.debug(
            f"Built octave {self.width}x{self.height} with {len(self.l)} levels"
        )

    def downsample(self) -> np.ndarray:
        """Decimate the 2 * initial_sigma level to seed the next octave."""
        if self.state == OctaveState.EMPTY:
            self.build_stub()
        if self.state == OctaveState.COMPLETE:
            level = self.l[self.steps]
        else:
            level = self._stub_level
        return ImageUtils.downsample(level)

    def clear(self) -> None:
        self._stub_level = None
        self.l = []
        self.d = []
        self.gradients = []
        self.state = OctaveState.EMPTY

    def get_l(self, i: int) -> np.ndarray:
        return self.l[i]

    def get_d(self, i: int) -> np.ndarray:
        return self.d[i]

    def get_gradients(self, i: int) -> tuple[np.ndarray, np.ndarray]:
        return self.gradients[i]

    def dog_stack(self) -> np.ndarray:
        """DoG levels as one (steps + 2, height, width) array."""
        return np.stack(self.d)

    def max_kernel_size(self) -> int:
        return len(self.kernel_diff[-1])


def octave_sigma(initial_sigma: float, scale_index: float, steps: int) -> float:
    """Blur of a sub-pixel scale index within an octave."""
    return initial_sigma * math.pow(2.0, scale_index / steps)
