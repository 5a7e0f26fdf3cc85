"""Plain 2-D float sample buffer used as the only pixel representation."""

from typing import Optional

import numpy as np

from ..internal.util.image import ImageUtils
from .exceptions import FeatureAlignValidationException


class FloatBuffer2D:
    """Row-major float32 samples of size width x height, indexed (x, y)."""

    def __init__(self, width: int, height: int, data: Optional[np.ndarray] = None):
        if data is None:
            data = np.zeros((height, width), dtype=np.float32)
        elif data.shape != (height, width):
            raise FeatureAlignValidationException(
                f"Buffer data of shape {data.shape} does not match {width}x{height}"
            )
        self.data = data.astype(np.float32, copy=False)

    @classmethod
    def from_array(cls, array: np.ndarray) -> "FloatBuffer2D":
        array = np.asarray(array)
        if array.ndim != 2:
            raise FeatureAlignValidationException(
                f"Expected a 2-D image, got an array with {array.ndim} dimensions"
            )
        return cls(array.shape[1], array.shape[0], array.astype(np.float32))

    @property
    def width(self) -> int:
        return self.data.shape[1]

    @property
    def height(self) -> int:
        return self.data.shape[0]

    def get(self, x: int, y: int) -> float:
        return float(self.data[y, x])

    def set(self, x: int, y: int, value: float) -> None:
        self.data[y, x] = value

    def get_interpolated(self, x: float, y: float) -> float:
        """Bilinear sample at a real coordinate, 0 outside the image."""
        return float(ImageUtils.sample_bilinear(self.data, x, y))

    def fill(self, value: float) -> None:
        self.data.fill(value)

    def copy(self) -> "FloatBuffer2D":
        return FloatBuffer2D(self.width, self.height, self.data.copy())

    def __repr__(self) -> str:
        return f"FloatBuffer2D(width={self.width}, height={self.height})"


def as_array(image) -> np.ndarray:
    """Return the float32 samples of a FloatBuffer2D or a 2-D array."""
    if isinstance(image, FloatBuffer2D):
        return image.data
    return FloatBuffer2D.from_array(image).data
