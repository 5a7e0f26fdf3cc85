from pathlib import Path
from typing import Optional, Union

import numpy as np

from .common.buffer import FloatBuffer2D
from .internal.util.image import ImageUtils


def to_float_buffer(
    image: np.ndarray,
    *,
    display_min: Optional[float] = None,
    display_max: Optional[float] = None,
) -> FloatBuffer2D:
    """Crop a grayscale array to a display range and normalize it to [0, 1]."""
    return FloatBuffer2D.from_array(
        ImageUtils.crop_and_normalize(image, display_min, display_max)
    )


def load_image(
    path: Union[str, Path],
    *,
    display_min: Optional[float] = None,
    display_max: Optional[float] = None,
) -> FloatBuffer2D:
    """Load an image file as a normalized grayscale FloatBuffer2D."""
    return to_float_buffer(
        ImageUtils.load_image(path), display_min=display_min, display_max=display_max
    )
