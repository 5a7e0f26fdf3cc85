"""Image utility functions for float buffer filtering and sampling."""

import logging
import math
from pathlib import Path
from typing import Optional, Union

import cv2
import numpy as np

from ...common.exceptions import (
    FeatureAlignFileException,
    FeatureAlignImageProcessingException,
    FeatureAlignMemoryException,
)
from .resource_monitor import ResourceMonitor

logger = logging.getLogger(__name__)


class ImageUtils:
    """Utility class for common image operations on 2-D float32 arrays."""

    @staticmethod
    def load_image(path: Union[str, Path]) -> np.ndarray:
        """Load image from path as a single channel float32 array.

        Args:
            path: Path to the image file

        Returns:
            Grayscale image array in float32, original intensity range

        Raises:
            FeatureAlignFileException: If image cannot be loaded
            FeatureAlignImageProcessingException: If image processing fails
            FeatureAlignMemoryException: If insufficient memory
        """
        path = Path(path)

        # Check memory before loading large image
        try:
            file_size_mb = path.stat().st_size / (1024 * 1024)
            estimated_memory_gb = file_size_mb * 4 / 1024
            ResourceMonitor.check_memory_availability(estimated_memory_gb)
        except OSError as e:
            logger.warning(f"Could not estimate memory for {path}: {e}")

        try:
            img = cv2.imread(str(path), cv2.IMREAD_GRAYSCALE | cv2.IMREAD_ANYDEPTH)
            if img is None:
                raise FeatureAlignFileException(f"Could not load image from {path}")

            return img.astype(np.float32)
        except MemoryError as e:
            raise FeatureAlignMemoryException(
                f"Insufficient memory to load image {path}: {e}"
            ) from e
        except cv2.error as e:
            raise FeatureAlignImageProcessingException(
                f"Image processing failed while loading {path}: {e}"
            ) from e

    @staticmethod
    def crop_and_normalize(
        image: np.ndarray,
        display_min: Optional[float] = None,
        display_max: Optional[float] = None,
    ) -> np.ndarray:
        """Clip image to a display range and map that range to [0, 1].

        Args:
            image: Input image array
            display_min: Lower bound of the display range, image minimum if None
            display_max: Upper bound of the display range, image maximum if None

        Returns:
            Normalized float32 image array
        """
        image = np.asarray(image, dtype=np.float32)
        low = float(np.nanmin(image)) if display_min is None else float(display_min)
        high = float(np.nanmax(image)) if display_max is None else float(display_max)

        if high <= low:
            return np.zeros_like(image)

        clipped = np.clip(image, low, high)
        return ((clipped - low) / (high - low)).astype(np.float32)

    @staticmethod
    def normalize_contrast(image: np.ndarray) -> np.ndarray:
        """Stretch finite image values to [0, 1], keeping NaN samples.

        Args:
            image: Input image array

        Returns:
            Normalized float32 image array
        """
        finite = image[np.isfinite(image)]
        if finite.size == 0:
            return image.astype(np.float32)

        low = float(finite.min())
        high = float(finite.max())
        if high == low:
            return np.where(np.isnan(image), np.nan, 0.0).astype(np.float32)

        return ((image - low) / (high - low)).astype(np.float32)

    @staticmethod
    def create_gaussian_kernel(sigma: float, normalize: bool = True) -> np.ndarray:
        """Create a 1-D Gaussian kernel.

        Args:
            sigma: Gaussian standard deviation
            normalize: Scale the kernel to sum to 1

        Returns:
            Kernel of odd size max(3, 2 * int(3 * sigma + 0.5) + 1)
        """
        if sigma <= 0:
            return np.array([0.0, 1.0, 0.0], dtype=np.float32)

        size = max(3, 2 * int(3 * sigma + 0.5) + 1)
        x = np.arange(size, dtype=np.float64) - size // 2
        kernel = np.exp(-(x * x) / (2.0 * sigma * sigma))
        if normalize:
            kernel /= kernel.sum()
        return kernel.astype(np.float32)

    @staticmethod
    def create_gaussian_kernel_offset(
        sigma: float, offset_x: float, offset_y: float, normalize: bool = False
    ) -> np.ndarray:
        """Create a 2-D Gaussian kernel centered off the middle pixel.

        Args:
            sigma: Gaussian standard deviation
            offset_x: Sub-pixel shift of the center along x
            offset_y: Sub-pixel shift of the center along y
            normalize: Scale the kernel to sum to 1

        Returns:
            Square kernel indexed [y, x]
        """
        size = max(3, 2 * int(round(3 * sigma)) + 1)
        r = size // 2
        axis = np.arange(size, dtype=np.float64) - r
        xs = axis - offset_x
        ys = axis - offset_y
        kernel = np.exp(
            -(ys[:, None] ** 2 + xs[None, :] ** 2) / (2.0 * sigma * sigma)
        )
        if normalize:
            kernel /= kernel.sum()
        return kernel.astype(np.float32)

    @staticmethod
    def convolve_separable(
        image: np.ndarray, kernel_x: np.ndarray, kernel_y: np.ndarray
    ) -> np.ndarray:
        """Convolve with a separable kernel, mirroring samples at the borders.

        Args:
            image: Input image array
            kernel_x: Horizontal 1-D kernel
            kernel_y: Vertical 1-D kernel

        Returns:
            Filtered float32 image array
        """
        return cv2.sepFilter2D(
            image.astype(np.float32, copy=False),
            cv2.CV_32F,
            kernel_x,
            kernel_y,
            borderType=cv2.BORDER_REFLECT,
        )

    @staticmethod
    def gaussian_blur(image: np.ndarray, sigma: float) -> np.ndarray:
        """Apply Gaussian blur to image.

        Args:
            image: Input image array
            sigma: Gaussian standard deviation

        Returns:
            Blurred image array
        """
        return cv2.GaussianBlur(
            image.astype(np.float32, copy=False),
            (0, 0),
            sigma,
            borderType=cv2.BORDER_REFLECT,
        )

    @staticmethod
    def create_gradients(image: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        """Compute gradient magnitude and orientation by central differences.

        Border pixels use the clamped neighbor on the missing side.

        Args:
            image: Input image array

        Returns:
            Tuple of (magnitude, orientation in [-pi, pi])
        """
        padded = np.pad(image, 1, mode="edge")
        dx = (padded[1:-1, 2:] - padded[1:-1, :-2]) / 2.0
        dy = (padded[2:, 1:-1] - padded[:-2, 1:-1]) / 2.0
        magnitude = np.sqrt(dx * dx + dy * dy).astype(np.float32)
        orientation = np.arctan2(dy, dx).astype(np.float32)
        return magnitude, orientation

    @staticmethod
    def downsample(image: np.ndarray) -> np.ndarray:
        """Decimate image by two, keeping every even row and column.

        Args:
            image: Input image array

        Returns:
            Image of size (h / 2 + h % 2, w / 2 + w % 2)
        """
        return np.ascontiguousarray(image[::2, ::2])

    @staticmethod
    def upsample(image: np.ndarray) -> np.ndarray:
        """Upsample image to (2h - 1, 2w - 1) by linear interpolation.

        Even positions keep the original samples exactly.

        Args:
            image: Input image array

        Returns:
            Upsampled float32 image array
        """
        h, w = image.shape
        out = np.empty((2 * h - 1, 2 * w - 1), dtype=np.float32)
        out[::2, ::2] = image
        out[::2, 1::2] = (image[:, :-1] + image[:, 1:]) / 2.0
        out[1::2, ::2] = (image[:-1, :] + image[1:, :]) / 2.0
        out[1::2, 1::2] = (
            image[:-1, :-1] + image[:-1, 1:] + image[1:, :-1] + image[1:, 1:]
        ) / 4.0
        return out

    @staticmethod
    def smooth_for_scale(
        image: np.ndarray, scale: float, source_sigma: float, target_sigma: float
    ) -> np.ndarray:
        """Blur image so that it carries target_sigma once resampled by scale.

        Args:
            image: Input image array, assumed to carry source_sigma already
            scale: Resampling factor the image is prepared for
            source_sigma: Blur already present in the image
            target_sigma: Blur wanted after resampling

        Returns:
            Smoothed float32 copy of the image
        """
        s = target_sigma / scale
        v = s * s - source_sigma * source_sigma
        if v <= 0:
            return image.astype(np.float32, copy=True)
        return ImageUtils.gaussian_blur(image, math.sqrt(v))

    @staticmethod
    def create_downsampled(
        image: np.ndarray, scale: float, source_sigma: float, target_sigma: float
    ) -> np.ndarray:
        """Smooth and resample image by scale using nearest neighbor lookup.

        Args:
            image: Input image array
            scale: Resampling factor in (0, 1]
            source_sigma: Blur already present in the image
            target_sigma: Blur wanted after resampling

        Returns:
            Downsampled float32 image array
        """
        smoothed = ImageUtils.smooth_for_scale(image, scale, source_sigma, target_sigma)
        if scale >= 1.0:
            return smoothed

        h, w = image.shape
        new_w = max(1, int(math.floor(w * scale + 0.5)))
        new_h = max(1, int(math.floor(h * scale + 0.5)))
        xs = np.minimum(w - 1, np.floor(np.arange(new_w) / scale + 0.5)).astype(int)
        ys = np.minimum(h - 1, np.floor(np.arange(new_h) / scale + 0.5)).astype(int)
        return np.ascontiguousarray(smoothed[np.ix_(ys, xs)])

    @staticmethod
    def ping_pong(indices: np.ndarray, size: int) -> np.ndarray:
        """Mirror integer indices into [0, size), repeating the edge sample."""
        period = 2 * size
        wrapped = np.mod(indices, period)
        return np.where(wrapped >= size, period - wrapped - 1, wrapped)

    @staticmethod
    def sample_bilinear(
        image: np.ndarray, xs: np.ndarray, ys: np.ndarray, fill: float = 0.0
    ) -> np.ndarray:
        """Sample image bilinearly at real coordinates.

        Coordinates within one pixel outside the image are clamped to the edge,
        anything further out gets fill. NaN samples propagate.

        Args:
            image: Input image array
            xs: Horizontal sample coordinates
            ys: Vertical sample coordinates
            fill: Value for samples outside the image

        Returns:
            Float64 array of samples, shaped like xs
        """
        h, w = image.shape
        xs = np.asarray(xs, dtype=np.float64)
        ys = np.asarray(ys, dtype=np.float64)
        inside = (xs >= -1) & (xs < w) & (ys >= -1) & (ys < h)

        x0 = np.clip(np.floor(xs), 0, max(w - 2, 0)).astype(int)
        y0 = np.clip(np.floor(ys), 0, max(h - 2, 0)).astype(int)
        x1 = np.minimum(x0 + 1, w - 1)
        y1 = np.minimum(y0 + 1, h - 1)
        fx = np.clip(xs - x0, 0.0, 1.0)
        fy = np.clip(ys - y0, 0.0, 1.0)

        with np.errstate(invalid="ignore"):
            top = image[y0, x0] * (1.0 - fx) + image[y0, x1] * fx
            bottom = image[y1, x0] * (1.0 - fx) + image[y1, x1] * fx
            values = top * (1.0 - fy) + bottom * fy
        return np.where(inside, values, fill)

    @staticmethod
    def sample_nearest(
        image: np.ndarray, xs: np.ndarray, ys: np.ndarray, fill: float = 0.0
    ) -> np.ndarray:
        """Sample image at the nearest integer coordinates, fill outside."""
        h, w = image.shape
        ix = np.floor(np.asarray(xs, dtype=np.float64) + 0.5).astype(int)
        iy = np.floor(np.asarray(ys, dtype=np.float64) + 0.5).astype(int)
        inside = (ix >= 0) & (ix < w) & (iy >= 0) & (iy < h)
        values = image[np.clip(iy, 0, h - 1), np.clip(ix, 0, w - 1)]
        return np.where(inside, values, fill)
