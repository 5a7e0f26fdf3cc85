"""Block matching by maximal Pearson product-moment correlation."""

import logging
import math
import threading
from collections.abc import Sequence
from typing import Optional

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from ....common.exceptions import FeatureAlignValidationException
from ....common.point import Point, PointMatch
from ....common.statistic import ErrorStatistic
from ....common.transform import (
    AffineModel2D,
    CoordinateTransform,
    CoordinateTransformList,
    TranslationModel2D,
    apply_to_points,
)
from ...config.matching import BlockMatchingConfig
from ...util.image import ImageUtils
from ...util.parallel import map_tasks
from ...util.resource_monitor import ResourceMonitor

logger = logging.getLogger(__name__)


def correlation_map(block: np.ndarray, region: np.ndarray) -> Optional[np.ndarray]:
    """Pearson correlation of block with every same-sized window of region.

    Args:
        block: Source block of shape (bh, bw)
        region: Target region of shape (bh + 2 * sry, bw + 2 * srx)

    Returns:
        r-map of shape (2 * sry + 1, 2 * srx + 1) with values in [-1, 1] and NaN
        where the target window is flat or contains NaN, or None if the source
        block itself is flat or contains NaN
    """
    block = block.astype(np.float64)
    n = block.size
    mean = block.mean()
    if math.isnan(mean):
        return None

    centered = block - mean
    std = math.sqrt(float(np.sum(centered * centered)) / (n - 1))
    if std == 0:
        return None

    windows = sliding_window_view(region.astype(np.float64), block.shape)
    window_means = windows.mean(axis=(2, 3))
    window_centered = windows - window_means[..., None, None]
    window_std = np.sqrt(np.sum(window_centered**2, axis=(2, 3)) / (n - 1))
    covariance = np.einsum("ijkl,kl->ij", window_centered, centered)

    with np.errstate(invalid="ignore", divide="ignore"):
        r = covariance / (std * window_std * (n - 1))
    r[np.isnan(window_means) | (window_std == 0)] = np.nan
    return np.clip(r, -1.0, 1.0)


class BlockMatcher:
    """Dense correspondence search with sub-pixel peak localization."""

    def __init__(self, *, config: BlockMatchingConfig) -> None:
        self.config = config
        mc = config.max_curvature
        self.max_curvature_ratio = (mc + 1) ** 2 / mc

    def find_peak(self, r_map: np.ndarray) -> Optional[tuple[float, float]]:
        """Sub-pixel location of the best strict local maximum of an r-map.

        Returns:
            (x, y) in r-map index coordinates, or None when the peak is too weak,
            ambiguous, elongated or does not converge
        """
        rows, cols = r_map.shape
        if rows < 3 or cols < 3:
            return None

        center = r_map[1:-1, 1:-1]
        is_max = np.ones(center.shape, dtype=bool)
        with np.errstate(invalid="ignore"):
            for dy in range(3):
                for dx in range(3):
                    if dy == 1 and dx == 1:
                        continue
                    is_max &= center > r_map[dy : dy + rows - 2, dx : dx + cols - 2]

        peaks = np.flatnonzero(is_max)
        if len(peaks) == 0:
            return None

        values = center.ravel()[peaks]
        order = np.argsort(-values, kind="stable")
        best_r = values[order[0]]
        second_r = values[order[1]] if len(order) > 1 else -1.0

        if best_r < self.config.min_r:
            return None
        if (1.0 + second_r) / (1.0 + best_r) > self.config.rod:
            return None

        y, x = np.unravel_index(peaks[order[0]], center.shape)
        y += 1
        x += 1
        c = r_map[y - 1 : y + 2, x - 1 : x + 2]

        dx = (c[1, 2] - c[1, 0]) / 2.0
        dy = (c[2, 1] - c[0, 1]) / 2.0
        dxx = c[1, 0] - 2.0 * c[1, 1] + c[1, 2]
        dyy = c[0, 1] - 2.0 * c[1, 1] + c[2, 1]
        dxy = (c[2, 2] - c[2, 0] - c[0, 2] + c[0, 0]) / 4.0

        det = dxx * dyy - dxy * dxy
        if det <= 0:
            return None
        trace = dxx + dyy
        if trace * trace / det > self.max_curvature_ratio:
            return None

        ox = -(dyy * dx - dxy * dy) / det
        oy = -(dxx * dy - dxy * dx) / det
        if abs(ox) >= 1.0 or abs(oy) >= 1.0:
            return None

        return (float(x + ox), float(y + oy))

    def match_point(
        self,
        source: np.ndarray,
        target: np.ndarray,
        block_radius_x: int,
        block_radius_y: int,
        search_radius_x: int,
        search_radius_y: int,
        point: Point,
    ) -> Optional[PointMatch]:
        """Match one source point against a target padded by the search radius."""
        h, w = source.shape
        sx, sy = point.local
        ptx = int(math.floor(sx + 0.5)) - block_radius_x
        pty = int(math.floor(sy + 0.5)) - block_radius_y
        block_width = 2 * block_radius_x + 1
        block_height = 2 * block_radius_y + 1

        if ptx < 0 or pty < 0 or ptx + block_width >= w or pty + block_height >= h:
            return None

        block = source[pty : pty + block_height, ptx : ptx + block_width]
        region = target[
            pty : pty + block_height + 2 * search_radius_y,
            ptx : ptx + block_width + 2 * search_radius_x,
        ]
        r_map = correlation_map(block, region)
        if r_map is None:
            return None

        peak = self.find_peak(r_map)
        if peak is None:
            return None

        tx = peak[0] - search_radius_x + sx
        ty = peak[1] - search_radius_y + sy
        return PointMatch(point, Point((tx, ty)))

    def match_by_maximal_pmcc(
        self,
        source: np.ndarray,
        target: np.ndarray,
        block_radius_x: int,
        block_radius_y: int,
        search_radius_x: int,
        search_radius_y: int,
        source_points: Sequence[Point],
        max_workers: Optional[int] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> list[PointMatch]:
        """Match source points into a target already mapped into source space.

        target must be source padded by the search radius on every side, target
        pixel (x + search_radius_x, y + search_radius_y) corresponding to source
        pixel (x, y). Unmatched points are left out of the result.
        """
        expected = (
            source.shape[0] + 2 * search_radius_y,
            source.shape[1] + 2 * search_radius_x,
        )
        if target.shape != expected:
            raise FeatureAlignValidationException(
                f"Target of shape {target.shape} does not match the padded source {expected}"
            )

        def task(point: Point) -> Optional[PointMatch]:
            return self.match_point(
                source,
                target,
                block_radius_x,
                block_radius_y,
                search_radius_x,
                search_radius_y,
                point,
            )

        results = map_tasks(
            task,
            list(source_points),
            max_workers=max_workers or ResourceMonitor.available_workers(),
            cancel_event=cancel_event,
        )
        return [match for match in results if match is not None]

    def match_multiscale(
        self,
        source: np.ndarray,
        target: np.ndarray,
        source_points: Sequence[Point],
        *,
        transform: CoordinateTransform,
        scale: float,
        block_radius_x: int,
        block_radius_y: int,
        search_radius_x: int,
        search_radius_y: int,
        source_mask: Optional[np.ndarray] = None,
        target_mask: Optional[np.ndarray] = None,
        observer: Optional[ErrorStatistic] = None,
        max_workers: Optional[int] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> list[PointMatch]:
        """Match source points into target at a reduced resolution.

        transform maps source coordinates approximately onto target coordinates.
        Both images are pre-filtered for scale, the target is resampled into
        source space through transform and the accepted matches are scaled back
        to full resolution and mapped through transform.

        Returns:
            PointMatches from each matched source point to its target location
        """
        config = self.config
        scaled_brx = int(math.ceil(scale * block_radius_x))
        scaled_bry = int(math.ceil(scale * block_radius_y))
        scaled_srx = int(math.ceil(scale * search_radius_x)) + 1
        scaled_sry = int(math.ceil(scale * search_radius_y)) + 1

        scaled_source = ImageUtils.create_downsampled(
            source, scale, config.source_sigma, config.min_sigma
        )
        scaled_source = ImageUtils.normalize_contrast(scaled_source)
        if source_mask is not None:
            scaled_mask = ImageUtils.create_downsampled(
                source_mask, scale, config.source_sigma, config.source_sigma
            )
            scaled_source[scaled_mask < config.mask_threshold] = np.nan

        smoothed_target = ImageUtils.smooth_for_scale(
            target, scale, config.source_sigma, config.min_sigma
        )
        smoothed_target = ImageUtils.normalize_contrast(smoothed_target)

        # Padded source-space frame to target coordinates
        to_target = CoordinateTransformList(
            [
                AffineModel2D(m00=1.0 / scale, m11=1.0 / scale),
                TranslationModel2D(-scaled_srx / scale, -scaled_sry / scale),
                transform,
            ]
        )
        mapped_target = map_into_frame(
            smoothed_target,
            to_target,
            (
                scaled_source.shape[0] + 2 * scaled_sry,
                scaled_source.shape[1] + 2 * scaled_srx,
            ),
            mask=target_mask,
        )

        scaled_points = [
            Point((p.local[0] * scale, p.local[1] * scale)) for p in source_points
        ]
        originals = {id(sp): p for sp, p in zip(scaled_points, source_points)}

        scaled_matches = self.match_by_maximal_pmcc(
            scaled_source,
            mapped_target,
            scaled_brx,
            scaled_bry,
            scaled_srx,
            scaled_sry,
            scaled_points,
            max_workers=max_workers,
            cancel_event=cancel_event,
        )

        matches = []
        for scaled_match in scaled_matches:
            original = originals[id(scaled_match.p1)]
            lx = scaled_match.p2.local[0] / scale
            ly = scaled_match.p2.local[1] / scale
            if observer is not None:
                observer.add(
                    math.hypot(lx - original.local[0], ly - original.local[1])
                )
            matches.append(PointMatch(original, Point(transform.apply((lx, ly)))))

        logger.info(
            f"Block matching accepted {len(matches)} of {len(source_points)} points "
            f"at scale {scale:.3f}"
        )
        return matches


def map_into_frame(
    image: np.ndarray,
    transform: CoordinateTransform,
    shape: tuple[int, int],
    mask: Optional[np.ndarray] = None,
) -> np.ndarray:
    """Resample image into a NaN-filled frame by looking up transform(x, y).

    Pixels whose lookup falls outside image, or where mask is not positive,
    stay NaN.
    """
    h, w = shape
    ys, xs = np.mgrid[0:h, 0:w]
    coordinates = np.column_stack([xs.ravel(), ys.ravel()]).astype(np.float64)
    mapped = apply_to_points(transform, coordinates)
    tx = mapped[:, 0]
    ty = mapped[:, 1]

    ih, iw = image.shape
    valid = (tx >= 0) & (tx <= iw - 1) & (ty >= 0) & (ty <= ih - 1)
    if mask is not None:
        valid &= ImageUtils.sample_bilinear(mask, tx, ty) > 0

    frame = np.full(h * w, np.nan, dtype=np.float32)
    frame[valid] = ImageUtils.sample_bilinear(image, tx[valid], ty[valid])
    return frame.reshape(h, w)
