import logging
import threading
from collections.abc import Sequence
from typing import Optional, Union

import numpy as np

from .common.buffer import FloatBuffer2D, as_array
from .common.feature import Feature
from .common.point import Point, PointMatch
from .common.statistic import ErrorStatistic
from .common.transform import CoordinateTransform, TranslationModel2D
from .internal.config.matching import BlockMatchingConfig, FeatureMatchingConfig
from .internal.models.match.block import BlockMatcher
from .internal.models.match.features import FeatureMatcher
from .internal.models.validation import (
    BlockMatchingInputValidation,
    FeatureMatchingInputValidation,
)

logger = logging.getLogger(__name__)

Image = Union[FloatBuffer2D, np.ndarray]
Radius = Union[int, tuple[int, int]]


def match_features(
    features1: Sequence[Feature],
    features2: Sequence[Feature],
    *,
    rod: float = 0.92,
    max_scale_deviation: Optional[float] = None,
) -> list[PointMatch]:
    """Match features1 to features2 by descriptor distance.

    Args:
        features1: Features of the first image
        features2: Features of the second image
        rod: Maximal ratio of best to second best descriptor distance
        max_scale_deviation: If given, only features whose scales differ by at
            most this factor are compared

    Returns:
        PointMatches from features1 locations to features2 locations
    """
    validated_input = FeatureMatchingInputValidation(
        rod=rod, max_scale_deviation=max_scale_deviation
    )
    matcher = FeatureMatcher(
        config=FeatureMatchingConfig(
            rod=validated_input.rod,
            max_scale_deviation=validated_input.max_scale_deviation,
        )
    )
    return matcher.match(features1, features2)


def match_blocks(
    source: Image,
    target: Image,
    source_points: Sequence[Union[Point, tuple[float, float]]],
    *,
    transform: Optional[CoordinateTransform] = None,
    source_mask: Optional[Image] = None,
    target_mask: Optional[Image] = None,
    scale: float = 1.0,
    block_radius: Radius = 8,
    search_radius: Radius = 10,
    min_r: float = 0.7,
    rod: float = 0.9,
    max_curvature: float = 10.0,
    observer: Optional[ErrorStatistic] = None,
    max_workers: Optional[int] = None,
    cancel_event: Optional[threading.Event] = None,
) -> list[PointMatch]:
    """Refine correspondences of source points in target by block correlation.

    Args:
        source: Source image
        target: Target image
        source_points: Points in source coordinates
        transform: Approximate map from source to target coordinates, identity
            if None
        source_mask: Source pixels with mask below 0.95 are ignored
        target_mask: Target pixels with mask of 0 are ignored
        scale: Resolution in (0, 1] at which blocks are compared
        block_radius: Block radius in pixels, or (x, y) radii
        search_radius: Search radius in pixels, or (x, y) radii
        min_r: Minimal accepted correlation coefficient
        rod: Maximal (1 + second best r) / (1 + best r)
        max_curvature: Maximal principal curvature ratio of the correlation peak
        observer: Collects the length of every accepted offset
        max_workers: Pool size, the number of CPUs if None
        cancel_event: Aborts the whole batch when set

    Returns:
        PointMatches from each matched source point to its target location.
        Points without a reliable correlation peak are left out.
    """
    validated_input = BlockMatchingInputValidation(
        scale=scale,
        block_radius=block_radius,
        search_radius=search_radius,
        min_r=min_r,
        rod=rod,
        max_curvature=max_curvature,
        max_workers=max_workers,
    )
    points = [p if isinstance(p, Point) else Point(p) for p in source_points]
    if not points:
        logger.warning("No source points to match")
        return []

    matcher = BlockMatcher(
        config=BlockMatchingConfig(
            min_r=validated_input.min_r,
            rod=validated_input.rod,
            max_curvature=validated_input.max_curvature,
        )
    )
    brx, bry = validated_input.block_radius
    srx, sry = validated_input.search_radius
    return matcher.match_multiscale(
        as_array(source),
        as_array(target),
        points,
        transform=transform if transform is not None else TranslationModel2D(),
        scale=validated_input.scale,
        block_radius_x=brx,
        block_radius_y=bry,
        search_radius_x=srx,
        search_radius_y=sry,
        source_mask=None if source_mask is None else as_array(source_mask),
        target_mask=None if target_mask is None else as_array(target_mask),
        observer=observer,
        max_workers=validated_input.max_workers,
        cancel_event=cancel_event,
    )
