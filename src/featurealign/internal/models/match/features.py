import logging
import math
from collections import Counter
from collections.abc import Sequence
from typing import Optional

import numpy as np

from ....common.feature import Feature
from ....common.point import Point, PointMatch
from ...config.matching import FeatureMatchingConfig

logger = logging.getLogger(__name__)


class FeatureMatcher:
    """Nearest neighbor descriptor matching with the ratio-of-distances test."""

    def __init__(self, *, config: FeatureMatchingConfig) -> None:
        self.config = config

    def match(
        self, features1: Sequence[Feature], features2: Sequence[Feature]
    ) -> list[PointMatch]:
        """Match every feature of features1 to its nearest neighbor in features2.

        A match is kept when the best descriptor distance is below rod times the
        second best. Matches whose target location is shared with any other match
        are all dropped.

        Returns:
            PointMatches from features1 locations to features2 locations, weighted
            by the mean of both feature scales
        """
        if len(features1) == 0 or len(features2) < 2:
            logger.warning(
                f"Nothing to match: {len(features1)} and {len(features2)} features"
            )
            return []

        descriptors = np.stack([f.descriptor for f in features2]).astype(np.float64)
        scales = np.array([f.scale for f in features2])

        matches = []
        for f1 in features1:
            best = self._nearest(f1, descriptors, scales)
            if best is None:
                continue
            f2 = features2[best]
            matches.append(
                PointMatch(
                    Point(f1.location),
                    Point(f2.location),
                    weight=(f1.scale + f2.scale) / 2.0,
                )
            )

        unique = remove_ambiguous_matches(matches)
        logger.info(
            f"Matched {len(unique)} of {len(features1)} features "
            f"({len(matches) - len(unique)} ambiguous matches removed)"
        )
        return unique

    def _nearest(
        self, feature: Feature, descriptors: np.ndarray, scales: np.ndarray
    ) -> Optional[int]:
        candidates = np.arange(len(descriptors))
        max_sd = self.config.max_scale_deviation
        if max_sd is not None:
            ratio = scales / feature.scale
            candidates = np.flatnonzero((ratio >= 1.0 / max_sd) & (ratio <= max_sd))
        if len(candidates) < 2:
            return None

        difference = descriptors[candidates] - feature.descriptor
        distances = np.einsum("ij,ij->i", difference, difference)

        k = int(np.argmin(distances))
        best = distances[k]
        second_best = np.min(np.delete(distances, k))
        if second_best == 0:
            return None

        # Ratio of Euclidean distances
        if math.sqrt(best / second_best) < self.config.rod:
            return int(candidates[k])
        return None


def remove_ambiguous_matches(matches: list[PointMatch]) -> list[PointMatch]:
    """Drop every match whose target location coincides with another match's."""
    counts = Counter(m.p2.local for m in matches)
    return [m for m in matches if counts[m.p2.local] == 1]
