"""Unit tests for FeatureMatcher."""

import numpy as np

from featurealign.common.feature import Feature
from featurealign.common.point import Point, PointMatch
from featurealign.internal.config.matching import FeatureMatchingConfig
from featurealign.internal.models.match.features import (
    FeatureMatcher,
    remove_ambiguous_matches,
)


def feature(location: tuple[float, float], descriptor: list[float], scale: float = 1.0) -> Feature:
    return Feature(scale, 0.0, location, np.array(descriptor, dtype=np.float32))


class TestFeatureMatcher:
    """Test nearest neighbor matching with the ratio test."""

    def test_ambiguous_targets_are_removed(self) -> None:
        """Test that two features matching the same target are both dropped."""
        # Setup
        matcher = FeatureMatcher(config=FeatureMatchingConfig())
        targets = [feature((0.0, 0.0), [1, 0]), feature((5.0, 5.0), [0, 1])]
        sources = [feature((1.0, 1.0), [1, 0]), feature((2.0, 2.0), [1, 0.01])]

        # Execute
        matches = matcher.match(sources, targets)

        # Verify
        assert matches == []

    def test_ratio_test_rejects_close_second_best(self) -> None:
        """Test that a nearly equidistant pair of candidates is rejected."""
        # Setup
        matcher = FeatureMatcher(config=FeatureMatchingConfig(rod=0.92))
        targets = [feature((0.0, 0.0), [1, 0]), feature((5.0, 5.0), [0, 1])]
        sources = [feature((1.0, 1.0), [0.52, 0.5])]

        # Execute and verify
        assert matcher.match(sources, targets) == []

    def test_identical_candidates_are_rejected(self) -> None:
        """Test that a zero second best distance never passes."""
        # Setup
        matcher = FeatureMatcher(config=FeatureMatchingConfig())
        targets = [feature((0.0, 0.0), [1, 0]), feature((5.0, 5.0), [1, 0])]

        # Execute and verify
        assert matcher.match([feature((1.0, 1.0), [1, 0])], targets) == []

    def test_scale_deviation_limits_candidates(self) -> None:
        """Test that candidates of very different scale are ignored."""
        # Setup
        targets = [
            feature((0.0, 0.0), [1, 0], scale=8.0),
            feature((5.0, 5.0), [0, 1], scale=1.0),
            feature((9.0, 9.0), [0.5, 0.5], scale=1.0),
        ]
        sources = [feature((1.0, 1.0), [1, 0], scale=1.0)]

        # Execute
        unrestricted = FeatureMatcher(config=FeatureMatchingConfig()).match(sources, targets)
        restricted = FeatureMatcher(
            config=FeatureMatchingConfig(rod=1.0, max_scale_deviation=2.0)
        ).match(sources, targets)

        # Verify
        assert [m.p2.local for m in unrestricted] == [(0.0, 0.0)]
        assert [m.p2.local for m in restricted] == [(9.0, 9.0)]

    def test_match_weight_is_mean_scale(self) -> None:
        """Test that match weights average both feature scales."""
        # Setup
        matcher = FeatureMatcher(config=FeatureMatchingConfig())
        targets = [feature((0.0, 0.0), [1, 0], scale=3.0), feature((5.0, 5.0), [0, 1])]

        # Execute
        matches = matcher.match([feature((1.0, 1.0), [1, 0], scale=1.0)], targets)

        # Verify
        assert len(matches) == 1
        assert matches[0].weight == 2.0


class TestRemoveAmbiguousMatches:
    """Test removal of matches sharing a target location."""

    def test_unique_targets_are_kept(self) -> None:
        """Test that only matches with a unique target survive, in order."""
        # Setup
        matches = [
            PointMatch(Point((0.0, 0.0)), Point((1.0, 1.0))),
            PointMatch(Point((1.0, 0.0)), Point((2.0, 2.0))),
            PointMatch(Point((2.0, 0.0)), Point((1.0, 1.0))),
            PointMatch(Point((3.0, 0.0)), Point((3.0, 3.0))),
        ]

        # Execute
        result = remove_ambiguous_matches(matches)

        # Verify
        assert [m.p1.local for m in result] == [(1.0, 0.0), (3.0, 0.0)]
