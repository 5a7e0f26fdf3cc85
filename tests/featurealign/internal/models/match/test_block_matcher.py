"""Unit tests for block matching by correlation."""

import numpy as np
import pytest

from featurealign.common.exceptions import FeatureAlignValidationException
from featurealign.common.point import Point
from featurealign.common.transform import TranslationModel2D
from featurealign.internal.config.matching import BlockMatchingConfig
from featurealign.internal.models.match.block import (
    BlockMatcher,
    correlation_map,
    map_into_frame,
)


@pytest.fixture
def matcher() -> BlockMatcher:
    return BlockMatcher(config=BlockMatchingConfig())


def peak_map(x: int, y: int, size: int = 7, sigma: float = 1.0) -> np.ndarray:
    ys, xs = np.mgrid[0:size, 0:size]
    return np.exp(-((xs - x) ** 2 + (ys - y) ** 2) / (2 * sigma * sigma))


class TestCorrelationMap:
    """Test Pearson correlation maps."""

    def test_values_are_bounded_and_peak_at_the_block(self, noise_image: np.ndarray) -> None:
        """Test that r is in [-1, 1] and 1 where the block came from."""
        # Setup
        block = noise_image[40:57, 50:67]
        region = noise_image[35:62, 44:73]

        # Execute
        r_map = correlation_map(block, region)

        # Verify
        assert r_map is not None
        assert r_map.shape == (11, 13)
        assert np.nanmin(r_map) >= -1.0
        assert np.nanmax(r_map) <= 1.0
        assert np.unravel_index(np.nanargmax(r_map), r_map.shape) == (5, 6)
        assert r_map[5, 6] == pytest.approx(1.0)

    def test_flat_block_has_no_map(self) -> None:
        """Test that a block without variance cannot be correlated."""
        assert correlation_map(np.ones((5, 5)), np.random.default_rng(0).random((9, 9))) is None

    def test_nan_block_has_no_map(self) -> None:
        """Test that a block with NaN samples cannot be correlated."""
        block = np.random.default_rng(0).random((5, 5))
        block[2, 2] = np.nan
        assert correlation_map(block, np.random.default_rng(1).random((9, 9))) is None

    def test_nan_windows_are_nan(self) -> None:
        """Test that target windows containing NaN give NaN entries only."""
        # Setup
        rng = np.random.default_rng(2)
        block = rng.random((3, 3))
        region = rng.random((7, 7))
        region[0, 0] = np.nan

        # Execute
        r_map = correlation_map(block, region)

        # Verify
        assert r_map is not None
        assert np.isnan(r_map[0, 0])
        assert np.isfinite(r_map[4, 4])


class TestFindPeak:
    """Test sub-pixel peak localization and rejection."""

    def test_isotropic_peak(self, matcher: BlockMatcher) -> None:
        """Test that a symmetric peak is found at its center."""
        # Execute
        peak = matcher.find_peak(peak_map(3, 4))

        # Verify
        assert peak == pytest.approx((3.0, 4.0))

    def test_weak_peak_is_rejected(self, matcher: BlockMatcher) -> None:
        """Test that peaks below min_r are rejected."""
        assert matcher.find_peak(0.5 * peak_map(3, 3)) is None

    def test_ambiguous_peak_is_rejected(self, matcher: BlockMatcher) -> None:
        """Test that a second peak of similar height is rejected."""
        # Setup
        r_map = np.maximum(peak_map(1, 3, sigma=0.7), 0.98 * peak_map(5, 3, sigma=0.7))

        # Execute and verify
        assert matcher.find_peak(r_map) is None

    def test_elongated_peak_is_rejected(self, matcher: BlockMatcher) -> None:
        """Test that ridges fail the curvature test."""
        # Setup
        ys, xs = np.mgrid[0:7, 0:7]
        r_map = np.exp(-((xs - 3) ** 2) / 50.0 - (ys - 3) ** 2 / 0.5)

        # Execute and verify
        assert matcher.find_peak(r_map) is None

    def test_plateau_is_rejected(self, matcher: BlockMatcher) -> None:
        """Test that a map without a strict maximum is rejected."""
        assert matcher.find_peak(np.ones((5, 5))) is None


class TestMatching:
    """Test point matching in prepared images."""

    def test_match_by_maximal_pmcc(self, matcher: BlockMatcher, noise_image: np.ndarray) -> None:
        """Test matching into a padded, shifted copy of the source."""
        # Setup: target pixel (x + 6, y + 6) shows source pixel (x - 2, y + 1)
        target = np.pad(noise_image, 6, mode="reflect")
        target = np.roll(target, (-1, 2), axis=(0, 1))
        points = [Point((64.0, 64.0)), Point((40.0, 80.0))]

        # Execute
        matches = matcher.match_by_maximal_pmcc(noise_image, target, 8, 8, 6, 6, points)

        # Verify
        assert len(matches) == 2
        for match in matches:
            assert match.p2.local[0] == pytest.approx(match.p1.local[0] + 2.0, abs=0.3)
            assert match.p2.local[1] == pytest.approx(match.p1.local[1] - 1.0, abs=0.3)

    def test_target_shape_is_checked(self, matcher: BlockMatcher, noise_image: np.ndarray) -> None:
        """Test that an unpadded target is rejected."""
        with pytest.raises(FeatureAlignValidationException):
            matcher.match_by_maximal_pmcc(
                noise_image, noise_image, 8, 8, 6, 6, [Point((64.0, 64.0))]
            )


class TestMapIntoFrame:
    """Test resampling a target into source space."""

    def test_outside_lookups_are_nan(self) -> None:
        """Test that samples mapped outside the image stay NaN."""
        # Setup
        image = np.arange(16, dtype=np.float32).reshape(4, 4)

        # Execute
        frame = map_into_frame(image, TranslationModel2D(-1.0, 0.0), (4, 4))

        # Verify
        assert np.isnan(frame[:, 0]).all()
        assert np.array_equal(frame[:, 1:], image[:, :3])

    def test_mask_hides_samples(self) -> None:
        """Test that masked pixels stay NaN."""
        # Setup
        image = np.ones((4, 4), dtype=np.float32)
        mask = np.ones((4, 4), dtype=np.float32)
        mask[2, 2] = 0.0

        # Execute
        frame = map_into_frame(image, TranslationModel2D(), (4, 4), mask=mask)

        # Verify
        assert np.isnan(frame[2, 2])
        assert np.isfinite(frame[0, 0])
