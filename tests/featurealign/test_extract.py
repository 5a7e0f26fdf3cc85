"""Unit tests for extract.py module."""

import math
import threading

import numpy as np
import pytest

from featurealign.common.enums import DetectorChoice
from featurealign.common.exceptions import (
    FeatureAlignInterruptedException,
    FeatureAlignValidationException,
)
from featurealign.common.buffer import FloatBuffer2D
from featurealign.extract import extract_features, extract_features_batch


class TestExtractFeaturesSIFT:
    """Test SIFT feature extraction on synthetic images."""

    def test_blob_is_detected_at_its_center(self, blob_image: np.ndarray) -> None:
        """Test that a single Gaussian blob yields a feature at the blob center."""
        # Execute
        features = extract_features(blob_image, detector=DetectorChoice.SIFT)

        # Verify
        assert len(features) >= 1
        distances = [math.dist(f.location, (32.0, 32.0)) for f in features]
        assert min(distances) <= 1.0

    def test_descriptors_have_sift_layout(self, blob_image: np.ndarray) -> None:
        """Test that SIFT descriptors hold 4 * 4 * 8 values in [0, 1]."""
        # Execute
        features = extract_features(blob_image)

        # Verify
        assert features
        for feature in features:
            assert feature.descriptor.shape == (128,)
            assert feature.descriptor.min() >= 0.0
            assert feature.descriptor.max() <= 1.0
            assert feature.scale > 0

    def test_features_are_sorted_by_scale_descending(
        self, multi_blob_image: np.ndarray
    ) -> None:
        """Test that features come back sorted by scale, largest first."""
        # Execute
        features = extract_features(multi_blob_image)

        # Verify
        scales = [f.scale for f in features]
        assert scales == sorted(scales, reverse=True)

    def test_float_buffer_input(self, blob_image: np.ndarray) -> None:
        """Test that a FloatBuffer2D gives the same features as its array."""
        # Execute
        from_array = extract_features(blob_image)
        from_buffer = extract_features(FloatBuffer2D.from_array(blob_image))

        # Verify
        assert len(from_array) == len(from_buffer)
        for a, b in zip(from_array, from_buffer):
            assert a.location == b.location
            assert np.array_equal(a.descriptor, b.descriptor)

    def test_flat_image_has_no_features(self) -> None:
        """Test that an image without structure yields an empty list."""
        # Execute
        features = extract_features(np.zeros((64, 64), dtype=np.float32))

        # Verify
        assert features == []

    def test_descriptor_size_override(self, blob_image: np.ndarray) -> None:
        """Test that fd_size and fd_bins change the descriptor length."""
        # Execute
        features = extract_features(blob_image, fd_size=2, fd_bins=6)

        # Verify
        assert features
        assert all(f.descriptor.shape == (24,) for f in features)

    @pytest.mark.parametrize("initial_sigma", [0.4, 0.5])
    def test_small_initial_sigma_is_accepted(
        self, blob_image: np.ndarray, initial_sigma: float
    ) -> None:
        """Test that a valid sigma below the source blur does not fail extraction."""
        # Execute
        features = extract_features(blob_image, initial_sigma=initial_sigma)

        # Verify
        assert isinstance(features, list)
        for feature in features:
            assert feature.descriptor.shape == (128,)


class TestExtractFeaturesMOPS:
    """Test MOPS feature extraction on synthetic images."""

    def test_blobs_yield_mops_descriptors(self, multi_blob_image: np.ndarray) -> None:
        """Test that MOPS finds blob features with 16 x 16 patch descriptors."""
        # Execute
        features = extract_features(multi_blob_image, detector=DetectorChoice.MOPS)

        # Verify
        assert len(features) >= 1
        for feature in features:
            assert feature.descriptor.shape == (256,)
            assert feature.descriptor.min() >= 0.0
            assert feature.descriptor.max() <= 1.0

        centers = [(x, y) for x in (64, 128, 192) for y in (64, 128, 192)]
        closest = min(math.dist(f.location, c) for f in features for c in centers)
        assert closest <= 2.0


class TestExtractFeaturesValidation:
    """Test input validation in extract_features."""

    @pytest.mark.parametrize(
        "params",
        [
            {"steps": 0},
            {"initial_sigma": 0.0},
            {"initial_sigma": -1.0},
            {"fd_size": 0},
            {"fd_bins": 0},
            {"min_octave_size": 512, "max_octave_size": 128},
        ],
    )
    def test_invalid_parameters_raise(self, blob_image: np.ndarray, params: dict) -> None:
        """Test that out of range parameters raise FeatureAlignValidationException."""
        with pytest.raises(FeatureAlignValidationException):
            extract_features(blob_image, **params)

    def test_invalid_detector_raises(self, blob_image: np.ndarray) -> None:
        """Test that an unknown detector raises FeatureAlignValidationException."""
        with pytest.raises(FeatureAlignValidationException) as exc_info:
            extract_features(blob_image, detector="surf")  # type: ignore[arg-type]

        assert "unsupported choice" in str(exc_info.value)

    def test_color_image_raises(self) -> None:
        """Test that a 3-D array is rejected."""
        with pytest.raises(FeatureAlignValidationException):
            extract_features(np.zeros((64, 64, 3), dtype=np.float32))


class TestExtractFeaturesBatch:
    """Test concurrent extraction over several images."""

    def test_results_follow_input_order(
        self, blob_image: np.ndarray, multi_blob_image: np.ndarray
    ) -> None:
        """Test that every image gets its own feature list in input order."""
        # Execute
        results = extract_features_batch(
            [blob_image, multi_blob_image, blob_image], max_workers=2
        )

        # Verify
        assert len(results) == 3
        assert len(results[0]) == len(results[2])
        assert len(results[0]) == len(extract_features(blob_image))
        assert len(results[1]) == len(extract_features(multi_blob_image))

    def test_parameters_are_forwarded(self, blob_image: np.ndarray) -> None:
        """Test that detector parameters reach every extraction."""
        # Execute
        results = extract_features_batch([blob_image], fd_size=2, fd_bins=4)

        # Verify
        assert results[0]
        assert all(f.descriptor.shape == (16,) for f in results[0])

    def test_cancelled_batch_raises(self, blob_image: np.ndarray) -> None:
        """Test that a set cancel event aborts the batch without partial results."""
        # Setup
        cancel_event = threading.Event()
        cancel_event.set()

        # Execute and verify
        with pytest.raises(FeatureAlignInterruptedException):
            extract_features_batch(
                [blob_image, blob_image], max_workers=1, cancel_event=cancel_event
            )

    def test_invalid_parameters_propagate(self, blob_image: np.ndarray) -> None:
        """Test that a validation failure inside a task reaches the caller."""
        with pytest.raises(FeatureAlignValidationException):
            extract_features_batch([blob_image], steps=0)
