"""Unit tests for factory module."""

import pytest

from featurealign.common.enums import DetectorChoice
from featurealign.common.exceptions import FeatureAlignConfigurationException
from featurealign.internal.models.detect.base import FeatureDetector
from featurealign.internal.models.detect.mops import MOPSDetector
from featurealign.internal.models.detect.sift import SIFTDetector
from featurealign.internal.models.factory import FeatureDetectorFactory


class TestFeatureDetectorFactory:
    """Test FeatureDetectorFactory class."""

    def test_create_sift(self) -> None:
        """Test that the SIFT choice creates a SIFTDetector with defaults."""
        # Execute
        detector = FeatureDetectorFactory.create(DetectorChoice.SIFT)

        # Verify
        assert isinstance(detector, SIFTDetector)
        assert isinstance(detector, FeatureDetector)
        assert detector.config.descriptor_length == 128

    def test_create_mops(self) -> None:
        """Test that the MOPS choice creates a MOPSDetector with defaults."""
        # Execute
        detector = FeatureDetectorFactory.create(DetectorChoice.MOPS)

        # Verify
        assert isinstance(detector, MOPSDetector)
        assert detector.config.fd_size == 16

    def test_create_with_overrides(self) -> None:
        """Test that overrides replace config defaults."""
        # Execute
        detector = FeatureDetectorFactory.create(
            DetectorChoice.SIFT, steps=4, initial_sigma=1.2
        )

        # Verify
        assert detector.config.steps == 4
        assert detector.config.initial_sigma == 1.2
        assert detector.config.fd_size == 4

    def test_unknown_override_raises(self) -> None:
        """Test that unknown parameter names are rejected."""
        with pytest.raises(FeatureAlignConfigurationException) as exc_info:
            FeatureDetectorFactory.create(DetectorChoice.SIFT, octaves=3)

        assert "octaves" in str(exc_info.value)

    def test_every_choice_is_registered(self) -> None:
        """Test that each detector choice can be created."""
        for choice in DetectorChoice:
            assert isinstance(FeatureDetectorFactory.create(choice), FeatureDetector)
