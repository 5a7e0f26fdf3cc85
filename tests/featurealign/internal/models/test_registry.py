"""Unit tests for registry module."""

from typing import cast
from unittest.mock import Mock, patch

from featurealign.common.enums import DetectorChoice
from featurealign.internal.config.base import DetectorConfig
from featurealign.internal.models.detect.base import FeatureDetector as FeatureDetectorBase
from featurealign.internal.models.registry import (
    register_detector,
    register_detector_config,
)


class TestRegistryFunctions:
    """Test registry registration functions."""

    @patch("featurealign.internal.models.registry._detector_map")
    def test_register_detector(self, mock_detector_map: Mock) -> None:
        """Test detector registration."""
        # Create mock detector class
        mock_detector_class = Mock()
        mock_detector_class.__name__ = "MockDetector"

        # Register the detector
        result = register_detector(
            DetectorChoice.SIFT, cast("type[FeatureDetectorBase]", mock_detector_class)
        )

        # Verify registration
        assert result is mock_detector_class

        # Verify it's in the registry
        mock_detector_map.__setitem__.assert_called_once_with(
            DetectorChoice.SIFT, mock_detector_class
        )

    @patch("featurealign.internal.models.registry._detector_config_map")
    def test_register_detector_config(self, mock_detector_config_map: Mock) -> None:
        """Test detector config registration."""
        # Create mock config class
        mock_config_class = Mock()
        mock_config_class.__name__ = "MockDetectorConfig"

        # Register the config
        result = register_detector_config(
            DetectorChoice.MOPS, cast("type[DetectorConfig]", mock_config_class)
        )

        # Verify registration
        assert result is mock_config_class

        # Verify it's in the registry
        mock_detector_config_map.__setitem__.assert_called_once_with(
            DetectorChoice.MOPS, mock_config_class
        )
