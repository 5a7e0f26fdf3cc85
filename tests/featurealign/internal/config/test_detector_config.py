"""Unit tests for detector and matching configs."""

import dataclasses

import pytest

from featurealign.internal.config.base import DetectorConfig
from featurealign.internal.config.detector import MOPSConfig, SIFTConfig
from featurealign.internal.config.matching import (
    BlockMatchingConfig,
    FeatureMatchingConfig,
)


class TestDetectorConfigs:
    """Test detector config defaults and derived values."""

    def test_sift_defaults(self) -> None:
        """Test the default SIFT parameters."""
        config = SIFTConfig()
        assert config.fd_size == 4
        assert config.fd_bins == 8
        assert config.steps == 3
        assert config.initial_sigma == 1.6
        assert config.descriptor_length == 128

    def test_mops_defaults(self) -> None:
        """Test the default MOPS parameters."""
        config = MOPSConfig()
        assert config.fd_size == 16
        assert config.descriptor_length == 256

    def test_descriptor_length_is_defined_per_detector(self) -> None:
        """Test that only concrete detector configs expose a descriptor length."""
        assert not hasattr(DetectorConfig(), "descriptor_length")
        assert SIFTConfig(fd_size=2, fd_bins=6).descriptor_length == 24
        assert MOPSConfig(fd_size=8).descriptor_length == 64

    def test_configs_are_frozen(self) -> None:
        """Test that configs cannot be modified after creation."""
        config = SIFTConfig()
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.steps = 4  # type: ignore[misc]


class TestMatchingConfigs:
    """Test matching config defaults."""

    def test_feature_matching_defaults(self) -> None:
        """Test the default ratio of distances."""
        config = FeatureMatchingConfig()
        assert config.rod == 0.92
        assert config.max_scale_deviation is None

    def test_block_matching_defaults(self) -> None:
        """Test the default correlation thresholds."""
        config = BlockMatchingConfig()
        assert config.min_r == 0.7
        assert config.rod == 0.9
        assert config.max_curvature == 10.0
