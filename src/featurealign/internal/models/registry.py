"""Registry for auto-discovered feature detectors."""

from ...common.enums import DetectorChoice
from ..config.base import DetectorConfig
from .detect.base import FeatureDetector as FeatureDetectorBase

# Registry dictionaries for auto-discovered components
_detector_map: dict[DetectorChoice, type[FeatureDetectorBase]] = {}
_detector_config_map: dict[DetectorChoice, type[DetectorConfig]] = {}


def register_detector(
    choice: DetectorChoice, cls: type[FeatureDetectorBase]
) -> type[FeatureDetectorBase]:
    """Register a feature detector class with its enum choice."""
    _detector_map[choice] = cls
    return cls


def register_detector_config(
    choice: DetectorChoice, cls: type[DetectorConfig]
) -> type[DetectorConfig]:
    """Register a detector config class with its enum choice."""
    _detector_config_map[choice] = cls
    return cls
