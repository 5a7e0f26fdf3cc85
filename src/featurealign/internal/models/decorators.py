from typing import Callable

from ...common.enums import DetectorChoice
from ..config.base import DetectorConfig
from .detect.base import FeatureDetector as FeatureDetectorBase
from .registry import register_detector, register_detector_config


def Detector(
    choice: DetectorChoice,
) -> Callable[[type[FeatureDetectorBase]], type[FeatureDetectorBase]]:
    """Decorator to register a feature detector class with its enum choice."""

    def decorator(cls: type[FeatureDetectorBase]) -> type[FeatureDetectorBase]:
        return register_detector(choice, cls)

    return decorator


def DetectorConfigDecorator(
    choice: DetectorChoice,
) -> Callable[[type[DetectorConfig]], type[DetectorConfig]]:
    """Decorator to register a detector config class with its enum choice."""

    def decorator(cls: type[DetectorConfig]) -> type[DetectorConfig]:
        return register_detector_config(choice, cls)

    return decorator
