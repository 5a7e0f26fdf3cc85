from dataclasses import fields

from ...common.enums import DetectorChoice
from ...common.exceptions import FeatureAlignConfigurationException

# Import modules to trigger decorator registration
from .detect import mops, sift  # noqa: F401
from .detect.base import FeatureDetector
from .registry import _detector_config_map, _detector_map


class FeatureDetectorFactory:
    """Factory that dispatches to the detector class registered for an enum."""

    @classmethod
    def create(cls, detector: DetectorChoice, **overrides) -> FeatureDetector:
        config_cls = _detector_config_map[detector]
        known = {f.name for f in fields(config_cls)}
        unknown = set(overrides) - known
        if unknown:
            raise FeatureAlignConfigurationException(
                f"Unknown {detector.value} parameters: {', '.join(sorted(unknown))}"
            )

        config = config_cls(**overrides)
        return _detector_map[detector](config=config)
