from .enums import DetectorChoice, Interpolation
from .exceptions import (
    FeatureAlignConfigurationException,
    FeatureAlignException,
    FeatureAlignFileException,
    FeatureAlignIllDefinedDataPointsException,
    FeatureAlignImageProcessingException,
    FeatureAlignInterruptedException,
    FeatureAlignMemoryException,
    FeatureAlignNoninvertibleModelException,
    FeatureAlignNotEnoughDataPointsException,
    FeatureAlignValidationException,
)

__all__ = [
    "DetectorChoice",
    "Interpolation",
    "FeatureAlignException",
    "FeatureAlignValidationException",
    "FeatureAlignConfigurationException",
    "FeatureAlignImageProcessingException",
    "FeatureAlignFileException",
    "FeatureAlignMemoryException",
    "FeatureAlignInterruptedException",
    "FeatureAlignNoninvertibleModelException",
    "FeatureAlignNotEnoughDataPointsException",
    "FeatureAlignIllDefinedDataPointsException",
]
