"""Feature Align - Scale-space feature extraction, block matching and mesh warping."""

from .common.buffer import FloatBuffer2D
from .common.enums import DetectorChoice, Interpolation
from .common.feature import Feature
from .common.point import Point, PointMatch
from .common.statistic import ErrorStatistic
from .common.transform import (
    AffineModel2D,
    CoordinateTransformList,
    TranslationModel2D,
)
from .extract import extract_features, extract_features_batch
from .image import load_image, to_float_buffer
from .internal.models.map.mesh import TransformMesh
from .match import match_blocks, match_features
from .warp import warp_image

__version__ = "0.1.0"
__all__ = [
    "extract_features",
    "extract_features_batch",
    "match_features",
    "match_blocks",
    "warp_image",
    "load_image",
    "to_float_buffer",
    "FloatBuffer2D",
    "Feature",
    "Point",
    "PointMatch",
    "AffineModel2D",
    "TranslationModel2D",
    "CoordinateTransformList",
    "TransformMesh",
    "ErrorStatistic",
    "DetectorChoice",
    "Interpolation",
]
