import logging
import threading
from collections.abc import Sequence
from typing import Optional, Union

import numpy as np

from .common.buffer import FloatBuffer2D, as_array
from .common.enums import DetectorChoice
from .common.exceptions import (
    FeatureAlignImageProcessingException,
    FeatureAlignMemoryException,
)
from .common.feature import Feature
from .internal.models.factory import FeatureDetectorFactory
from .internal.models.validation import ExtractionInputValidation
from .internal.util.parallel import map_tasks
from .internal.util.resource_monitor import ResourceMonitor

logger = logging.getLogger(__name__)

Image = Union[FloatBuffer2D, np.ndarray]


def extract_features(
    image: Image,
    *,
    detector: DetectorChoice = DetectorChoice.SIFT,
    initial_sigma: Optional[float] = None,
    steps: Optional[int] = None,
    fd_size: Optional[int] = None,
    fd_bins: Optional[int] = None,
    min_octave_size: Optional[int] = None,
    max_octave_size: Optional[int] = None,
) -> list[Feature]:
    """Detect scale-space features in a grayscale image and describe them.

    Parameters left as None take the detector's defaults.

    Returns:
        Features in image coordinates, sorted by scale descending. Empty when
        nothing was found.
    """
    validated_input = ExtractionInputValidation(
        detector=detector,
        initial_sigma=initial_sigma,
        steps=steps,
        fd_size=fd_size,
        fd_bins=fd_bins,
        min_octave_size=min_octave_size,
        max_octave_size=max_octave_size,
    )
    data = as_array(image)
    logger.info(
        f"Extracting {validated_input.detector.value} features from "
        f"{data.shape[1]}x{data.shape[0]} image"
    )

    feature_detector = FeatureDetectorFactory.create(
        validated_input.detector, **validated_input.overrides()
    )

    try:
        feature_detector.init(data)
        features = feature_detector.extract_features()
    except MemoryError as e:
        raise FeatureAlignMemoryException(
            f"Insufficient memory for feature extraction: {e}"
        ) from e
    except (ValueError, IndexError) as e:
        raise FeatureAlignImageProcessingException(
            f"Feature extraction failed: {e}"
        ) from e

    logger.info(f"Extracted {len(features)} features")
    return features


def extract_features_batch(
    images: Sequence[Image],
    *,
    detector: DetectorChoice = DetectorChoice.SIFT,
    max_workers: Optional[int] = None,
    cancel_event: Optional[threading.Event] = None,
    **params,
) -> list[list[Feature]]:
    """Extract features from independent images concurrently, one task per image.

    params are passed on to extract_features.

    Returns:
        One feature list per image, in input order
    """
    logger.info(f"Extracting features from {len(images)} images")

    def task(image: Image) -> list[Feature]:
        return extract_features(image, detector=detector, **params)

    results = map_tasks(
        task,
        list(images),
        max_workers=max_workers or ResourceMonitor.available_workers(),
        cancel_event=cancel_event,
    )

    ResourceMonitor.log_resource_status("After batch extraction")
    return results
