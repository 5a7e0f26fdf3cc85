from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class FeatureMatchingConfig:
    """Ratio-of-distances descriptor matching parameters."""

    rod: float = 0.92
    max_scale_deviation: Optional[float] = None


@dataclass(frozen=True)
class BlockMatchingConfig:
    """Correlation block matching parameters."""

    # Peak acceptance
    min_r: float = 0.7
    rod: float = 0.9
    max_curvature: float = 10.0

    # Pre-filtering for the resampled images
    min_sigma: float = 1.6
    source_sigma: float = 0.5
    mask_threshold: float = 0.95
