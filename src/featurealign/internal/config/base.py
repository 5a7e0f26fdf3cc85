"""Base configuration classes for feature detectors."""

from dataclasses import dataclass


@dataclass(frozen=True)
class DetectorConfig:
    """Base config class for scale-space feature detectors."""

    # Descriptor layout
    fd_size: int = 4
    fd_bins: int = 8

    # Scale space
    max_octave_size: int = 1024
    min_octave_size: int = 64
    steps: int = 3
    initial_sigma: float = 1.6

    # Candidate rejection
    min_contrast: float = 0.025
    max_curvature: float = 10.0
