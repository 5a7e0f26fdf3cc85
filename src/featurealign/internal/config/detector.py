from dataclasses import dataclass

from ...common.enums import DetectorChoice
from ..models.decorators import DetectorConfigDecorator
from .base import DetectorConfig


@DetectorConfigDecorator(DetectorChoice.SIFT)
@dataclass(frozen=True)
class SIFTConfig(DetectorConfig):
    """SIFT gradient histogram descriptor parameters."""

    @property
    def descriptor_length(self) -> int:
        return self.fd_size * self.fd_size * self.fd_bins


@DetectorConfigDecorator(DetectorChoice.MOPS)
@dataclass(frozen=True)
class MOPSConfig(DetectorConfig):
    """MOPS intensity patch descriptor parameters."""

    fd_size: int = 16

    @property
    def descriptor_length(self) -> int:
        return self.fd_size * self.fd_size
