from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True, eq=False)
class Feature:
    """Local image feature at a location, scale and orientation.

    Features sort by scale in descending order.
    """

    scale: float
    orientation: float
    location: tuple[float, float]
    descriptor: np.ndarray

    def descriptor_distance(self, other: "Feature") -> float:
        """Euclidean distance between the two descriptors."""
        difference = self.descriptor.astype(np.float64) - other.descriptor
        return float(np.sqrt(np.dot(difference, difference)))

    def scaled(self, factor: float) -> "Feature":
        """Copy with scale and location multiplied by factor."""
        return Feature(
            scale=self.scale * factor,
            orientation=self.orientation,
            location=(self.location[0] * factor, self.location[1] * factor),
            descriptor=self.descriptor,
        )

    def __lt__(self, other: "Feature") -> bool:
        return self.scale > other.scale
