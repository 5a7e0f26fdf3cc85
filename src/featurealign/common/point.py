import math
from dataclasses import dataclass
from typing import Optional


@dataclass
class Point:
    """A local coordinate and its world coordinate after a transform."""

    local: tuple[float, float]
    world: Optional[tuple[float, float]] = None

    def __post_init__(self) -> None:
        self.local = (float(self.local[0]), float(self.local[1]))
        if self.world is None:
            self.world = self.local
        else:
            self.world = (float(self.world[0]), float(self.world[1]))

    def apply(self, transform) -> None:
        """Set world to the transformed local coordinate."""
        x, y = transform.apply(self.local)
        self.world = (float(x), float(y))


@dataclass
class PointMatch:
    """Two corresponding points with a weight."""

    p1: Point
    p2: Point
    weight: float = 1.0
    strength: float = 1.0

    @property
    def distance(self) -> float:
        """Distance between the world coordinates of both points."""
        return math.dist(self.p1.world, self.p2.world)
