"""Triangulated piecewise affine transform over a rectangular region."""

import math
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from ....common.exceptions import (
    FeatureAlignConfigurationException,
    FeatureAlignNoninvertibleModelException,
)
from ....common.point import Point, PointMatch
from ....common.transform import AffineModel2D, CoordinateTransform


@dataclass
class Triangle:
    """Affine model of one mesh triangle and the vertex matches it is fitted to."""

    model: AffineModel2D
    vertices: tuple[PointMatch, PointMatch, PointMatch]

    def source_polygon(self) -> list[tuple[float, float]]:
        return [pm.p1.local for pm in self.vertices]

    def target_polygon(self) -> list[tuple[float, float]]:
        return [pm.p2.world for pm in self.vertices]


def is_in_triangle(
    polygon: Sequence[tuple[float, float]], location: Sequence[float]
) -> bool:
    """Point in triangle test that includes the edges."""
    x, y = location[0], location[1]
    signs = []
    for k in range(3):
        ax, ay = polygon[k]
        bx, by = polygon[(k + 1) % 3]
        signs.append((bx - ax) * (y - ay) - (by - ay) * (x - ax))
    return all(s >= 0 for s in signs) or all(s <= 0 for s in signs)


class TransformMesh:
    """Regular triangle mesh whose vertices move from source to target positions.

    Even rows hold num_x vertices, odd rows num_x + 1 with the inner ones shifted
    by half a column. Vertices are shared PointMatches, p1 carrying the source
    position and p2 the target position.
    """

    def __init__(self, num_x: int, num_y: int, width: float, height: float) -> None:
        if num_x < 2 or num_y < 2:
            raise FeatureAlignConfigurationException(
                f"A mesh needs at least 2x2 vertices, got {num_x}x{num_y}"
            )

        self.width = width
        self.height = height
        dx = (width - 1) / (num_x - 1)
        dy = (height - 1) / (num_y - 1)

        rows = []
        for j in range(num_y):
            if j % 2 == 0:
                xs = [i * dx for i in range(num_x)]
            else:
                xs = [0.0] + [(i - 0.5) * dx for i in range(1, num_x)] + [width - 1.0]
            rows.append([PointMatch(Point((x, j * dy)), Point((x, j * dy))) for x in xs])

        self.vertices = [pm for row in rows for pm in row]
        self.triangles: list[Triangle] = []
        for j in range(num_y - 1):
            if j % 2 == 0:
                even, odd = rows[j], rows[j + 1]
            else:
                even, odd = rows[j + 1], rows[j]

            strip = [odd[0]]
            for k in range(len(even)):
                strip.extend([even[k], odd[k + 1]])
            for k in range(len(strip) - 2):
                self.triangles.append(
                    Triangle(AffineModel2D(), (strip[k], strip[k + 1], strip[k + 2]))
                )

        self.update_affines()

    @staticmethod
    def num_y(num_x: int, width: float, height: float) -> int:
        """Row count giving roughly equilateral triangles."""
        dx = (width - 1) / (num_x - 1)
        dy = dx * math.sqrt(3.0) / 2.0
        return max(2, int(round((height - 1) / dy)) + 1)

    @classmethod
    def create(cls, num_x: int, width: float, height: float) -> "TransformMesh":
        return cls(num_x, cls.num_y(num_x, width, height), width, height)

    def update_affines(self) -> None:
        for triangle in self.triangles:
            triangle.model.fit(triangle.vertices)

    def init(self, transform: CoordinateTransform) -> None:
        """Move every target vertex to the transformed source vertex."""
        for pm in self.vertices:
            pm.p2 = Point(transform.apply(pm.p1.local))
        self.update_affines()

    def apply(self, location: Sequence[float]) -> tuple[float, float]:
        for triangle in self.triangles:
            if is_in_triangle(triangle.source_polygon(), location):
                return triangle.model.apply(location)
        return (location[0], location[1])

    def apply_in_place(self, location: list[float]) -> None:
        location[0], location[1] = self.apply(location)

    def apply_inverse(self, location: Sequence[float]) -> tuple[float, float]:
        for triangle in self.triangles:
            if is_in_triangle(triangle.target_polygon(), location):
                return triangle.model.apply_inverse(location)
        raise FeatureAlignNoninvertibleModelException(
            f"Location {tuple(location)} lies outside the mesh"
        )

    def apply_inverse_in_place(self, location: list[float]) -> None:
        location[0], location[1] = self.apply_inverse(location)

    def bounds(self) -> tuple[float, float, float, float]:
        """(min_x, min_y, max_x, max_y) of the target vertices."""
        world = np.array([pm.p2.world for pm in self.vertices])
        min_x, min_y = world.min(axis=0)
        max_x, max_y = world.max(axis=0)
        return (float(min_x), float(min_y), float(max_x), float(max_y))
