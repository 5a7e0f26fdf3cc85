"""Rasterize a triangle mesh transform to warp images."""

import logging
import math
import threading
from collections.abc import Sequence
from typing import Optional

import numpy as np

from ....common.enums import Interpolation
from ....common.exceptions import FeatureAlignNoninvertibleModelException
from ...util.image import ImageUtils
from ...util.parallel import parallel_for
from ...util.resource_monitor import ResourceMonitor
from .mesh import TransformMesh, Triangle

logger = logging.getLogger(__name__)


def triangle_pixels(
    polygon: Sequence[tuple[float, float]], width: int, height: int
) -> tuple[np.ndarray, np.ndarray]:
    """Integer pixels strictly inside a triangle and inside width x height.

    Pixels on an edge are excluded, so triangles sharing that edge never both
    claim them.

    Returns:
        Tuple of (xs, ys) pixel coordinate arrays
    """
    points = np.asarray(polygon, dtype=np.float64)
    min_x = max(0, int(math.floor(points[:, 0].min() + 0.5)))
    max_x = min(width - 1, int(math.floor(points[:, 0].max() + 0.5)))
    min_y = max(0, int(math.floor(points[:, 1].min() + 0.5)))
    max_y = min(height - 1, int(math.floor(points[:, 1].max() + 0.5)))
    if min_x > max_x or min_y > max_y:
        empty = np.empty(0, dtype=int)
        return empty, empty

    ys, xs = np.mgrid[min_y : max_y + 1, min_x : max_x + 1]
    sides = []
    for k in range(3):
        ax, ay = points[k]
        bx, by = points[(k + 1) % 3]
        sides.append((bx - ax) * (ys - ay) - (by - ay) * (xs - ax))

    inside = ((sides[0] > 0) & (sides[1] > 0) & (sides[2] > 0)) | (
        (sides[0] < 0) & (sides[1] < 0) & (sides[2] < 0)
    )
    return xs[inside], ys[inside]


class TransformMeshMapping:
    """Warp images through a TransformMesh, one triangle at a time.

    Triangles never overlap in the rasterized space, so workers write disjoint
    target pixels without synchronization.
    """

    def __init__(self, mesh: TransformMesh) -> None:
        self.mesh = mesh

    def map(
        self,
        source: np.ndarray,
        target: np.ndarray,
        *,
        interpolation: Interpolation = Interpolation.NEAREST,
        num_threads: Optional[int] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        """Fill target pixels covered by the mesh's target triangles from source."""
        self._map(source, target, False, interpolation, num_threads, cancel_event)

    def map_inverse(
        self,
        source: np.ndarray,
        target: np.ndarray,
        *,
        interpolation: Interpolation = Interpolation.NEAREST,
        num_threads: Optional[int] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        """Fill target pixels covered by the mesh's source triangles from source."""
        self._map(source, target, True, interpolation, num_threads, cancel_event)

    def map_triangle(
        self,
        triangle: Triangle,
        source: np.ndarray,
        target: np.ndarray,
        inverse: bool = False,
        interpolation: Interpolation = Interpolation.NEAREST,
    ) -> None:
        polygon = triangle.source_polygon() if inverse else triangle.target_polygon()
        xs, ys = triangle_pixels(polygon, target.shape[1], target.shape[0])
        if xs.size == 0:
            return

        coordinates = np.column_stack([xs, ys]).astype(np.float64)
        try:
            if inverse:
                mapped = triangle.model.apply_array(coordinates)
            else:
                mapped = triangle.model.apply_inverse_array(coordinates)
        except FeatureAlignNoninvertibleModelException:
            logger.debug(f"Skipping non-invertible triangle {triangle.model}")
            return

        if interpolation == Interpolation.BILINEAR:
            values = ImageUtils.sample_bilinear(source, mapped[:, 0], mapped[:, 1])
        else:
            values = ImageUtils.sample_nearest(source, mapped[:, 0], mapped[:, 1])
        target[ys, xs] = values

    def _map(
        self,
        source: np.ndarray,
        target: np.ndarray,
        inverse: bool,
        interpolation: Interpolation,
        num_threads: Optional[int],
        cancel_event: Optional[threading.Event],
    ) -> None:
        num_threads = num_threads or ResourceMonitor.available_workers()
        logger.debug(
            f"Mapping {len(self.mesh.triangles)} triangles "
            f"({'inverse' if inverse else 'forward'}, {interpolation.value}) "
            f"on {num_threads} threads"
        )

        def task(triangle: Triangle) -> None:
            self.map_triangle(triangle, source, target, inverse, interpolation)

        parallel_for(
            self.mesh.triangles,
            task,
            num_threads=num_threads,
            cancel_event=cancel_event,
        )
