"""Coordinate transforms exchanged with model fitting and mesh relaxation."""

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

import numpy as np

from .exceptions import (
    FeatureAlignIllDefinedDataPointsException,
    FeatureAlignNoninvertibleModelException,
    FeatureAlignNotEnoughDataPointsException,
)
from .point import PointMatch


@runtime_checkable
class CoordinateTransform(Protocol):
    def apply(self, location: Sequence[float]) -> tuple[float, float]: ...

    def apply_in_place(self, location: list[float]) -> None: ...


@runtime_checkable
class InvertibleCoordinateTransform(CoordinateTransform, Protocol):
    def apply_inverse(self, location: Sequence[float]) -> tuple[float, float]: ...

    def apply_inverse_in_place(self, location: list[float]) -> None: ...


def apply_to_points(transform: CoordinateTransform, points: np.ndarray) -> np.ndarray:
    """Transform an (n, 2) array of coordinates.

    Uses the transform's vectorized apply_array when it has one.
    """
    points = np.asarray(points, dtype=np.float64)
    if hasattr(transform, "apply_array"):
        return transform.apply_array(points)
    return np.array(
        [transform.apply(p) for p in points], dtype=np.float64
    ).reshape(-1, 2)


class AffineModel2D:
    """2-D affine transform x' = m00 x + m01 y + m02, y' = m10 x + m11 y + m12."""

    MIN_NUM_MATCHES = 3

    def __init__(
        self,
        m00: float = 1.0,
        m10: float = 0.0,
        m01: float = 0.0,
        m11: float = 1.0,
        m02: float = 0.0,
        m12: float = 0.0,
    ) -> None:
        self.set(m00, m10, m01, m11, m02, m12)

    def set(
        self, m00: float, m10: float, m01: float, m11: float, m02: float, m12: float
    ) -> None:
        self.matrix = np.array([[m00, m01, m02], [m10, m11, m12]], dtype=np.float64)
        self._invert()

    def _invert(self) -> None:
        (m00, m01, m02), (m10, m11, m12) = self.matrix
        det = m00 * m11 - m01 * m10
        if det == 0:
            self.inverse_matrix = None
            return

        self.inverse_matrix = np.array(
            [
                [m11 / det, -m01 / det, (m01 * m12 - m02 * m11) / det],
                [-m10 / det, m00 / det, (m02 * m10 - m00 * m12) / det],
            ],
            dtype=np.float64,
        )

    @property
    def is_invertible(self) -> bool:
        return self.inverse_matrix is not None

    def fit(self, matches: Sequence[PointMatch]) -> None:
        """Weighted least-squares fit mapping p1.local onto p2.world.

        Raises:
            FeatureAlignNotEnoughDataPointsException: If fewer than 3 matches
            FeatureAlignIllDefinedDataPointsException: If the points are collinear
        """
        if len(matches) < self.MIN_NUM_MATCHES:
            raise FeatureAlignNotEnoughDataPointsException(
                f"{len(matches)} data points are not enough to estimate a 2d affine model, "
                f"at least {self.MIN_NUM_MATCHES} data points required."
            )

        p = np.array([m.p1.local for m in matches], dtype=np.float64)
        q = np.array([m.p2.world for m in matches], dtype=np.float64)
        w = np.array([m.weight for m in matches], dtype=np.float64)

        ws = w.sum()
        pc = (w[:, None] * p).sum(axis=0) / ws
        qc = (w[:, None] * q).sum(axis=0) / ws
        p = p - pc
        q = q - qc

        a00 = np.sum(w * p[:, 0] * p[:, 0])
        a01 = np.sum(w * p[:, 0] * p[:, 1])
        a11 = np.sum(w * p[:, 1] * p[:, 1])
        b00 = np.sum(w * p[:, 0] * q[:, 0])
        b01 = np.sum(w * p[:, 0] * q[:, 1])
        b10 = np.sum(w * p[:, 1] * q[:, 0])
        b11 = np.sum(w * p[:, 1] * q[:, 1])

        det = a00 * a11 - a01 * a01
        if det == 0:
            raise FeatureAlignIllDefinedDataPointsException(
                "Point matches do not define a unique affine model"
            )

        m00 = (a11 * b00 - a01 * b10) / det
        m01 = (a00 * b10 - a01 * b00) / det
        m10 = (a11 * b01 - a01 * b11) / det
        m11 = (a00 * b11 - a01 * b01) / det
        m02 = qc[0] - m00 * pc[0] - m01 * pc[1]
        m12 = qc[1] - m10 * pc[0] - m11 * pc[1]
        self.set(m00, m10, m01, m11, m02, m12)

    def apply(self, location: Sequence[float]) -> tuple[float, float]:
        (m00, m01, m02), (m10, m11, m12) = self.matrix
        x, y = location[0], location[1]
        return (m00 * x + m01 * y + m02, m10 * x + m11 * y + m12)

    def apply_in_place(self, location: list[float]) -> None:
        location[0], location[1] = self.apply(location)

    def apply_inverse(self, location: Sequence[float]) -> tuple[float, float]:
        if self.inverse_matrix is None:
            raise FeatureAlignNoninvertibleModelException(
                f"Model {self} is not invertible"
            )
        (i00, i01, i02), (i10, i11, i12) = self.inverse_matrix
        x, y = location[0], location[1]
        return (i00 * x + i01 * y + i02, i10 * x + i11 * y + i12)

    def apply_inverse_in_place(self, location: list[float]) -> None:
        location[0], location[1] = self.apply_inverse(location)

    def apply_array(self, points: np.ndarray) -> np.ndarray:
        return points @ self.matrix[:, :2].T + self.matrix[:, 2]

    def apply_inverse_array(self, points: np.ndarray) -> np.ndarray:
        if self.inverse_matrix is None:
            raise FeatureAlignNoninvertibleModelException(
                f"Model {self} is not invertible"
            )
        return points @ self.inverse_matrix[:, :2].T + self.inverse_matrix[:, 2]

    def __repr__(self) -> str:
        (m00, m01, m02), (m10, m11, m12) = self.matrix
        return f"AffineModel2D([{m00}, {m01}, {m02}], [{m10}, {m11}, {m12}])"


class TranslationModel2D:
    """2-D translation by (tx, ty)."""

    MIN_NUM_MATCHES = 1

    def __init__(self, tx: float = 0.0, ty: float = 0.0) -> None:
        self.tx = float(tx)
        self.ty = float(ty)

    def fit(self, matches: Sequence[PointMatch]) -> None:
        """Weighted mean displacement from p1.local to p2.world."""
        if len(matches) < self.MIN_NUM_MATCHES:
            raise FeatureAlignNotEnoughDataPointsException(
                "At least one data point is required to estimate a translation."
            )
        p = np.array([m.p1.local for m in matches], dtype=np.float64)
        q = np.array([m.p2.world for m in matches], dtype=np.float64)
        w = np.array([m.weight for m in matches], dtype=np.float64)
        self.tx, self.ty = ((q - p) * w[:, None]).sum(axis=0) / w.sum()

    def apply(self, location: Sequence[float]) -> tuple[float, float]:
        return (location[0] + self.tx, location[1] + self.ty)

    def apply_in_place(self, location: list[float]) -> None:
        location[0] += self.tx
        location[1] += self.ty

    def apply_inverse(self, location: Sequence[float]) -> tuple[float, float]:
        return (location[0] - self.tx, location[1] - self.ty)

    def apply_inverse_in_place(self, location: list[float]) -> None:
        location[0] -= self.tx
        location[1] -= self.ty

    def apply_array(self, points: np.ndarray) -> np.ndarray:
        return points + (self.tx, self.ty)

    def apply_inverse_array(self, points: np.ndarray) -> np.ndarray:
        return points - (self.tx, self.ty)

    def __repr__(self) -> str:
        return f"TranslationModel2D({self.tx}, {self.ty})"


class CoordinateTransformList:
    """Transforms applied one after the other in insertion order."""

    def __init__(self, transforms: Sequence[CoordinateTransform] = ()) -> None:
        self.transforms = list(transforms)

    def add(self, transform: CoordinateTransform) -> None:
        self.transforms.append(transform)

    def apply(self, location: Sequence[float]) -> tuple[float, float]:
        current = (location[0], location[1])
        for transform in self.transforms:
            current = transform.apply(current)
        return current

    def apply_in_place(self, location: list[float]) -> None:
        location[0], location[1] = self.apply(location)

    def apply_inverse(self, location: Sequence[float]) -> tuple[float, float]:
        current = (location[0], location[1])
        for transform in reversed(self.transforms):
            current = transform.apply_inverse(current)
        return current

    def apply_inverse_in_place(self, location: list[float]) -> None:
        location[0], location[1] = self.apply_inverse(location)

    def apply_array(self, points: np.ndarray) -> np.ndarray:
        for transform in self.transforms:
            points = apply_to_points(transform, points)
        return points
