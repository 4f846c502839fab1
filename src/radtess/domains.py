"""Periodic box specification.

radtess supports two modes:
- non-periodic (no box): the tessellation of the spheres in open space
- periodic: an axis-aligned box repeated along x, y and z, given by two
  opposite corner points
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

import numpy as np

from .validation import InvalidGeometryError


def _default_snap_eps(L: float, *, rel: float = 1e-12) -> float:
    """Return a scale-relative snapping epsilon for remapping.

    The returned value scales with ``L`` and has **no** hard absolute floor.
    A small machine-epsilon-based lower bound keeps it from becoming
    numerically ineffective for typical floating-point ranges.
    """

    Lf = float(L)
    if not np.isfinite(Lf) or Lf <= 0.0:
        return 0.0
    epsf = float(np.finfo(float).eps)
    return float(max(rel * Lf, 64.0 * epsf * Lf))


@dataclass(frozen=True, slots=True)
class PeriodicBox:
    """Axis-aligned box repeated periodically along all three axes.

    Args:
        low: Lower corner (xmin, ymin, zmin).
        high: Upper corner (xmax, ymax, zmax).

    Notes:
        The primary domain uses a half-open convention:
        x in [xmin, xmax), etc.

    Raises:
        InvalidGeometryError: If corners are malformed or an axis is degenerate.
    """

    low: tuple[float, float, float]
    high: tuple[float, float, float]

    def __post_init__(self) -> None:
        if len(self.low) != 3 or len(self.high) != 3:
            raise InvalidGeometryError('box corners must have length 3')
        lo = tuple(float(v) for v in self.low)
        hi = tuple(float(v) for v in self.high)
        for a, b in zip(lo, hi):
            if not np.isfinite(a) or not np.isfinite(b):
                raise InvalidGeometryError('box corners must be finite')
            if not b > a:
                raise InvalidGeometryError(
                    'each box axis must have positive length (high > low)'
                )
        object.__setattr__(self, 'low', lo)
        object.__setattr__(self, 'high', hi)

    @classmethod
    def from_corners(cls, corners: Sequence[Sequence[float]] | np.ndarray) -> 'PeriodicBox':
        """Create a box from exactly two opposite corner points.

        The corners may be given in any order; per-axis bounds are the
        min/max of the two points.

        Raises:
            InvalidGeometryError: If the number of corners is not exactly 2,
                or the box has a zero-length axis.
        """
        try:
            pts = np.asarray(corners, dtype=np.float64)
        except (TypeError, ValueError) as e:
            raise InvalidGeometryError('box corners must be numeric points') from e
        if pts.ndim != 2 or pts.shape[0] != 2:
            n = pts.shape[0] if pts.ndim >= 1 else 0
            raise InvalidGeometryError(
                f'periodic box requires exactly 2 corner points, got {n}'
            )
        if pts.shape[1] != 3:
            raise InvalidGeometryError('box corners must be 3D points')
        lo = np.minimum(pts[0], pts[1])
        hi = np.maximum(pts[0], pts[1])
        return cls(
            low=(float(lo[0]), float(lo[1]), float(lo[2])),
            high=(float(hi[0]), float(hi[1]), float(hi[2])),
        )

    @property
    def lengths(self) -> np.ndarray:
        """Per-axis period lengths (Lx, Ly, Lz)."""
        return np.asarray(self.high, dtype=np.float64) - np.asarray(
            self.low, dtype=np.float64
        )

    @property
    def volume(self) -> float:
        return float(np.prod(self.lengths))

    def contains(self, points: np.ndarray) -> np.ndarray:
        """Boolean mask of points inside the half-open primary box."""
        pts = np.asarray(points, dtype=np.float64).reshape((-1, 3))
        lo = np.asarray(self.low, dtype=np.float64)
        hi = np.asarray(self.high, dtype=np.float64)
        return np.all((pts >= lo[None, :]) & (pts < hi[None, :]), axis=1)

    def minimum_image(self, delta: np.ndarray) -> np.ndarray:
        """Map displacement vectors to their minimum-image representatives."""
        d = np.asarray(delta, dtype=np.float64)
        L = self.lengths
        return d - L * np.rint(d / L)

    def remap_cart(self, points: np.ndarray) -> np.ndarray:
        """Remap Cartesian points into the primary box.

        Points are wrapped into the half-open interval [low, high) per axis.
        Coordinates within ``1e-12 * L`` of a face (L is the largest axis
        length) are snapped onto the lower face.

        Args:
            points: Array of shape (n, 3).

        Returns:
            Remapped coordinates, shape (n, 3).
        """
        pts = np.asarray(points, dtype=float)
        if pts.ndim != 2 or pts.shape[1] != 3:
            raise ValueError('points must have shape (n, 3)')

        L = self.lengths
        eps_val = _default_snap_eps(float(np.max(L)))
        out = pts.astype(np.float64, copy=True)

        for axis in range(3):
            lo = float(self.low[axis])
            hi = float(self.high[axis])
            La = float(L[axis])
            coord = out[:, axis]
            # Wrap into [lo, hi) using floor.
            coord -= np.floor((coord - lo) / La) * La

            if eps_val > 0.0:
                coord[np.abs(coord - lo) < eps_val] = lo
                coord[coord >= (hi - eps_val)] = lo
            out[:, axis] = coord

        return out


def as_periodic_box(value: Any) -> PeriodicBox | None:
    """Normalize the ``periodic_box`` argument.

    Accepts None (non-periodic), a :class:`PeriodicBox`, or a sequence of
    corner points. An empty sequence of corners means non-periodic mode.

    Raises:
        InvalidGeometryError: If a corner sequence does not hold exactly 2 points.
    """
    if value is None or isinstance(value, PeriodicBox):
        return value
    try:
        n = len(value)
    except TypeError as e:
        raise InvalidGeometryError(
            'periodic_box must be a PeriodicBox or a sequence of 2 corners'
        ) from e
    if n == 0:
        return None
    return PeriodicBox.from_corners(value)
