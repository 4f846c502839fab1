"""Planar geometry of a radical facet: a disk clipped by half-planes.

A facet lives in its own 2D frame: the origin is the foot of the perpendicular
from the sphere centers to the radical plane, so the facet disk is centered at
the origin. Half-planes are given as lines ``(a, b, c)`` meaning
``a*u + b*v <= c`` with ``(a, b)`` a unit vector.

The clipped region is convex. Its boundary is stored as a counter-clockwise
sequence of straight pieces and circular arcs (or as the full circle), which is
enough to compute the exact area, the arc length and the solid angle the
region subtends from any point on the disk axis.
"""

from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Iterable

import numpy as np


_TWO_PI = 2.0 * math.pi

# Square containing the disk, in units of the disk radius.
_BOX_FACTOR = 1.5
# Consecutive pieces closer than this (relative to the radius) are joined
# without an arc.
_JOIN_TOL = 1e-10


@dataclass(frozen=True, slots=True)
class FacetContour:
    """Boundary of a clipped facet disk.

    Attributes:
        radius: Radius of the facet disk.
        segments: Straight pieces as ``(start, end)`` point pairs, shape (s, 2, 2).
        arcs: Circular arcs as ``(start_angle, sweep)`` rows, shape (k, 2).
            Sweeps are positive (counter-clockwise).
        full: True when the region is the whole disk (no segments, no arcs).
    """

    radius: float
    segments: np.ndarray
    arcs: np.ndarray
    full: bool = False

    @property
    def area(self) -> float:
        """Exact area of the region."""
        r = self.radius
        if self.full:
            return math.pi * r * r
        s = self.segments
        tri = 0.5 * float(
            np.sum(s[:, 0, 0] * s[:, 1, 1] - s[:, 0, 1] * s[:, 1, 0])
        )
        sec = 0.5 * r * r * float(np.sum(self.arcs[:, 1]))
        return tri + sec

    @property
    def arc_length(self) -> float:
        """Length of the circular part of the boundary."""
        if self.full:
            return _TWO_PI * self.radius
        return self.radius * float(np.sum(self.arcs[:, 1]))

    def solid_angle(self, height: float) -> float:
        """Signed solid angle subtended by the region from ``(0, 0, height)``.

        The viewpoint lies on the disk axis at signed distance ``height`` from
        the plane. The result has the sign of ``height`` and is 0 for a
        viewpoint in the plane.

        Straight pieces contribute a triangle with apex at the disk center
        (Van Oosterom and Strackee formula); arcs contribute a sector of the
        spherical cap over the disk.
        """
        h = float(height)
        if h == 0.0:
            return 0.0
        r = self.radius
        ah = abs(h)
        sgn = 1.0 if h > 0.0 else -1.0
        cap = 1.0 - ah / math.sqrt(h * h + r * r)
        if self.full:
            return sgn * _TWO_PI * cap

        total = sgn * cap * float(np.sum(self.arcs[:, 1]))
        s = self.segments
        if s.shape[0]:
            p = s[:, 0, :]
            q = s[:, 1, :]
            b = np.sqrt(np.einsum('ij,ij->i', p, p) + h * h)
            c = np.sqrt(np.einsum('ij,ij->i', q, q) + h * h)
            num = h * (p[:, 0] * q[:, 1] - p[:, 1] * q[:, 0])
            den = (
                ah * b * c
                + h * h * (b + c)
                + (np.einsum('ij,ij->i', p, q) + h * h) * ah
            )
            total += 2.0 * float(np.sum(np.arctan2(num, den)))
        return total


def _clip_polygon(poly: list[tuple[float, float]], a: float, b: float, c: float) -> list[tuple[float, float]]:
    """Sutherland-Hodgman step: keep the part of ``poly`` with a*u + b*v <= c."""
    out: list[tuple[float, float]] = []
    m = len(poly)
    for i in range(m):
        p = poly[i]
        q = poly[(i + 1) % m]
        fp = a * p[0] + b * p[1] - c
        fq = a * q[0] + b * q[1] - c
        if fp <= 0.0:
            out.append(p)
        if (fp < 0.0 < fq) or (fq < 0.0 < fp):
            t = fp / (fp - fq)
            out.append((p[0] + t * (q[0] - p[0]), p[1] + t * (q[1] - p[1])))
    return out


def _inside_circle_pieces(poly: list[tuple[float, float]], r: float) -> list[tuple[tuple[float, float], tuple[float, float]]]:
    """Parts of the polygon edges lying inside the circle, in boundary order."""
    r2 = r * r
    pieces = []
    m = len(poly)
    for i in range(m):
        p = poly[i]
        q = poly[(i + 1) % m]
        dx = q[0] - p[0]
        dy = q[1] - p[1]
        A = dx * dx + dy * dy
        if A == 0.0:
            continue
        B = 2.0 * (p[0] * dx + p[1] * dy)
        C = p[0] * p[0] + p[1] * p[1] - r2
        disc = B * B - 4.0 * A * C
        if disc <= 0.0:
            continue
        sq = math.sqrt(disc)
        t0 = max((-B - sq) / (2.0 * A), 0.0)
        t1 = min((-B + sq) / (2.0 * A), 1.0)
        if not t1 > t0:
            continue
        start = p if t0 == 0.0 else (p[0] + t0 * dx, p[1] + t0 * dy)
        end = q if t1 == 1.0 else (p[0] + t1 * dx, p[1] + t1 * dy)
        pieces.append((start, end))
    return pieces


def full_disk(radius: float) -> FacetContour:
    return FacetContour(
        radius=float(radius),
        segments=np.zeros((0, 2, 2), dtype=np.float64),
        arcs=np.zeros((0, 2), dtype=np.float64),
        full=True,
    )


def clip_disk(radius: float, lines: Iterable[tuple[float, float, float]]) -> FacetContour | None:
    """Intersect the disk of ``radius`` centered at the origin with half-planes.

    Args:
        radius: Disk radius.
        lines: Half-planes ``(a, b, c)`` meaning ``a*u + b*v <= c``. ``(a, b)``
            need not be normalized; a line with ``(a, b) == (0, 0)`` either
            keeps everything (``c >= 0``) or nothing.

    Returns:
        The contour of the clipped region, or None if the region is empty.
    """
    r = float(radius)
    if not r > 0.0:
        return None

    half = _BOX_FACTOR * r
    poly = [(-half, -half), (half, -half), (half, half), (-half, half)]
    clipped = False
    for a, b, c in lines:
        norm = math.hypot(a, b)
        if norm == 0.0:
            if c < 0.0:
                return None
            continue
        a, b, c = a / norm, b / norm, c / norm
        if c >= r:
            continue
        if c <= -r:
            return None
        poly = _clip_polygon(poly, a, b, c)
        clipped = True
        if len(poly) < 3:
            return None

    if not clipped:
        return full_disk(r)

    pieces = _inside_circle_pieces(poly, r)
    if not pieces:
        # The polygon boundary misses the open disk: the disk is either inside
        # the polygon or outside it.
        if _contains_origin(poly):
            return full_disk(r)
        return None

    tol = _JOIN_TOL * r
    segments = []
    arcs = []
    k = len(pieces)
    for i in range(k):
        start, end = pieces[i]
        segments.append((start, end))
        nxt = pieces[(i + 1) % k][0]
        if math.hypot(nxt[0] - end[0], nxt[1] - end[1]) <= tol:
            continue
        a0 = math.atan2(end[1], end[0])
        a1 = math.atan2(nxt[1], nxt[0])
        sweep = (a1 - a0) % _TWO_PI
        if sweep > 0.0:
            arcs.append((a0, sweep))

    contour = FacetContour(
        radius=r,
        segments=np.asarray(segments, dtype=np.float64).reshape((-1, 2, 2)),
        arcs=np.asarray(arcs, dtype=np.float64).reshape((-1, 2)),
    )
    if not contour.area > 0.0:
        return None
    return contour


def _contains_origin(poly: list[tuple[float, float]]) -> bool:
    m = len(poly)
    for i in range(m):
        p = poly[i]
        q = poly[(i + 1) % m]
        # Counter-clockwise polygon: the origin must be on the left of every edge.
        if p[0] * q[1] - p[1] * q[0] < 0.0:
            return False
    return True
