"""Radical facets of the power diagram of probe-expanded spheres.

A facet is the part of the radical plane between two overlapping spheres that
lies inside both spheres and inside both power cells. It is computed as the
disk cut from the plane by the spheres, clipped by the half-planes of every
third sphere that is adjacent to both and overlaps both.

Adjacency comes from the regular triangulation (``adjacency='regular'``) or,
for cross-checking, from plain sphere overlap (``adjacency='overlap'``). Both
give the same facets; the triangulation only prunes clipping candidates.
"""

from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Literal

import warnings

import numpy as np
from scipy.spatial import QhullError, cKDTree

from ._util import geometric_eps, length_scale, orient_frame
from .contour import FacetContour, clip_disk
from .domains import PeriodicBox
from .periodic import ImageSet, replicate
from .spheres import WeightedSpheres
from .triangulation import RegularTriangulation
from .validation import validate_choice


Adjacency = Literal['regular', 'overlap']

# Relative tolerance for rank and extreme-ray tests on the cone of tied planes.
_CONE_TOL = 1e-10


@dataclass(frozen=True, slots=True)
class RadicalFacet:
    """One facet between sphere images ``a`` (primary) and ``b``.

    Attributes:
        a: Image index of the primary sphere.
        b: Image index of the other sphere.
        index_a: Input index of ``a``.
        index_b: Input index of ``b`` (equal to ``index_a`` for a facet
            between a sphere and its own periodic image).
        normal: Unit vector from the center of ``a`` to the center of ``b``.
        t_a: Signed distance from the center of ``a`` to the plane along
            ``normal``.
        t_b: Signed distance from the center of ``b`` to the plane along
            ``-normal``.
        origin: Disk center (foot of the perpendicular) in Cartesian
            coordinates.
        e1: First in-plane axis of the contour frame.
        e2: Second in-plane axis; ``e1 x e2 == normal``.
        contour: Clipped disk in the ``(e1, e2)`` frame.
    """

    a: int
    b: int
    index_a: int
    index_b: int
    normal: np.ndarray
    t_a: float
    t_b: float
    origin: np.ndarray
    e1: np.ndarray
    e2: np.ndarray
    contour: FacetContour

    @property
    def area(self) -> float:
        return self.contour.area


@dataclass(frozen=True, slots=True)
class PowerDiagram:
    """Facets and per-sphere data of a power diagram.

    Attributes:
        spheres: The prepared spheres.
        box: Periodic box or None.
        images: Spheres that entered the diagram (primaries first).
        active: Boolean mask over images: False for dominated or zero-radius
            spheres, which take part in nothing.
        facets: Facets in deterministic order (by ``a``, then ``b``).
        center_fraction: Per input sphere, the fraction of directions around
            its center that point into its own cell (1 inside, 0 outside).
        dominated: Per input sphere, True if it coincides with a sphere that
            wins the tie.
        triangulation: Regular triangulation over the images, or None when
            overlap adjacency was used.
        eps: Tolerance used to snap plane offsets to zero.
    """

    spheres: WeightedSpheres
    box: PeriodicBox | None
    images: ImageSet
    active: np.ndarray
    facets: tuple[RadicalFacet, ...]
    center_fraction: np.ndarray
    dominated: np.ndarray
    triangulation: RegularTriangulation | None
    eps: float


def plane_offset(d: float, ra: float, rb: float, eps: float = 0.0) -> float:
    """Signed distance from the first center to the radical plane.

    ``t = (d^2 + ra^2 - rb^2) / 2d``; values within ``eps`` of zero are
    snapped to 0.
    """
    t = (d * d + ra * ra - rb * rb) / (2.0 * d)
    if abs(t) <= eps:
        return 0.0
    return t


def find_dominated(images: ImageSet, tol: float) -> np.ndarray:
    """Mark input spheres whose center coincides with a winning sphere.

    Of two spheres with coincident centers, the one with the larger radius
    wins; for equal radii the lower input index wins. The loser's cell is
    empty.
    """
    n = images.n_primary
    dominated = np.zeros(n, dtype=bool)
    if len(images) < 2 or n == 0:
        return dominated
    tree = cKDTree(images.centers)
    pairs = tree.query_pairs(tol, output_type='ndarray')
    for i, j in pairs.tolist():
        oi = int(images.origin[i])
        oj = int(images.origin[j])
        if oi == oj:
            continue
        ri = float(images.radii[i])
        rj = float(images.radii[j])
        if ri > rj or (ri == rj and oi < oj):
            dominated[oj] = True
        else:
            dominated[oi] = True
    return dominated


def _overlap_neighbors(images: ImageSet, active: np.ndarray) -> list[set[int]]:
    """Per image, the active images whose spheres overlap it (d < Ra + Rb)."""
    m = len(images)
    neigh: list[set[int]] = [set() for _ in range(m)]
    idx = np.nonzero(active)[0]
    if idx.size < 2:
        return neigh
    rmax = float(np.max(images.radii[idx]))
    tree = cKDTree(images.centers[idx])
    pairs = tree.query_pairs(2.0 * rmax, output_type='ndarray')
    if pairs.size == 0:
        return neigh
    i = idx[pairs[:, 0]]
    j = idx[pairs[:, 1]]
    d = np.linalg.norm(images.centers[j] - images.centers[i], axis=1)
    keep = d < images.radii[i] + images.radii[j]
    for a, b in zip(i[keep].tolist(), j[keep].tolist()):
        neigh[a].add(b)
        neigh[b].add(a)
    return neigh


def _is_canonical(images: ImageSet, a: int, b: int) -> bool:
    """True if facet (a, b) is the representative of its periodic orbit."""
    if not images.is_primary(a):
        return False
    ob = int(images.origin[b])
    if ob != a:
        return ob > a
    return tuple(int(v) for v in images.shifts[b]) > (0, 0, 0)


def _build_facet(
    images: ImageSet, a: int, b: int, clip: list[int], eps: float
) -> RadicalFacet | None:
    ca = images.centers[a]
    cb = images.centers[b]
    ra = float(images.radii[a])
    rb = float(images.radii[b])
    delta = cb - ca
    d = float(np.linalg.norm(delta))
    if not d > 0.0:
        return None
    n = delta / d
    t_a = plane_offset(d, ra, rb, eps)
    rho2 = ra * ra - t_a * t_a
    if not rho2 > 0.0:
        return None
    rho = math.sqrt(rho2)
    e1, e2 = orient_frame(n)

    lines = []
    for k in clip:
        dk = images.centers[k] - ca
        rk = float(images.radii[k])
        rhs = float(np.dot(dk, dk)) - rk * rk + ra * ra - 2.0 * t_a * float(np.dot(n, dk))
        lines.append((2.0 * float(np.dot(e1, dk)), 2.0 * float(np.dot(e2, dk)), rhs))

    contour = clip_disk(rho, lines)
    if contour is None:
        return None
    t_b = plane_offset(d, rb, ra, eps)
    return RadicalFacet(
        a=int(a),
        b=int(b),
        index_a=int(images.origin[a]),
        index_b=int(images.origin[b]),
        normal=n,
        t_a=t_a,
        t_b=t_b,
        origin=ca + t_a * n,
        e1=e1,
        e2=e2,
        contour=contour,
    )


def _wedge_angle(normals: np.ndarray) -> float:
    """Opening angle of the planar cone {v : v . m_k <= 0}, normals (k, 2)."""
    phi = np.arctan2(normals[:, 1], normals[:, 0])
    cuts = np.sort(
        np.mod(np.concatenate([phi + 0.5 * math.pi, phi - 0.5 * math.pi]), 2.0 * math.pi)
    )
    ends = np.append(cuts[1:], cuts[0] + 2.0 * math.pi)
    total = 0.0
    for lo, hi in zip(cuts.tolist(), ends.tolist()):
        if not hi > lo:
            continue
        mid = 0.5 * (lo + hi)
        if np.all(normals @ np.array([math.cos(mid), math.sin(mid)]) < 0.0):
            total += hi - lo
    return total


def _cone_fraction(normals: np.ndarray) -> float:
    """Fraction of all directions in the cone {u : u . n_k <= 0}.

    ``normals`` are unit vectors of shape (k, 3). When they span fewer than
    three dimensions the cone is a wedge around their common line. Otherwise
    the cone is pointed: its extreme rays are cross products of normal pairs,
    and its solid angle is a fan of spherical triangles around the mean ray
    (Van Oosterom and Strackee formula).
    """
    n = np.asarray(normals, dtype=np.float64).reshape((-1, 3))
    if n.shape[0] == 0:
        return 1.0
    _, s, vt = np.linalg.svd(n)
    if int(np.count_nonzero(s > _CONE_TOL * s[0])) < 3:
        return _wedge_angle(n @ vt[:2].T) / (2.0 * math.pi)

    rays: list[np.ndarray] = []
    m = n.shape[0]
    for i in range(m):
        for j in range(i + 1, m):
            c = np.cross(n[i], n[j])
            norm = float(np.linalg.norm(c))
            if not norm > _CONE_TOL:
                continue
            c = c / norm
            for r in (c, -c):
                if not np.all(n @ r <= _CONE_TOL):
                    continue
                if any(float(np.dot(r, q)) > 1.0 - _CONE_TOL for q in rays):
                    continue
                rays.append(r)
    if len(rays) < 3:
        return 0.0

    axis = np.sum(rays, axis=0)
    length = float(np.linalg.norm(axis))
    if not length > _CONE_TOL:
        return 0.0
    axis = axis / length
    e1, e2 = orient_frame(axis)
    R = np.asarray(rays)
    R = R[np.argsort(np.arctan2(R @ e2, R @ e1))]
    Q = np.roll(R, -1, axis=0)
    triple = np.cross(R, Q) @ axis
    den = 1.0 + R @ axis + Q @ axis + np.einsum('ij,ij->i', R, Q)
    omega = 2.0 * float(np.sum(np.arctan2(np.abs(triple), den)))
    return omega / (4.0 * math.pi)


def _center_fraction(images: ImageSet, a: int, neigh: set[int], eps: float) -> float:
    ca = images.centers[a]
    ra = float(images.radii[a])
    ties = []
    for k in sorted(neigh):
        delta = images.centers[k] - ca
        d = float(np.linalg.norm(delta))
        t = plane_offset(d, ra, float(images.radii[k]), eps)
        if t < 0.0:
            return 0.0
        if t == 0.0:
            ties.append(delta / d)
    if not ties:
        return 1.0
    if len(ties) == 1:
        return 0.5
    if len(ties) == 2:
        cos = float(np.clip(np.dot(ties[0], ties[1]), -1.0, 1.0))
        return (math.pi - math.acos(cos)) / (2.0 * math.pi)
    return _cone_fraction(np.asarray(ties))


def build_power_diagram(
    spheres: WeightedSpheres,
    box: PeriodicBox | None = None,
    *,
    adjacency: Adjacency = 'regular',
) -> PowerDiagram:
    """Compute the radical facets of the spheres.

    Args:
        spheres: Prepared (probe-expanded) spheres.
        box: Optional periodic box.
        adjacency: ``'regular'`` to take clipping candidates from the regular
            triangulation, or ``'overlap'`` to use every overlapping sphere.

    Returns:
        PowerDiagram with one facet per canonical overlapping pair whose
        clipped disk has a positive area.

    Notes:
        If qhull fails on a degenerate input, a RuntimeWarning is emitted and
        overlap adjacency is used instead.
    """
    validate_choice('adjacency', adjacency, ('regular', 'overlap'))
    images = replicate(spheres, box)
    n = images.n_primary
    scale = length_scale(images.centers[:n], images.radii[:n], box)
    eps = geometric_eps(scale)

    dominated = find_dominated(images, eps)
    active = images.radii > 0.0
    if n:
        active &= ~dominated[images.origin]

    neigh = _overlap_neighbors(images, active)

    tri: RegularTriangulation | None = None
    if adjacency == 'regular':
        try:
            tri = RegularTriangulation.from_spheres(
                images.centers, images.radii, active=active
            )
        except QhullError as e:
            warnings.warn(
                f'Regular triangulation failed ({e.__class__.__name__}); '
                'falling back to overlap adjacency.',
                RuntimeWarning,
                stacklevel=2,
            )
            tri = None

    def adjacent(i: int) -> set[int]:
        if tri is None:
            return neigh[i]
        return neigh[i].intersection(tri.neighbors(i).tolist())

    facets: list[RadicalFacet] = []
    for a in range(n):
        if not active[a]:
            continue
        adj_a = adjacent(a)
        for b in sorted(adj_a):
            if not _is_canonical(images, a, b):
                continue
            clip = sorted(adj_a.intersection(adjacent(b)))
            facet = _build_facet(images, a, b, clip, eps)
            if facet is not None:
                facets.append(facet)

    fraction = np.zeros(n, dtype=np.float64)
    for a in range(n):
        if active[a]:
            fraction[a] = _center_fraction(images, a, neigh[a], eps)

    return PowerDiagram(
        spheres=spheres,
        box=box,
        images=images,
        active=active,
        facets=tuple(facets),
        center_fraction=fraction,
        dominated=dominated,
        triangulation=tri,
        eps=eps,
    )
