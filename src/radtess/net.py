"""Tessellation net: the power vertices of the contact facets.

Every tetrahedron of the regular triangulation is dual to a vertex of the
power diagram, the point with equal power to its four spheres. Vertices with
non-positive power lie inside all four spheres; these are the corners where
contact facets meet.
"""

from __future__ import annotations

from dataclasses import dataclass

import warnings

import numpy as np

from .power_diagram import PowerDiagram


@dataclass(frozen=True, slots=True)
class TessellationVertex:
    """Power vertex shared by four spheres.

    Attributes:
        ids: Sorted input indices of the four generator spheres (an index may
            repeat in periodic mode).
        position: Vertex coordinates.
        dist_min: Smallest signed distance from the vertex to the generator
            sphere surfaces (negative inside a sphere).
        dist_max: Largest such distance.
    """

    ids: tuple[int, int, int, int]
    position: tuple[float, float, float]
    dist_min: float
    dist_max: float


def power_vertex(centers: np.ndarray, radii: np.ndarray) -> np.ndarray | None:
    """Point of equal power to four spheres, or None for a flat tetrahedron."""
    c = np.asarray(centers, dtype=np.float64)
    w = np.asarray(radii, dtype=np.float64) ** 2
    A = 2.0 * (c[1:] - c[0])
    rhs = (
        np.einsum('ij,ij->i', c[1:], c[1:])
        - float(np.dot(c[0], c[0]))
        - w[1:]
        + w[0]
    )
    scale = float(np.max(np.abs(A))) if A.size else 0.0
    if not scale > 0.0:
        return None
    det = float(np.linalg.det(A / scale))
    if abs(det) < 1e-12:
        return None
    return np.linalg.solve(A, rhs)


def build_net(diagram: PowerDiagram) -> tuple[TessellationVertex, ...]:
    """Collect the power vertices lying inside their generator spheres.

    Requires a diagram built with regular adjacency. Without a triangulation
    (overlap adjacency, or the qhull fallback) a RuntimeWarning is emitted and
    an empty tuple is returned. In periodic mode only vertices inside the
    primary box are returned, so each periodic vertex appears once.
    """
    tri = diagram.triangulation
    if tri is None:
        warnings.warn(
            'No regular triangulation is available; the tessellation net '
            'cannot be built and is returned empty.',
            RuntimeWarning,
            stacklevel=2,
        )
        return tuple()
    if tri.tetrahedra.size == 0:
        return tuple()

    images = diagram.images
    box = diagram.box
    out: list[TessellationVertex] = []
    for tet in tri.tetrahedra.tolist():
        idx = np.asarray(tet, dtype=np.int64)
        c = images.centers[idx]
        r = images.radii[idx]
        v = power_vertex(c, r)
        if v is None:
            continue
        dist = np.linalg.norm(c - v[None, :], axis=1)
        power = float(dist[0] * dist[0] - r[0] * r[0])
        if power > diagram.eps * float(r[0]):
            continue
        if box is not None:
            if not bool(box.contains(v)[0]):
                continue
        elif not all(images.is_primary(int(i)) for i in tet):
            continue
        ids = tuple(sorted(int(images.origin[i]) for i in tet))
        surf = dist - r
        out.append(
            TessellationVertex(
                ids=ids,  # type: ignore[arg-type]
                position=(float(v[0]), float(v[1]), float(v[2])),
                dist_min=float(np.min(surf)),
                dist_max=float(np.max(surf)),
            )
        )
    out.sort(key=lambda t: (t.ids, t.position))
    return tuple(out)
