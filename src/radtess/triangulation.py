"""Regular (weighted Delaunay) triangulation of spheres.

The regular triangulation is the dual of the power diagram. It is computed as
the lower convex hull of the lifted points ``(x, y, z, |x|^2 - R^2)`` in 4D.

Eight weight-zero points at the corners of a large cube are added before the
hull is computed. They keep the hull full-dimensional for any input (a single
sphere, coplanar or collinear centers) and lie outside every sphere, so the
power diagram inside the spheres is unchanged. Edges and tetrahedra touching
them are dropped from the result.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from scipy.spatial import ConvexHull


# Half-size of the bounding cube in normalized coordinates (input is scaled
# into [-1, 1] with radii <= 1/2).
_BOUND = 4.0

# Facets of the 4D hull whose normal has a w-component below -_LOWER_TOL are
# lower facets.
_LOWER_TOL = 1e-12

_CUBE = np.array(
    [
        (sx, sy, sz)
        for sx in (-_BOUND, _BOUND)
        for sy in (-_BOUND, _BOUND)
        for sz in (-_BOUND, _BOUND)
    ],
    dtype=np.float64,
)

_TET_EDGES = ((0, 1), (0, 2), (0, 3), (1, 2), (1, 3), (2, 3))


@dataclass(frozen=True, slots=True)
class RegularTriangulation:
    """Regular triangulation of a set of weighted points.

    Attributes:
        n_points: Number of triangulated spheres.
        tetrahedra: Index quadruples of the tetrahedra, shape (k, 4), each row
            sorted ascending.
        edges: Unique edges ``(i, j)`` with ``i < j``, shape (e, 2), sorted
            lexicographically.
        indptr: CSR row pointer for :meth:`neighbors`.
        indices: CSR column indices for :meth:`neighbors`.
    """

    n_points: int
    tetrahedra: np.ndarray
    edges: np.ndarray
    indptr: np.ndarray
    indices: np.ndarray

    def neighbors(self, i: int) -> np.ndarray:
        """Sorted indices of the points sharing an edge with point ``i``."""
        return self.indices[self.indptr[i] : self.indptr[i + 1]]

    def edge_set(self) -> set[tuple[int, int]]:
        return {(int(a), int(b)) for a, b in self.edges.tolist()}

    @classmethod
    def from_spheres(
        cls,
        centers: np.ndarray,
        radii: np.ndarray,
        *,
        active: np.ndarray | None = None,
    ) -> 'RegularTriangulation':
        """Triangulate spheres with the given centers and radii.

        Args:
            centers: Sphere centers, shape (m, 3).
            radii: Sphere radii, shape (m,).
            active: Optional boolean mask. Inactive spheres are left out and
                have no neighbors.

        Raises:
            scipy.spatial.QhullError: If qhull fails on the lifted points.
        """
        centers = np.asarray(centers, dtype=np.float64).reshape((-1, 3))
        radii = np.asarray(radii, dtype=np.float64).reshape((-1,))
        m = int(centers.shape[0])
        if active is None:
            sel = np.arange(m, dtype=np.int64)
        else:
            sel = np.nonzero(np.asarray(active, dtype=bool))[0]

        k = int(sel.size)
        if k < 2:
            return cls._from_simplices(m, np.zeros((0, 4), dtype=np.int64))

        pts = centers[sel]
        rad = radii[sel]
        mid = 0.5 * (np.min(pts, axis=0) + np.max(pts, axis=0))
        ext = float(np.max(np.max(pts, axis=0) - np.min(pts, axis=0)))
        scale = max(0.5 * ext, 2.0 * float(np.max(rad)))
        if not scale > 0.0:
            scale = 1.0
        q = (pts - mid[None, :]) / scale
        rq = rad / scale

        lifted = np.empty((k + _CUBE.shape[0], 4), dtype=np.float64)
        lifted[:k, :3] = q
        lifted[:k, 3] = np.einsum('ij,ij->i', q, q) - rq * rq
        lifted[k:, :3] = _CUBE
        lifted[k:, 3] = np.einsum('ij,ij->i', _CUBE, _CUBE)

        hull = ConvexHull(lifted, qhull_options='Qt Qbb Qc')
        lower = hull.equations[:, 3] < -_LOWER_TOL
        simplices = np.asarray(hull.simplices[lower], dtype=np.int64)

        # Map back to caller indices; bounding points become -1.
        lookup = np.full(lifted.shape[0], -1, dtype=np.int64)
        lookup[:k] = sel
        return cls._from_simplices(m, lookup[simplices])

    @classmethod
    def _from_simplices(cls, m: int, simplices: np.ndarray) -> 'RegularTriangulation':
        if simplices.size:
            real = np.all(simplices >= 0, axis=1)
            tets = np.sort(simplices[real], axis=1)
            tets = np.unique(tets, axis=0) if tets.size else tets.reshape((0, 4))

            pairs = np.concatenate(
                [simplices[:, [p, q]] for p, q in _TET_EDGES], axis=0
            )
            pairs = pairs[np.all(pairs >= 0, axis=1)]
            pairs = np.sort(pairs, axis=1)
            pairs = pairs[pairs[:, 0] != pairs[:, 1]]
            edges = np.unique(pairs, axis=0) if pairs.size else pairs.reshape((0, 2))
        else:
            tets = np.zeros((0, 4), dtype=np.int64)
            edges = np.zeros((0, 2), dtype=np.int64)

        both = np.concatenate([edges, edges[:, ::-1]], axis=0)
        order = np.lexsort((both[:, 1], both[:, 0]))
        both = both[order]
        counts = np.bincount(both[:, 0], minlength=m) if both.size else np.zeros(m, dtype=np.int64)
        indptr = np.zeros(m + 1, dtype=np.int64)
        indptr[1:] = np.cumsum(counts)
        return cls(
            n_points=m,
            tetrahedra=tets.astype(np.int64, copy=False),
            edges=edges.astype(np.int64, copy=False),
            indptr=indptr,
            indices=both[:, 1].astype(np.int64, copy=True),
        )
