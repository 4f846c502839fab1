"""Internal shared helpers.

This module exists to avoid duplicating small pieces of numeric policy across
`power_diagram` and `api`.
"""

from __future__ import annotations

import numpy as np

from .domains import PeriodicBox


def length_scale(centers: np.ndarray, radii: np.ndarray, box: PeriodicBox | None = None) -> float:
    """Return a characteristic length scale of the input.

    The value is used for heuristic tolerances and scale warnings.
    It is **not** guaranteed to be a rigorous bound on any geometric quantity.
    """

    L = 0.0
    if centers.shape[0] > 0:
        ext = np.max(centers, axis=0) - np.min(centers, axis=0)
        L = float(np.max(ext))
        if radii.size:
            L = max(L, 2.0 * float(np.max(radii)))
    if box is not None:
        L = max(L, float(np.max(box.lengths)))
    return L if np.isfinite(L) else 0.0


def geometric_eps(scale: float, *, rel: float = 1e-10) -> float:
    """Scale-relative tolerance for incidence tests (tangency, ties).

    Like the remap snapping epsilon it has no absolute floor: for a zero scale
    every comparison becomes exact.
    """

    s = float(scale)
    if not np.isfinite(s) or s <= 0.0:
        return 0.0
    return float(rel * s)


def orient_frame(n: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Return two unit vectors ``(e1, e2)`` with ``e1 x e2 = n``.

    The choice depends only on ``n``, so the same plane always gets the same
    in-plane frame.
    """

    n = np.asarray(n, dtype=np.float64)
    # Pick the coordinate axis least aligned with n.
    k = int(np.argmin(np.abs(n)))
    helper = np.zeros(3, dtype=np.float64)
    helper[k] = 1.0
    e1 = np.cross(helper, n)
    e1 /= np.linalg.norm(e1)
    e2 = np.cross(n, e1)
    return e1, e2
