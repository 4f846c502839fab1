"""Duplicate / near-duplicate center detection.

Spheres with coincident centers are legal: the engine keeps the one with the
larger radius (or the lower index) and drops the other. Such input is still
usually a mistake upstream, so this module provides an optional pre-check.

The check uses a k-d tree range query (``scipy.spatial.cKDTree``). In
periodic mode the centers are wrapped into the box first and distances use
the minimum-image convention.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

import warnings

import numpy as np
from scipy.spatial import cKDTree

from .domains import PeriodicBox


@dataclass(frozen=True, slots=True)
class DuplicatePair:
    i: int
    j: int
    distance: float


class DuplicateError(ValueError):
    """Raised when near-duplicate centers are detected."""

    def __init__(
        self, message: str, pairs: tuple[DuplicatePair, ...], threshold: float
    ):
        super().__init__(message)
        self.pairs = pairs
        self.threshold = float(threshold)


def duplicate_check(
    points: Any,
    *,
    threshold: float = 1e-5,
    box: PeriodicBox | None = None,
    mode: Literal['raise', 'warn', 'return'] = 'raise',
    max_pairs: int = 10,
) -> tuple[DuplicatePair, ...]:
    """Detect center pairs closer than an absolute threshold.

    Args:
        points: Array-like of shape (n, 3).
        threshold: Absolute distance threshold.
        box: Optional periodic box. If given, distances are measured between
            the closest periodic images.
        mode: Behavior when duplicates are found:
            - 'raise' (default): raise :class:`DuplicateError`
            - 'warn': emit a RuntimeWarning and return the pairs
            - 'return': return the pairs without warnings
        max_pairs: Maximum number of pairs to include in the report.

    Returns:
        Tuple of DuplicatePair records (possibly empty), sorted by ``(i, j)``.
    """

    if mode not in ('raise', 'warn', 'return'):
        raise ValueError('mode must be one of: \'raise\', \'warn\', \'return\'')

    thr = float(threshold)
    if not np.isfinite(thr) or thr <= 0:
        raise ValueError('threshold must be a positive finite number')
    max_pairs_i = int(max_pairs)
    if max_pairs_i <= 0:
        raise ValueError('max_pairs must be > 0')

    pts = np.asarray(points, dtype=np.float64)
    if pts.ndim != 2 or pts.shape[1] != 3:
        raise ValueError('points must have shape (n, 3)')
    if not np.all(np.isfinite(pts)):
        raise ValueError('points must contain only finite values')
    n = int(pts.shape[0])
    if n <= 1:
        return tuple()

    if box is not None:
        lo = np.asarray(box.low, dtype=np.float64)
        L = box.lengths
        local = np.asarray(box.remap_cart(pts), dtype=np.float64) - lo[None, :]
        # cKDTree requires coordinates in [0, L).
        local = np.where(local >= L[None, :], 0.0, np.maximum(local, 0.0))
        tree = cKDTree(local, boxsize=L)
    else:
        local = pts
        tree = cKDTree(local)

    pairs_arr = tree.query_pairs(thr, output_type='ndarray')
    if pairs_arr.size == 0:
        return tuple()
    pairs_arr = pairs_arr[np.lexsort((pairs_arr[:, 1], pairs_arr[:, 0]))]

    found: list[DuplicatePair] = []
    for i, j in pairs_arr.tolist():
        delta = local[j] - local[i]
        if box is not None:
            delta = box.minimum_image(delta)
        dist = float(np.linalg.norm(delta))
        # query_pairs is inclusive; the threshold is exclusive.
        if dist < thr:
            found.append(DuplicatePair(i=int(i), j=int(j), distance=dist))
            if len(found) == max_pairs_i:
                break

    pairs = tuple(found)
    if not pairs:
        return pairs

    msg = (
        f'Found {len(pairs)} center pair(s) closer than threshold={thr:g}. '
        'Coincident spheres are resolved by keeping the larger (or '
        'lower-index) sphere only.'
    )

    if mode == 'raise':
        raise DuplicateError(msg, pairs, thr)
    if mode == 'warn':
        warnings.warn(msg, RuntimeWarning, stacklevel=2)
    return pairs
