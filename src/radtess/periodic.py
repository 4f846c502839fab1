"""Periodic images of the prepared spheres.

A periodic tessellation is computed on a finite, non-periodic set of spheres:
the primary spheres (wrapped into the box) plus every translated image whose
center lies within a halo around the box. The halo is wide enough that each
primary sphere sees every sphere that can overlap it or clip one of its
facets, so the part of the power diagram inside the primary spheres is exact.
"""

from __future__ import annotations

from dataclasses import dataclass
import itertools
import math

import warnings

import numpy as np

from .domains import PeriodicBox
from .spheres import WeightedSpheres


# Warn when a box is so small that every sphere needs this many images.
_IMAGES_PER_SPHERE_WARN = 1000


@dataclass(frozen=True, slots=True)
class ImageSet:
    """Spheres entering the power diagram.

    The first ``n_primary`` entries are the primary spheres in input order
    (``origin[i] == i`` and zero shift); translated images follow.

    Attributes:
        centers: Image centers, shape (m, 3).
        radii: Expanded radii, shape (m,).
        origin: Input index of the sphere each image was made from, shape (m,).
        shifts: Integer lattice shift of each image, shape (m, 3).
        n_primary: Number of primary spheres.
    """

    centers: np.ndarray
    radii: np.ndarray
    origin: np.ndarray
    shifts: np.ndarray
    n_primary: int

    def __len__(self) -> int:
        return int(self.centers.shape[0])

    def is_primary(self, i: int) -> bool:
        return int(i) < self.n_primary


def replicate(spheres: WeightedSpheres, box: PeriodicBox | None) -> ImageSet:
    """Build the image set for a (possibly periodic) sphere collection.

    Args:
        spheres: Prepared spheres.
        box: Periodic box, or None for the non-periodic identity image set.

    Returns:
        ImageSet whose primary part holds the spheres, wrapped into the box
        in periodic mode.
    """
    n = len(spheres)
    if box is None:
        return ImageSet(
            centers=spheres.centers,
            radii=spheres.radii,
            origin=np.arange(n, dtype=np.int64),
            shifts=np.zeros((n, 3), dtype=np.int64),
            n_primary=n,
        )

    wrapped = np.asarray(box.remap_cart(spheres.centers), dtype=np.float64)
    halo = 2.0 * spheres.max_radius
    L = box.lengths
    lo = np.asarray(box.low, dtype=np.float64) - halo
    hi = np.asarray(box.high, dtype=np.float64) + halo
    reach = [int(math.ceil(halo / float(L[axis]))) for axis in range(3)]

    centers = [wrapped]
    radii = [spheres.radii]
    origin = [np.arange(n, dtype=np.int64)]
    shifts = [np.zeros((n, 3), dtype=np.int64)]
    ranges = [range(-m, m + 1) for m in reach]
    for s in itertools.product(*ranges):
        if s == (0, 0, 0):
            continue
        shift = np.asarray(s, dtype=np.int64)
        moved = wrapped + shift.astype(np.float64) * L
        keep = np.all((moved >= lo[None, :]) & (moved <= hi[None, :]), axis=1)
        if not np.any(keep):
            continue
        idx = np.nonzero(keep)[0]
        centers.append(moved[idx])
        radii.append(spheres.radii[idx])
        origin.append(idx.astype(np.int64))
        shifts.append(np.broadcast_to(shift, (idx.size, 3)).copy())

    images = ImageSet(
        centers=np.ascontiguousarray(np.concatenate(centers, axis=0)),
        radii=np.concatenate(radii),
        origin=np.concatenate(origin),
        shifts=np.concatenate(shifts, axis=0),
        n_primary=n,
    )
    if n > 0 and len(images) > _IMAGES_PER_SPHERE_WARN * n:
        warnings.warn(
            f'The periodic box is small compared to the spheres: '
            f'{len(images)} periodic images were generated for {n} sphere(s). '
            'The computation may be slow and memory hungry.',
            RuntimeWarning,
            stacklevel=3,
        )
    return images
