"""Per-sphere cell metrics: solvent-accessible area and volume.

The region of a sphere is the intersection of its (expanded) ball with its
power cell. Its boundary consists of the part of the sphere surface inside
the cell and of the sphere's facets, so with the facet solid angles ``Ω_k``
and the signed pyramid volumes ``V_k`` seen from the center:

    sas_area = R^2 * (4π f - Σ Ω_k)
    volume   = R * sas_area / 3 + Σ V_k

where ``f`` is the fraction of directions around the center pointing into
the cell (1 for a center strictly inside the cell).
"""

from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Sequence

import numpy as np

from .contacts import ContactDescriptor
from .power_diagram import PowerDiagram


@dataclass(frozen=True, slots=True)
class CellMetrics:
    sas_area: float
    volume: float


@dataclass(frozen=True, slots=True)
class Cell:
    """Cell of one input sphere.

    ``metrics`` is None when the sphere's region is empty (dominated
    spheres, zero radius, or a cell that misses the sphere).
    """

    index: int
    metrics: CellMetrics | None = None

    @property
    def included(self) -> bool:
        return self.metrics is not None

    @property
    def sas_area(self) -> float | None:
        return None if self.metrics is None else self.metrics.sas_area

    @property
    def volume(self) -> float | None:
        return None if self.metrics is None else self.metrics.volume


def compute_cells(
    diagram: PowerDiagram, descriptors: Sequence[ContactDescriptor]
) -> tuple[Cell, ...]:
    """Compute the SAS area and volume of every input sphere.

    Args:
        diagram: Power diagram of the spheres.
        descriptors: Facet descriptors from
            :func:`~radtess.contacts.describe_facets`, unfiltered.

    Returns:
        One :class:`Cell` per input sphere, in input order.
    """
    n = len(diagram.spheres)
    omega = np.zeros(n, dtype=np.float64)
    pyramid = np.zeros(n, dtype=np.float64)
    nfacets = np.zeros(n, dtype=np.int64)
    if descriptors:
        ia = np.fromiter((d.index_a for d in descriptors), dtype=np.int64)
        ib = np.fromiter((d.index_b for d in descriptors), dtype=np.int64)
        np.add.at(omega, ia, [d.solid_angle_a for d in descriptors])
        np.add.at(omega, ib, [d.solid_angle_b for d in descriptors])
        np.add.at(pyramid, ia, [d.volume_a for d in descriptors])
        np.add.at(pyramid, ib, [d.volume_b for d in descriptors])
        np.add.at(nfacets, ia, 1)
        np.add.at(nfacets, ib, 1)

    radii = diagram.spheres.radii
    cells = []
    for i in range(n):
        R = float(radii[i])
        f = float(diagram.center_fraction[i])
        if diagram.dominated[i] or not R > 0.0 or not (f > 0.0 or nfacets[i] > 0):
            cells.append(Cell(index=i))
            continue
        sas = max(R * R * (4.0 * math.pi * f - float(omega[i])), 0.0)
        vol = max(R * sas / 3.0 + float(pyramid[i]), 0.0)
        cells.append(Cell(index=i, metrics=CellMetrics(sas_area=sas, volume=vol)))
    return tuple(cells)
