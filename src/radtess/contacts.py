"""Contact surfaces between spheres.

Each radical facet is described once (:class:`ContactDescriptor`), with the
quantities needed both for contacts and for the cells on either side. Contacts
are the facet areas summed per unordered pair of input spheres.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Literal

import numpy as np

from .power_diagram import PowerDiagram
from .validation import validate_choice


ContactFilter = Callable[[int, int], bool]
GroupPolicy = Literal['inter', 'intra']


@dataclass(frozen=True, slots=True)
class Contact:
    """Contact surface between two input spheres.

    ``index_a < index_b``, except for a sphere touching its own periodic
    image, where ``index_a == index_b``.
    """

    index_a: int
    index_b: int
    area: float
    arc_length: float


@dataclass(frozen=True, slots=True)
class ContactDescriptor:
    """Per-facet measures seen from both generator spheres.

    Attributes:
        index_a: Input index of the primary sphere of the facet.
        index_b: Input index of the other sphere.
        area: Facet area.
        arc_length: Length of the circular part of the facet boundary.
        solid_angle_a: Signed solid angle of the facet from the center of a.
        solid_angle_b: Signed solid angle of the facet from the center of b.
        volume_a: Signed volume of the pyramid from the center of a
            (``area * t_a / 3``).
        volume_b: Signed volume of the pyramid from the center of b.
    """

    index_a: int
    index_b: int
    area: float
    arc_length: float
    solid_angle_a: float
    solid_angle_b: float
    volume_a: float
    volume_b: float


def describe_facets(diagram: PowerDiagram) -> tuple[ContactDescriptor, ...]:
    """Return one descriptor per facet with a positive area."""
    out: list[ContactDescriptor] = []
    for f in diagram.facets:
        area = f.contour.area
        if not area > 0.0:
            continue
        out.append(
            ContactDescriptor(
                index_a=f.index_a,
                index_b=f.index_b,
                area=area,
                arc_length=f.contour.arc_length,
                solid_angle_a=f.contour.solid_angle(f.t_a),
                solid_angle_b=f.contour.solid_angle(f.t_b),
                volume_a=area * f.t_a / 3.0,
                volume_b=area * f.t_b / 3.0,
            )
        )
    return tuple(out)


def grouping_filter(
    groups: np.ndarray | None, policy: GroupPolicy = 'inter'
) -> ContactFilter | None:
    """Build a contact predicate from a per-sphere group vector.

    Args:
        groups: Group id per input sphere, or None for no filtering.
        policy: ``'inter'`` keeps contacts between different groups,
            ``'intra'`` keeps contacts within a group.
    """
    validate_choice('group_policy', policy, ('inter', 'intra'))
    if groups is None:
        return None
    g = np.asarray(groups, dtype=np.int64)
    if policy == 'inter':
        return lambda i, j: bool(g[i] != g[j])
    return lambda i, j: bool(g[i] == g[j])


def extract_contacts(
    descriptors: Iterable[ContactDescriptor],
    contact_filter: ContactFilter | None = None,
) -> tuple[Contact, ...]:
    """Aggregate facet descriptors into contacts.

    Facets between the same two input spheres (different periodic images)
    are summed. Zero-area pairs and pairs rejected by ``contact_filter`` are
    dropped. The result is sorted by ``(index_a, index_b)``.
    """
    area: dict[tuple[int, int], float] = {}
    arc: dict[tuple[int, int], float] = {}
    for d in descriptors:
        key = (min(d.index_a, d.index_b), max(d.index_a, d.index_b))
        area[key] = area.get(key, 0.0) + d.area
        arc[key] = arc.get(key, 0.0) + d.arc_length

    out = []
    for key in sorted(area):
        if not area[key] > 0.0:
            continue
        if contact_filter is not None and not contact_filter(*key):
            continue
        out.append(
            Contact(index_a=key[0], index_b=key[1], area=area[key], arc_length=arc[key])
        )
    return tuple(out)
