"""High-level API for computing radical tessellations of spheres."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Sequence

import warnings

import numpy as np

from ._util import length_scale
from .cells import Cell, compute_cells
from .contacts import Contact, describe_facets, extract_contacts, grouping_filter
from .diagnostics import (
    TessellationDiagnostics,
    TessellationError,
    analyze_tessellation,
)
from .domains import PeriodicBox, as_periodic_box
from .duplicates import duplicate_check as _duplicate_check
from .net import TessellationVertex, build_net
from .power_diagram import build_power_diagram
from .spheres import DEFAULT_PROBE, Ball, balls_from_array, prepare_spheres
from .validation import InvalidInputError, validate_choice, validate_groups


def _warn_if_scale_suspicious(*, spheres: Any, box: PeriodicBox | None) -> None:
    """Warn if the coordinate scale is likely to be numerically problematic.

    The engine uses scale-relative tolerances, but tangency and tie
    decisions still lose accuracy when coordinates are extremely small or
    extremely large compared to double precision.

    radtess intentionally does **not** rescale user inputs automatically.
    Instead we emit a warning to encourage explicit rescaling by the caller.
    """

    L = length_scale(spheres.centers, spheres.radii, box)
    if not np.isfinite(L) or L <= 0:
        return

    if L < 1e-6:
        warnings.warn(
            'The input length scale appears very small (L≈{:.3g}). '
            'Tie and tangency decisions may be unreliable in these units; '
            'consider rescaling your coordinates (e.g. multiply by a '
            'constant) before calling radtess.'.format(L),
            RuntimeWarning,
            stacklevel=3,
        )
    elif L > 1e9:
        warnings.warn(
            'The input length scale appears very large (L≈{:.3g}). '
            'Floating-point precision may be poor at this scale; consider '
            'rescaling your coordinates.'.format(L),
            RuntimeWarning,
            stacklevel=3,
        )


@dataclass(frozen=True, slots=True)
class TessellationResult:
    """Result of :func:`compute`.

    Attributes:
        probe: Probe radius used.
        balls: Copy of the input balls, shape (n, 4) as ``[x, y, z, r]``.
        periodic_box: Periodic box, or None.
        contacts: Contacts sorted by ``(index_a, index_b)``.
        cells: One cell per input ball, in input order.
        vertices: Tessellation net, or None when not requested.
    """

    probe: float
    balls: np.ndarray
    periodic_box: PeriodicBox | None
    contacts: tuple[Contact, ...]
    cells: tuple[Cell, ...]
    vertices: tuple[TessellationVertex, ...] | None = None

    @property
    def included(self) -> np.ndarray:
        return np.fromiter((c.included for c in self.cells), dtype=bool, count=len(self.cells))

    @property
    def sas_areas(self) -> np.ndarray:
        """Dense per-ball SAS areas (0.0 for excluded cells)."""
        return np.fromiter(
            (c.sas_area if c.included else 0.0 for c in self.cells),
            dtype=np.float64,
            count=len(self.cells),
        )

    @property
    def volumes(self) -> np.ndarray:
        """Dense per-ball volumes (0.0 for excluded cells)."""
        return np.fromiter(
            (c.volume if c.included else 0.0 for c in self.cells),
            dtype=np.float64,
            count=len(self.cells),
        )

    @property
    def total_sas_area(self) -> float:
        return float(np.sum(self.sas_areas))

    @property
    def total_volume(self) -> float:
        return float(np.sum(self.volumes))


def _tessellate(
    balls: Any,
    probe: float,
    *,
    periodic_box: Any,
    with_net: bool,
    groups: Any,
    group_policy: str,
    duplicate_check: str,
    duplicate_threshold: float,
    adjacency: str,
) -> TessellationResult:
    spheres = prepare_spheres(balls, probe)
    box = as_periodic_box(periodic_box)
    n = len(spheres)
    g = validate_groups(groups, n)
    contact_filter = grouping_filter(g, group_policy)  # type: ignore[arg-type]
    validate_choice('adjacency', adjacency, ('regular', 'overlap'))

    validate_choice('duplicate_check', duplicate_check, ('off', 'warn', 'raise'))
    if duplicate_check != 'off' and n > 1:
        _duplicate_check(
            spheres.centers,
            threshold=float(duplicate_threshold),
            box=box,
            mode='warn' if duplicate_check == 'warn' else 'raise',
        )

    balls_copy = np.concatenate(
        [spheres.centers, (spheres.radii - spheres.probe)[:, None]], axis=1
    )
    if n == 0:
        return TessellationResult(
            probe=spheres.probe,
            balls=balls_copy,
            periodic_box=box,
            contacts=tuple(),
            cells=tuple(),
            vertices=tuple() if with_net else None,
        )

    _warn_if_scale_suspicious(spheres=spheres, box=box)

    diagram = build_power_diagram(spheres, box, adjacency=adjacency)  # type: ignore[arg-type]
    descriptors = describe_facets(diagram)
    return TessellationResult(
        probe=spheres.probe,
        balls=balls_copy,
        periodic_box=box,
        contacts=extract_contacts(descriptors, contact_filter),
        cells=compute_cells(diagram, descriptors),
        vertices=build_net(diagram) if with_net else None,
    )


def compute(
    balls: Sequence[Ball] | Sequence[Sequence[float]] | np.ndarray,
    *,
    probe: float = DEFAULT_PROBE,
    periodic_box: PeriodicBox | Sequence[Sequence[float]] | None = None,
    with_net: bool = False,
    groups: Sequence[int] | np.ndarray | None = None,
    group_policy: Literal['inter', 'intra'] = 'inter',
    duplicate_check: Literal['off', 'warn', 'raise'] = 'off',
    duplicate_threshold: float = 1e-5,
    adjacency: Literal['regular', 'overlap'] = 'regular',
    tessellation_check: Literal['none', 'diagnose', 'warn', 'raise'] = 'none',
    return_diagnostics: bool = False,
) -> TessellationResult | tuple[TessellationResult, TessellationDiagnostics]:
    """Compute the radical tessellation of a set of balls.

    Every ball is expanded by the probe radius, and the power (Laguerre)
    diagram of the expanded spheres is intersected with the spheres. The
    result holds the contact surfaces between spheres, the solvent-accessible
    area and volume of every sphere's cell and, optionally, the vertices of
    the contact facets.

    Args:
        balls: Balls as a sequence of :class:`~radtess.spheres.Ball`, a
            sequence of ``(x, y, z, r)`` tuples, or an array of shape (n, 4).
        probe: Probe radius (>= 0).
        periodic_box: Optional periodic box: a
            :class:`~radtess.domains.PeriodicBox` or two opposite corner
            points. An empty sequence means non-periodic.
        with_net: Also compute the tessellation net (power vertices).
        groups: Optional group id per ball. Only contacts selected by
            ``group_policy`` are reported; cells and the net are unaffected.
        group_policy: ``'inter'`` keeps contacts between different groups,
            ``'intra'`` keeps contacts within a group.
        duplicate_check: Optional near-duplicate center pre-check.
            If set to ``"raise"``, :class:`~radtess.duplicates.DuplicateError`
            is raised when two centers are closer than
            ``duplicate_threshold``; ``"warn"`` emits a warning instead.
        duplicate_threshold: Absolute distance threshold used by the pre-check.
        adjacency: ``'regular'`` (default) prunes clipping candidates with the
            regular triangulation; ``'overlap'`` uses every overlapping
            sphere. Both give the same result; the net requires
            ``'regular'``.
        tessellation_check: Post-check of the result:
            ``'none'``, ``'diagnose'`` (compute diagnostics only),
            ``'warn'`` (warn on failure) or ``'raise'`` (raise
            :class:`~radtess.diagnostics.TessellationError`).
        return_diagnostics: If True, return ``(result, diagnostics)``.

    Returns:
        TessellationResult, or ``(result, diagnostics)`` if requested.

    Raises:
        InvalidInputError: If the probe, balls, groups or an option is invalid.
        InvalidGeometryError: If the periodic box is invalid.
        DuplicateError: If ``duplicate_check='raise'`` finds near-duplicates.
        TessellationError: If ``tessellation_check='raise'`` and the result
            fails the sanity checks.
    """
    validate_choice(
        'tessellation_check', tessellation_check, ('none', 'diagnose', 'warn', 'raise')
    )
    if with_net and adjacency != 'regular':
        raise InvalidInputError('with_net=True requires adjacency=\'regular\'')

    result = _tessellate(
        balls,
        probe,
        periodic_box=periodic_box,
        with_net=bool(with_net),
        groups=groups,
        group_policy=group_policy,
        duplicate_check=duplicate_check,
        duplicate_threshold=duplicate_threshold,
        adjacency=adjacency,
    )

    diag: TessellationDiagnostics | None = None
    if bool(return_diagnostics) or tessellation_check != 'none':
        diag = analyze_tessellation(result)
        if tessellation_check in ('warn', 'raise') and not diag.ok:
            codes = ', '.join(i.code for i in diag.issues if i.severity == 'error')
            msg = f'tessellation_check failed: {codes}'
            if tessellation_check == 'raise':
                raise TessellationError(msg, diag)
            warnings.warn(msg, RuntimeWarning, stacklevel=2)

    if return_diagnostics:
        assert diag is not None
        return result, diag
    return result


@dataclass(slots=True)
class RadicalTessellation:
    """Mutable tessellation holder that can be recomputed for a new probe.

    Build it with :meth:`from_balls`. The collections are replaced on every
    :meth:`recompute`.

    Example:
        >>> tess = RadicalTessellation.from_balls(1.4, [(0, 0, 0, 2), (1, 0, 0, 2)])
        >>> tess.recompute(0.0)
        1
    """

    probe: float
    balls: tuple[Ball, ...]
    periodic_box: PeriodicBox | None = None
    with_net: bool = False
    groups: np.ndarray | None = None
    group_policy: Literal['inter', 'intra'] = 'inter'
    contacts: list[Contact] = field(default_factory=list)
    cells: list[Cell] = field(default_factory=list)
    vertices: list[TessellationVertex] | None = None

    @classmethod
    def from_balls(
        cls,
        probe: float,
        balls: Sequence[Ball] | Sequence[Sequence[float]] | np.ndarray,
        *,
        periodic_box: PeriodicBox | Sequence[Sequence[float]] | None = None,
        with_net: bool = False,
        groups: Sequence[int] | np.ndarray | None = None,
        group_policy: Literal['inter', 'intra'] = 'inter',
    ) -> 'RadicalTessellation':
        """Validate the input and compute the tessellation."""
        spheres = prepare_spheres(balls, probe)
        arr = np.concatenate(
            [spheres.centers, (spheres.radii - spheres.probe)[:, None]], axis=1
        )
        tess = cls(
            probe=spheres.probe,
            balls=balls_from_array(arr),
            periodic_box=as_periodic_box(periodic_box),
            with_net=bool(with_net),
            groups=validate_groups(groups, len(spheres)),
            group_policy=group_policy,
        )
        tess.recompute(spheres.probe)
        return tess

    def recompute(self, new_probe: float) -> int:
        """Recompute everything for ``new_probe``.

        Returns:
            Number of contacts.

        Raises:
            InvalidInputError: If ``new_probe`` is invalid. The holder is left
                unchanged in that case.
        """
        result = _tessellate(
            self.balls,
            new_probe,
            periodic_box=self.periodic_box,
            with_net=self.with_net,
            groups=self.groups,
            group_policy=self.group_policy,
            duplicate_check='off',
            duplicate_threshold=1e-5,
            adjacency='regular',
        )
        self.probe = result.probe
        self.contacts.clear()
        self.contacts.extend(result.contacts)
        self.cells.clear()
        self.cells.extend(result.cells)
        self.vertices = list(result.vertices) if result.vertices is not None else None
        return len(self.contacts)
