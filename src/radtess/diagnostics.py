"""Tessellation diagnostics and sanity checks.

These utilities detect results that cannot come from a valid tessellation
(e.g. due to numerical issues in near-degenerate input).

Key ideas:
  - The region of a sphere is a subset of its ball, so its SAS area is at
    most ``4πR^2`` and its volume at most ``4/3 πR^3``.
  - In periodic mode the regions are disjoint subsets of the box (modulo the
    lattice), so their volumes sum to at most the box volume.
  - Contacts are unique, ordered pairs with non-negative measures.

The public entry point is :func:`analyze_tessellation`.
"""

from __future__ import annotations

from dataclasses import dataclass
import math
from typing import TYPE_CHECKING, Any, Literal

import numpy as np

if TYPE_CHECKING:  # pragma: no cover
    from .api import TessellationResult


@dataclass(frozen=True, slots=True)
class TessellationIssue:
    code: str
    severity: Literal['info', 'warning', 'error']
    message: str
    examples: tuple[Any, ...] = ()


@dataclass(frozen=True, slots=True)
class TessellationDiagnostics:
    n_balls: int
    n_included: int
    n_contacts: int
    sum_sas_area: float
    sum_volume: float
    box_volume: float | None
    volume_ratio: float | None
    excluded_ids: tuple[int, ...]
    issues: tuple[TessellationIssue, ...]
    ok: bool


class TessellationError(ValueError):
    """Raised when tessellation sanity checks fail under strict settings."""

    def __init__(self, message: str, diagnostics: TessellationDiagnostics):
        super().__init__(message)
        self.diagnostics = diagnostics


def analyze_tessellation(
    result: 'TessellationResult',
    *,
    tol_rel: float = 1e-9,
) -> TessellationDiagnostics:
    """Analyze a tessellation result.

    This function is conservative: it reports issues but never modifies the
    result.

    Args:
        result: Output of :func:`radtess.compute`.
        tol_rel: Relative tolerance for the upper-bound checks.

    Returns:
        TessellationDiagnostics
    """
    issues: list[TessellationIssue] = []
    balls = np.asarray(result.balls, dtype=np.float64).reshape((-1, 4))
    n = int(balls.shape[0])
    R = balls[:, 3] + float(result.probe)

    sas = np.asarray(result.sas_areas, dtype=np.float64)
    vol = np.asarray(result.volumes, dtype=np.float64)
    included = np.asarray(result.included, dtype=bool)

    # --- Cell values ---
    bad = np.nonzero(~(np.isfinite(sas) & np.isfinite(vol)))[0]
    if bad.size:
        issues.append(
            TessellationIssue(
                'NONFINITE_CELL',
                'error',
                f'{bad.size} cell(s) have non-finite SAS area or volume',
                examples=tuple(int(i) for i in bad[:10]),
            )
        )
    neg = np.nonzero((sas < 0.0) | (vol < 0.0))[0]
    if neg.size:
        issues.append(
            TessellationIssue(
                'NEGATIVE_CELL',
                'error',
                f'{neg.size} cell(s) have negative SAS area or volume',
                examples=tuple(int(i) for i in neg[:10]),
            )
        )

    sas_max = 4.0 * math.pi * R * R
    over_sas = np.nonzero(sas > sas_max * (1.0 + tol_rel))[0]
    if over_sas.size:
        issues.append(
            TessellationIssue(
                'SAS_BOUND',
                'error',
                f'{over_sas.size} cell(s) have SAS area above the full sphere area',
                examples=tuple(int(i) for i in over_sas[:10]),
            )
        )
    vol_max = 4.0 / 3.0 * math.pi * R * R * R
    over_vol = np.nonzero(vol > vol_max * (1.0 + tol_rel))[0]
    if over_vol.size:
        issues.append(
            TessellationIssue(
                'VOLUME_BOUND',
                'error',
                f'{over_vol.size} cell(s) have volume above the ball volume',
                examples=tuple(int(i) for i in over_vol[:10]),
            )
        )

    excluded = tuple(int(i) for i in np.nonzero(~included)[0])
    if excluded:
        issues.append(
            TessellationIssue(
                'EXCLUDED_CELLS',
                'info',
                f'{len(excluded)} sphere(s) have an empty cell',
                examples=excluded[:10],
            )
        )

    # --- Contacts ---
    keys = [(c.index_a, c.index_b) for c in result.contacts]
    bad_pairs = [
        k
        for k in keys
        if not (0 <= k[0] <= k[1] < n) or (k[0] == k[1] and result.periodic_box is None)
    ]
    if bad_pairs:
        issues.append(
            TessellationIssue(
                'CONTACT_INDEX',
                'error',
                f'{len(bad_pairs)} contact(s) have invalid sphere indices',
                examples=tuple(bad_pairs[:10]),
            )
        )
    if any(keys[i] >= keys[i + 1] for i in range(len(keys) - 1)):
        issues.append(
            TessellationIssue(
                'CONTACT_ORDER',
                'error',
                'Contacts are not strictly sorted by (index_a, index_b)',
            )
        )
    bad_measure = [
        (c.index_a, c.index_b)
        for c in result.contacts
        if not (np.isfinite(c.area) and np.isfinite(c.arc_length))
        or c.area <= 0.0
        or c.arc_length < 0.0
    ]
    if bad_measure:
        issues.append(
            TessellationIssue(
                'CONTACT_MEASURE',
                'error',
                f'{len(bad_measure)} contact(s) have a non-positive area or '
                'a negative arc length',
                examples=tuple(bad_measure[:10]),
            )
        )

    # --- Box volume (periodic only) ---
    sum_vol = float(np.sum(vol[np.isfinite(vol)]))
    box_vol: float | None = None
    ratio: float | None = None
    if result.periodic_box is not None:
        box_vol = float(result.periodic_box.volume)
        ratio = sum_vol / box_vol
        if sum_vol > box_vol * (1.0 + tol_rel):
            issues.append(
                TessellationIssue(
                    'BOX_OVERLAP',
                    'error',
                    f'Sum of cell volumes exceeds the box volume by {sum_vol - box_vol:g}',
                )
            )

    ok = not any(i.severity == 'error' for i in issues)
    return TessellationDiagnostics(
        n_balls=n,
        n_included=int(np.count_nonzero(included)),
        n_contacts=len(keys),
        sum_sas_area=float(np.sum(sas[np.isfinite(sas)])),
        sum_volume=sum_vol,
        box_volume=box_vol,
        volume_ratio=ratio,
        excluded_ids=excluded,
        issues=tuple(issues),
        ok=bool(ok),
    )


def _failure_message(prefix: str, diag: TessellationDiagnostics) -> str:
    codes = ', '.join(i.code for i in diag.issues if i.severity == 'error')
    return f'{prefix}: {codes}'


def validate_tessellation(
    result: 'TessellationResult',
    *,
    level: Literal['basic', 'strict'] = 'basic',
    tol_rel: float = 1e-9,
) -> TessellationDiagnostics:
    """Validate tessellation sanity, optionally raising in strict mode.

    This is a convenience wrapper around :func:`analyze_tessellation`.

    Args:
        result: Output of :func:`radtess.compute`.
        level: 'basic' returns diagnostics; 'strict' raises
            :class:`TessellationError` when validation fails.
        tol_rel: Relative tolerance for the upper-bound checks.

    Returns:
        TessellationDiagnostics
    """

    if level not in ('basic', 'strict'):
        raise ValueError('level must be \'basic\' or \'strict\'')

    diag = analyze_tessellation(result, tol_rel=float(tol_rel))
    if level == 'strict' and not diag.ok:
        raise TessellationError(
            _failure_message('Tessellation validation failed', diag), diag
        )
    return diag
