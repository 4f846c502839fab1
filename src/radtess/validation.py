"""Input validation and the error taxonomy of the engine.

All validation failures are fatal to a single invocation: they are raised
before any geometry is computed and no partial result is returned.

Numerical degeneracies (near-tangent spheres, co-spherical configurations,
coincident centers) are *not* errors; they are resolved inside the engine.
"""

from __future__ import annotations

from typing import Any, Sequence

import numpy as np


class InvalidInputError(ValueError):
    """Raised for malformed scalar parameters or mismatched auxiliary arrays."""


class InvalidGeometryError(ValueError):
    """Raised for an invalid periodic box (corner count or degenerate axis)."""


def validate_probe(probe: float) -> float:
    """Return the probe radius as a float.

    Raises:
        InvalidInputError: If the probe is negative or not finite. Negative
            probes are rejected rather than clamped.
    """
    try:
        p = float(probe)
    except (TypeError, ValueError) as e:
        raise InvalidInputError('probe must be a real number') from e
    if not np.isfinite(p):
        raise InvalidInputError('probe must be finite')
    if p < 0.0:
        raise InvalidInputError(f'probe must be non-negative, got {p:g}')
    return p


def validate_balls(balls: Any) -> np.ndarray:
    """Copy balls into a fresh ``(n, 4)`` float64 array ``[x, y, z, r]``.

    Accepts a sequence of :class:`~radtess.spheres.Ball` (or any objects with
    ``x, y, z, r`` attributes) or an array-like of shape ``(n, 4)``.

    Raises:
        InvalidInputError: If the shape is wrong, values are not finite, or a
            radius is negative.
    """
    if isinstance(balls, np.ndarray):
        arr = np.array(balls, dtype=np.float64, copy=True)
    else:
        rows = []
        for b in balls:
            if hasattr(b, 'x') and hasattr(b, 'r'):
                rows.append((b.x, b.y, b.z, b.r))
            else:
                rows.append(tuple(b))
        try:
            arr = np.array(rows, dtype=np.float64)
        except (TypeError, ValueError) as e:
            raise InvalidInputError('balls must be numeric (x, y, z, r) records') from e
        if arr.size == 0:
            arr = arr.reshape((0, 4))

    if arr.ndim != 2 or arr.shape[1] != 4:
        raise InvalidInputError('balls must have shape (n, 4)')
    if not np.all(np.isfinite(arr)):
        raise InvalidInputError('balls must contain only finite values')
    if np.any(arr[:, 3] < 0.0):
        raise InvalidInputError('ball radii must be non-negative')
    return arr


def validate_groups(groups: Sequence[int] | np.ndarray | None, n: int) -> np.ndarray | None:
    """Return the grouping vector as an int64 array, or None.

    Raises:
        InvalidInputError: If the length does not match the number of balls.
    """
    if groups is None:
        return None
    g = np.asarray(groups)
    if g.ndim != 1:
        raise InvalidInputError('groups must be a 1D sequence')
    if g.shape[0] != n:
        raise InvalidInputError(
            f'groups must have one entry per ball (got {g.shape[0]}, expected {n})'
        )
    if g.size and not np.issubdtype(g.dtype, np.integer):
        gi = g.astype(np.int64)
        if not np.array_equal(gi, g):
            raise InvalidInputError('groups must contain integers')
        g = gi
    return g.astype(np.int64, copy=True)


def validate_choice(name: str, value: str, choices: Sequence[str]) -> str:
    """Check that a string option is one of the allowed values."""
    if value not in choices:
        allowed = ', '.join(repr(c) for c in choices)
        raise InvalidInputError(f'{name} must be one of: {allowed}')
    return value
