"""Input balls and their probe-expanded (weighted) form.

The power diagram is built on *expanded* spheres: every radius is increased by
the probe radius, so that the diagram describes the solvent-accessible
boundary traced by a rolling probe.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np

from .validation import validate_balls, validate_probe


DEFAULT_PROBE = 1.4


@dataclass(frozen=True, slots=True)
class Ball:
    """Input sphere: center ``(x, y, z)`` and radius ``r``.

    A ball's identity is its position in the input sequence.
    """

    x: float
    y: float
    z: float
    r: float


def balls_from_array(arr: np.ndarray) -> tuple[Ball, ...]:
    """Convert an ``(n, 4)`` array into a tuple of :class:`Ball`."""
    a = np.asarray(arr, dtype=np.float64).reshape((-1, 4))
    return tuple(
        Ball(float(x), float(y), float(z), float(r)) for x, y, z, r in a.tolist()
    )


@dataclass(frozen=True, slots=True)
class WeightedSpheres:
    """Probe-expanded spheres, index-aligned with the input balls.

    Attributes:
        centers: Sphere centers, shape (n, 3).
        radii: Expanded radii ``r + probe``, shape (n,).
        probe: The probe radius used for the expansion.
    """

    centers: np.ndarray
    radii: np.ndarray
    probe: float

    def __len__(self) -> int:
        return int(self.centers.shape[0])

    @property
    def max_radius(self) -> float:
        if self.radii.size == 0:
            return 0.0
        return float(np.max(self.radii))

    def power(self, i: int, x: np.ndarray) -> float:
        """Power distance of point ``x`` to sphere ``i``."""
        d = np.asarray(x, dtype=np.float64) - self.centers[i]
        return float(np.dot(d, d) - self.radii[i] * self.radii[i])


def prepare_spheres(balls: Any, probe: float = DEFAULT_PROBE) -> WeightedSpheres:
    """Expand input balls by the probe radius.

    Args:
        balls: Sequence of :class:`Ball` or an array-like of shape (n, 4).
        probe: Probe radius (must be >= 0).

    Returns:
        WeightedSpheres with radii ``r + probe`` in input order.

    Raises:
        InvalidInputError: If the probe is negative or the balls are malformed.
    """
    p = validate_probe(probe)
    arr = validate_balls(balls)
    return WeightedSpheres(
        centers=np.ascontiguousarray(arr[:, :3]),
        radii=arr[:, 3] + p,
        probe=p,
    )
