"""radtess package.

This package computes radical (power, Laguerre) tessellations of spheres
expanded by a probe radius: the contact surfaces between spheres, the
solvent-accessible area and volume of every sphere, and optionally the
vertices of the contact facets, in open space or in a periodic box.

Public API:
    - Ball, PeriodicBox
    - compute
    - RadicalTessellation
"""

from __future__ import annotations

from .__about__ import __version__

from .spheres import Ball, WeightedSpheres, prepare_spheres
from .domains import PeriodicBox
from .api import RadicalTessellation, TessellationResult, compute
from .cells import Cell, CellMetrics, compute_cells
from .contacts import (
    Contact,
    ContactDescriptor,
    describe_facets,
    extract_contacts,
    grouping_filter,
)
from .contour import FacetContour, clip_disk
from .net import TessellationVertex, build_net
from .periodic import ImageSet, replicate
from .power_diagram import PowerDiagram, RadicalFacet, build_power_diagram
from .triangulation import RegularTriangulation
from .diagnostics import (
    TessellationDiagnostics,
    TessellationIssue,
    TessellationError,
    analyze_tessellation,
    validate_tessellation,
)

from .validation import InvalidGeometryError, InvalidInputError

from .duplicates import (
    DuplicatePair,
    DuplicateError,
    duplicate_check,
)

__all__ = [
    'Ball',
    'WeightedSpheres',
    'prepare_spheres',
    'PeriodicBox',
    'compute',
    'RadicalTessellation',
    'TessellationResult',
    'Cell',
    'CellMetrics',
    'compute_cells',
    'Contact',
    'ContactDescriptor',
    'describe_facets',
    'extract_contacts',
    'grouping_filter',
    'FacetContour',
    'clip_disk',
    'TessellationVertex',
    'build_net',
    'ImageSet',
    'replicate',
    'PowerDiagram',
    'RadicalFacet',
    'build_power_diagram',
    'RegularTriangulation',
    'TessellationDiagnostics',
    'TessellationIssue',
    'TessellationError',
    'analyze_tessellation',
    'validate_tessellation',
    'InvalidGeometryError',
    'InvalidInputError',
    'DuplicatePair',
    'DuplicateError',
    'duplicate_check',
    '__version__',
]
