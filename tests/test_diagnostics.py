from __future__ import annotations

import dataclasses
import warnings

import numpy as np
import pytest

import radtess
from radtess import Cell, CellMetrics, Contact


BALLS = [(0.0, 0.0, 0.0, 1.0), (1.5, 0.0, 0.0, 1.0), (0.0, 0.0, 0.0, 0.5)]


def _codes(diag: radtess.TessellationDiagnostics) -> set[str]:
    return {i.code for i in diag.issues}


def test_diagnostics_ok_for_regular_result() -> None:
    res, diag = radtess.compute(BALLS, probe=0.3, return_diagnostics=True)
    assert diag.ok
    assert diag.n_balls == 3
    assert diag.n_included == 2
    assert diag.n_contacts == 1
    assert diag.excluded_ids == (2,)
    assert 'EXCLUDED_CELLS' in _codes(diag)
    assert diag.box_volume is None
    assert diag.sum_volume == pytest.approx(res.total_volume)


def test_diagnostics_periodic_volume_ratio() -> None:
    _, diag = radtess.compute(
        [(1.0, 1.0, 1.0, 2.0)],
        probe=1.4,
        periodic_box=[(0, 0, 0), (2, 2, 2)],
        return_diagnostics=True,
    )
    assert diag.ok
    assert diag.box_volume == pytest.approx(8.0)
    assert diag.volume_ratio == pytest.approx(1.0, rel=1e-9)


def test_diagnostics_flags_tampered_cells() -> None:
    res = radtess.compute(BALLS, probe=0.3)
    cells = list(res.cells)
    cells[0] = Cell(index=0, metrics=CellMetrics(sas_area=-1.0, volume=1e6))
    bad = dataclasses.replace(res, cells=tuple(cells))
    diag = radtess.analyze_tessellation(bad)
    assert not diag.ok
    assert {'NEGATIVE_CELL', 'VOLUME_BOUND'} <= _codes(diag)


def test_diagnostics_flags_bad_contacts() -> None:
    res = radtess.compute(BALLS, probe=0.3)
    contacts = (
        Contact(1, 0, 1.0, 0.0),
        Contact(0, 1, 0.0, 0.0),
        Contact(0, 1, 1.0, 0.0),
    )
    bad = dataclasses.replace(res, contacts=contacts)
    codes = _codes(radtess.analyze_tessellation(bad))
    assert {'CONTACT_INDEX', 'CONTACT_ORDER', 'CONTACT_MEASURE'} <= codes


def test_validate_tessellation_strict_raises() -> None:
    res = radtess.compute(BALLS, probe=0.3)
    assert radtess.validate_tessellation(res, level='strict').ok

    cells = list(res.cells)
    cells[1] = Cell(index=1, metrics=CellMetrics(sas_area=np.inf, volume=1.0))
    bad = dataclasses.replace(res, cells=tuple(cells))
    with pytest.raises(radtess.TessellationError) as ei:
        radtess.validate_tessellation(bad, level='strict')
    assert not ei.value.diagnostics.ok
    assert 'NONFINITE_CELL' in str(ei.value)

    # Basic level only reports.
    assert not radtess.validate_tessellation(bad).ok
    with pytest.raises(ValueError, match='level'):
        radtess.validate_tessellation(res, level='paranoid')  # type: ignore[arg-type]


def test_tessellation_check_modes_pass_for_valid_input() -> None:
    with warnings.catch_warnings():
        warnings.simplefilter('error')
        radtess.compute(BALLS, probe=0.3, tessellation_check='warn')
    res = radtess.compute(BALLS, probe=0.3, tessellation_check='raise')
    assert isinstance(res, radtess.TessellationResult)
    out = radtess.compute(BALLS, probe=0.3, tessellation_check='diagnose')
    assert isinstance(out, radtess.TessellationResult)
