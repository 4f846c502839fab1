from __future__ import annotations

import numpy as np
import pytest

import radtess
from radtess.contacts import describe_facets
from radtess.power_diagram import build_power_diagram
from radtess.spheres import prepare_spheres


def _cluster(seed: int, n: int = 20) -> np.ndarray:
    rng = np.random.default_rng(seed)
    centers = rng.uniform(0.0, 6.0, size=(n, 3))
    radii = rng.uniform(0.6, 1.6, size=n)
    return np.column_stack([centers, radii])


def test_compute_is_deterministic() -> None:
    balls = _cluster(1)
    a = radtess.compute(balls, probe=1.0, with_net=True)
    b = radtess.compute(balls.copy(), probe=1.0, with_net=True)
    assert a.contacts == b.contacts
    assert a.cells == b.cells
    assert a.vertices == b.vertices


def test_permutation_symmetry() -> None:
    balls = _cluster(2)
    perm = np.random.default_rng(5).permutation(len(balls))
    a = radtess.compute(balls, probe=0.8)
    b = radtess.compute(balls[perm], probe=0.8)

    # Cell i of the permuted input is cell perm[i] of the original.
    np.testing.assert_allclose(b.sas_areas, a.sas_areas[perm], rtol=1e-9, atol=1e-9)
    np.testing.assert_allclose(b.volumes, a.volumes[perm], rtol=1e-9, atol=1e-9)

    area_a = {(c.index_a, c.index_b): c.area for c in a.contacts}
    area_b = {}
    for c in b.contacts:
        i, j = int(perm[c.index_a]), int(perm[c.index_b])
        area_b[(min(i, j), max(i, j))] = c.area
    assert set(area_a) == set(area_b)
    for k, v in area_a.items():
        assert area_b[k] == pytest.approx(v, rel=1e-9, abs=1e-12)


def test_rigid_motion_invariance() -> None:
    balls = _cluster(3)
    theta = 0.7
    rot = np.array(
        [
            [np.cos(theta), -np.sin(theta), 0.0],
            [np.sin(theta), np.cos(theta), 0.0],
            [0.0, 0.0, 1.0],
        ]
    )
    moved = balls.copy()
    moved[:, :3] = balls[:, :3] @ rot.T + np.array([10.0, -3.0, 2.5])
    a = radtess.compute(balls, probe=0.5)
    b = radtess.compute(moved, probe=0.5)
    np.testing.assert_allclose(a.sas_areas, b.sas_areas, rtol=1e-8, atol=1e-8)
    np.testing.assert_allclose(a.volumes, b.volumes, rtol=1e-8, atol=1e-8)


def test_values_are_non_negative_and_bounded() -> None:
    balls = _cluster(4, n=40)
    probe = 1.2
    res = radtess.compute(balls, probe=probe)
    R = balls[:, 3] + probe
    assert np.all(res.sas_areas >= 0.0)
    assert np.all(res.volumes >= 0.0)
    assert np.all(res.sas_areas <= 4.0 * np.pi * R * R * (1 + 1e-12))
    assert np.all(res.volumes <= 4.0 / 3.0 * np.pi * R**3 * (1 + 1e-12))
    for c in res.contacts:
        assert c.index_a < c.index_b
        assert c.area > 0.0
        assert c.arc_length >= 0.0


def test_regular_and_overlap_adjacency_agree() -> None:
    spheres = prepare_spheres(_cluster(6, n=30), probe=0.9)
    reg = describe_facets(build_power_diagram(spheres, adjacency='regular'))
    ovl = describe_facets(build_power_diagram(spheres, adjacency='overlap'))
    a = {(d.index_a, d.index_b): d.area for d in reg}
    b = {(d.index_a, d.index_b): d.area for d in ovl}
    for key in set(a) | set(b):
        assert a.get(key, 0.0) == pytest.approx(b.get(key, 0.0), abs=1e-9)


def test_compute_with_overlap_adjacency_matches() -> None:
    balls = _cluster(7)
    a = radtess.compute(balls, probe=0.7)
    b = radtess.compute(balls, probe=0.7, adjacency='overlap')
    np.testing.assert_allclose(a.sas_areas, b.sas_areas, rtol=1e-9, atol=1e-9)
    np.testing.assert_allclose(a.volumes, b.volumes, rtol=1e-9, atol=1e-9)

