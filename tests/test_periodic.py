from __future__ import annotations

import math

import numpy as np
import pytest

import radtess
from radtess.domains import PeriodicBox, as_periodic_box
from radtess.periodic import replicate
from radtess.spheres import prepare_spheres


def _cube(L: float, low: float = 0.0) -> list[tuple[float, float, float]]:
    return [(low, low, low), (low + L, low + L, low + L)]


def test_single_sphere_filling_small_box() -> None:
    # R = 3.4 covers the whole 2x2x2 box: the cell is the box itself.
    res = radtess.compute([(1.0, 1.0, 1.0, 2.0)], probe=1.4, periodic_box=_cube(2.0))
    (cell,) = res.cells
    assert cell.included
    assert cell.volume == pytest.approx(8.0, rel=1e-9)
    assert cell.sas_area == pytest.approx(0.0, abs=1e-9)

    (c,) = res.contacts
    assert (c.index_a, c.index_b) == (0, 0)
    assert c.area == pytest.approx(12.0, rel=1e-9)
    assert c.arc_length == pytest.approx(0.0, abs=1e-9)


def test_single_sphere_capped_by_box_faces() -> None:
    L, r, probe = 6.0, 2.0, 1.4
    R = r + probe
    h = R - 0.5 * L
    res = radtess.compute([(0.5, 2.0, 4.0, r)], probe=probe, periodic_box=_cube(L))
    (cell,) = res.cells

    cap_area = 2.0 * math.pi * R * h
    cap_vol = math.pi * h * h * (3.0 * R - h) / 3.0
    assert cell.sas_area == pytest.approx(4.0 * math.pi * R * R - 6.0 * cap_area, rel=1e-9)
    assert cell.volume == pytest.approx(4.0 / 3.0 * math.pi * R**3 - 6.0 * cap_vol, rel=1e-9)

    rho2 = R * R - 0.25 * L * L
    (c,) = res.contacts
    assert (c.index_a, c.index_b) == (0, 0)
    assert c.area == pytest.approx(3.0 * math.pi * rho2, rel=1e-9)
    assert c.arc_length == pytest.approx(3.0 * 2.0 * math.pi * math.sqrt(rho2), rel=1e-9)


def test_single_sphere_in_large_box_is_isolated() -> None:
    res = radtess.compute([(5.0, 5.0, 5.0, 2.0)], probe=1.4, periodic_box=_cube(20.0))
    assert res.contacts == tuple()
    R = 3.4
    assert res.cells[0].volume == pytest.approx(4.0 / 3.0 * math.pi * R**3, rel=1e-12)


def test_pair_across_boundary_matches_open_space_pair() -> None:
    box = _cube(10.0)
    periodic = radtess.compute(
        [(0.5, 5.0, 5.0, 1.0), (9.5, 5.0, 5.0, 1.0)], probe=0.0, periodic_box=box
    )
    open_space = radtess.compute([(0.5, 5.0, 5.0, 1.0), (-0.5, 5.0, 5.0, 1.0)], probe=0.0)

    assert len(periodic.contacts) == 1
    assert (periodic.contacts[0].index_a, periodic.contacts[0].index_b) == (0, 1)
    assert periodic.contacts[0].area == pytest.approx(open_space.contacts[0].area, rel=1e-12)
    assert periodic.contacts[0].area == pytest.approx(math.pi * 0.75, rel=1e-12)
    np.testing.assert_allclose(periodic.volumes, open_space.volumes, rtol=1e-12)


def test_centers_outside_box_are_wrapped() -> None:
    box = _cube(10.0)
    inside = radtess.compute(
        [(1.0, 2.0, 3.0, 1.0), (2.0, 2.5, 3.0, 1.2)], probe=0.3, periodic_box=box
    )
    outside = radtess.compute(
        [(11.0, -8.0, 23.0, 1.0), (-8.0, 12.5, 3.0, 1.2)], probe=0.3, periodic_box=box
    )
    assert len(inside.contacts) == len(outside.contacts) == 1
    assert outside.contacts[0].area == pytest.approx(inside.contacts[0].area, rel=1e-9)
    np.testing.assert_allclose(outside.volumes, inside.volumes, rtol=1e-9)


def test_box_offset_does_not_change_result() -> None:
    balls = [(1.0, 1.0, 1.0, 1.0), (2.2, 1.5, 0.7, 0.9), (3.5, 3.0, 3.5, 1.1)]
    a = radtess.compute(balls, probe=0.4, periodic_box=_cube(4.0))
    shifted = [(x + 100.0, y - 40.0, z + 8.0, r) for x, y, z, r in balls]
    b = radtess.compute(shifted, probe=0.4, periodic_box=_cube(4.0, low=-40.0))
    assert [(c.index_a, c.index_b) for c in a.contacts] == [
        (c.index_a, c.index_b) for c in b.contacts
    ]
    np.testing.assert_allclose(
        [c.area for c in a.contacts], [c.area for c in b.contacts], rtol=1e-8
    )
    np.testing.assert_allclose(a.volumes, b.volumes, rtol=1e-8)


def test_dense_periodic_packing_volumes_fill_the_box() -> None:
    # Large spheres on a jittered grid: every point of the box is covered, so
    # the cell volumes partition the box.
    rng = np.random.default_rng(7)
    g = (np.arange(3) + 0.5) * 2.0
    centers = np.array([(x, y, z) for x in g for y in g for z in g])
    centers += rng.uniform(-0.3, 0.3, size=centers.shape)
    balls = np.column_stack([centers, np.full(len(centers), 2.1)])
    res, diag = radtess.compute(
        balls, probe=0.2, periodic_box=_cube(6.0), return_diagnostics=True
    )
    assert diag.ok
    assert res.total_volume == pytest.approx(216.0, rel=1e-9)
    assert res.sas_areas == pytest.approx(np.zeros(27), abs=1e-9)


def test_replicate_images_record_origin_and_shift() -> None:
    spheres = prepare_spheres([(0.5, 0.5, 0.5, 0.5)], probe=0.0)
    box = PeriodicBox.from_corners(_cube(2.0))
    images = replicate(spheres, box)
    assert images.n_primary == 1
    assert np.all(images.origin == 0)
    assert images.shifts[0].tolist() == [0, 0, 0]
    L = box.lengths
    np.testing.assert_allclose(
        images.centers, images.centers[0] + images.shifts * L[None, :]
    )
    # A halo of width 2R = 1 around the box keeps shifts 0..1 on every axis.
    assert len(images) == 8


def test_replicate_without_box_is_identity() -> None:
    spheres = prepare_spheres([(0, 0, 0, 1.0), (5, 0, 0, 1.0)], probe=0.5)
    images = replicate(spheres, None)
    assert len(images) == 2
    assert images.origin.tolist() == [0, 1]


def test_remap_cart_wraps_into_half_open_box() -> None:
    box = PeriodicBox.from_corners(_cube(10.0))
    pts = np.array([[-1.0, 10.0, 25.0], [3.0, 4.0, 5.0], [10.0 - 1e-13, 0.0, 0.0]])
    out = box.remap_cart(pts)
    np.testing.assert_allclose(out, [[9.0, 0.0, 5.0], [3.0, 4.0, 5.0], [0.0, 0.0, 0.0]])
    assert box.contains(out).all()


def test_as_periodic_box() -> None:
    assert as_periodic_box(None) is None
    assert as_periodic_box([]) is None
    box = PeriodicBox.from_corners(_cube(1.0))
    assert as_periodic_box(box) is box
    assert as_periodic_box(_cube(1.0)) == box
    with pytest.raises(radtess.InvalidGeometryError):
        as_periodic_box(3.0)


def test_tiny_box_warns_about_image_count() -> None:
    spheres = prepare_spheres([(0.0, 0.0, 0.0, 1.0)], probe=0.0)
    box = PeriodicBox.from_corners(_cube(0.35))
    with pytest.warns(RuntimeWarning, match='periodic images'):
        images = replicate(spheres, box)
    assert len(images) > 1000
