"""Tests for configuration state: clashes, boundaries, reshaping and diagnostics."""

from __future__ import annotations

import math
import pathlib
import random

import pytest

from discmc.configuration import Boundary, Configuration, PlacedObject
from discmc.errors import InvariantError
from discmc.file_formats import load_configuration
from discmc.geometry import Polygon
from discmc.topology import Topology


def disc_config(positions, *, width=10.0, height=10.0, periodic=False) -> Configuration:
    config = Configuration(boundary=Boundary.rectangle(width, height), periodic=periodic)
    for x, y in positions:
        config.add_object(PlacedObject(0, x, y))
    config.add_topology(Topology.single_disc(1.0))
    return config


def rotated_square(side: float = 4.0, angle: float = math.pi / 6) -> Polygon:
    c, s = math.cos(angle), math.sin(angle)
    return Polygon([(0.0, 0.0), (side * c, side * s), (side * (c - s), side * (s + c)), (-side * s, side * c)])


def test_coincident_discs_clash_until_separated() -> None:
    config = disc_config([(0.0, 0.0), (0.0, 0.0)])
    assert config.test_clash()
    config.objects[1].x = 2.5
    assert not config.test_clash()


def test_clash_with_new_object_includes_walls() -> None:
    walled = disc_config([(5.0, 5.0)])
    assert walled.test_clash(PlacedObject(0, 0.5, 5.0))
    assert walled.test_clash(PlacedObject(0, 5.5, 5.0))
    assert not walled.test_clash(PlacedObject(0, 2.0, 2.0))

    periodic = disc_config([(5.0, 5.0)], periodic=True)
    assert not periodic.test_clash(PlacedObject(0, 0.5, 5.0))


def test_has_clash_reports_only_involved_objects() -> None:
    config = disc_config([(2.0, 2.0), (3.0, 2.0), (8.0, 8.0)])
    assert config.has_clash(0)
    assert config.has_clash(1)
    assert not config.has_clash(2)


def test_poly_to_rect_on_rotated_square() -> None:
    config = Configuration(boundary=Boundary.from_polygon(rotated_square()))
    # Midpoint of the diagonal from the origin to the opposite corner.
    centre = tuple(0.5 * v for v in rotated_square().vertex(2))
    config.add_object(PlacedObject(0, centre[0], centre[1], 0.0))
    assert config.poly_to_rect()
    assert config.boundary.is_rectangle
    assert config.width() == pytest.approx(4.0)
    assert config.height() == pytest.approx(4.0)
    assert (config.object(0).x, config.object(0).y) == pytest.approx((2.0, 2.0))
    assert config.object(0).theta == pytest.approx(2.0 * math.pi - math.pi / 6)


def test_set_periodic_converts_rotated_square() -> None:
    config = Configuration(boundary=Boundary.from_polygon(rotated_square()))
    assert config.set_periodic(True)
    assert config.periodic
    assert config.boundary.is_rectangle


def test_sheared_parallelogram_cannot_become_periodic(caplog: pytest.LogCaptureFixture) -> None:
    sheared = Polygon([(0.0, 0.0), (4.0, 0.0), (5.0, 2.0), (1.0, 2.0)])
    config = Configuration(boundary=Boundary.from_polygon(sheared))
    assert not config.poly_to_rect()
    assert not config.set_periodic(True)
    assert not config.periodic
    assert not config.boundary.is_rectangle
    assert "sheared" in caplog.text


def test_hexagon_cannot_become_periodic(caplog: pytest.LogCaptureFixture) -> None:
    hexagon = Polygon([(2.0 * math.cos(k * math.pi / 3), 2.0 * math.sin(k * math.pi / 3)) for k in range(6)])
    config = Configuration(boundary=Boundary.from_polygon(hexagon))
    assert not config.set_periodic(True)
    assert not config.periodic
    assert "not supported" in caplog.text


def test_rect_to_poly_keeps_area() -> None:
    config = disc_config([(1.0, 1.0)], width=6.0, height=3.0)
    assert config.rect_to_poly()
    assert not config.boundary.is_rectangle
    assert config.area() == pytest.approx(18.0)
    assert not config.rect_to_poly()


def test_rms_of_shifted_object(data_dir: pathlib.Path) -> None:
    reference = load_configuration(data_dir / "square.conf")
    moved = reference.clone()
    assert moved.rms(reference) == 0.0
    moved.objects[0].x += 3.0
    assert moved.rms(reference) == pytest.approx(1.5)


def test_rms_rejects_different_object_counts(data_dir: pathlib.Path) -> None:
    reference = load_configuration(data_dir / "square.conf")
    fewer = reference.clone()
    fewer.objects.pop()
    with pytest.raises(InvariantError):
        fewer.rms(reference)


def test_expand_scales_area_and_positions(data_dir: pathlib.Path) -> None:
    config = load_configuration(data_dir / "square.conf")
    thetas = [o.theta for o in config.objects]
    config.expand(2.0)
    assert config.area() == pytest.approx(400.0)
    assert (config.object(1).x, config.object(1).y) == (15.0, 5.0)
    assert [o.theta for o in config.objects] == thetas


def test_expand_with_attempts_removes_clash() -> None:
    config = disc_config([(10.0, 10.0), (10.5, 10.0)], width=20.0, height=20.0)
    assert config.test_clash()
    remaining = config.expand(1.0, max_try=500, rng=random.Random(3))
    assert not remaining
    assert not config.test_clash()
    assert config.check()


def test_add_topology_rejects_unknown_molecule() -> None:
    config = Configuration(boundary=Boundary.rectangle(5.0, 5.0))
    config.add_object(PlacedObject(3, 1.0, 1.0))
    with pytest.raises(InvariantError):
        config.add_topology(Topology.single_disc(1.0))
    assert config.topology is None


def test_clone_is_independent_but_shares_topology() -> None:
    config = disc_config([(2.0, 2.0), (6.0, 6.0)])
    copy = config.clone()
    copy.objects[0].x = 4.0
    copy.boundary.width = 50.0
    assert config.object(0).x == 2.0
    assert config.width() == 10.0
    assert copy.topology is config.topology


def test_get_object_returns_copy() -> None:
    config = disc_config([(2.0, 2.0)])
    obj = config.get_object(0)
    obj.x = 9.0
    assert config.object(0).x == 2.0


def test_problems_lists_objects_outside_boundary() -> None:
    config = disc_config([(2.0, 2.0), (12.0, 2.0)])
    problems = config.problems()
    assert len(problems) == 1
    assert "Object 1" in problems[0]
    assert not config.check()
    config.objects[1].x = 8.0
    assert config.check()


def test_problems_flags_periodic_polygon(data_dir: pathlib.Path) -> None:
    config = load_configuration(data_dir / "polygon.conf")
    assert config.check()
    config.periodic = True
    assert any("Periodic" in problem for problem in config.problems())


def test_translate_and_rotate_polygon_frame() -> None:
    config = disc_config([(2.0, 1.0)])
    config.rect_to_poly()
    config.translate(1.0, 1.0)
    assert (config.object(0).x, config.object(0).y) == (3.0, 2.0)
    assert config.boundary.polygon.bounding_box() == pytest.approx((1.0, 1.0, 11.0, 11.0))
    config.translate(-1.0, -1.0)
    config.rotate_frame(math.pi / 2)
    assert (config.object(0).x, config.object(0).y) == pytest.approx((1.0, -2.0))
    assert config.object(0).theta == pytest.approx(1.5 * math.pi)
    assert config.area() == pytest.approx(100.0)


def test_rotate_frame_requires_polygon() -> None:
    config = disc_config([(2.0, 1.0)])
    with pytest.raises(InvariantError):
        config.rotate_frame(0.5)


def test_convex_hull_of_objects(data_dir: pathlib.Path) -> None:
    config = load_configuration(data_dir / "square.conf")
    hull = config.convex_hull()
    assert hull.area() == pytest.approx(25.0)
    inflated = config.convex_hull(1.0)
    assert inflated.bounding_box() == pytest.approx((1.5, 1.5, 8.5, 8.5))


def test_summary_mentions_periodic_rectangle() -> None:
    config = disc_config([(2.0, 2.0), (6.0, 6.0)], periodic=True)
    text = config.summary()
    assert "Configuration of 2 objects" in text
    assert "(periodic)" in text
