"""Tests for random placement, rescaling and hull wrapping."""

from __future__ import annotations

import pathlib
import random

import pytest

from discmc.builder import PLACEMENT_REMEDY, build_configuration, shrink_configuration, wrap_configuration
from discmc.configuration import Boundary, Configuration, PlacedObject
from discmc.errors import InvariantError, PlacementError
from discmc.file_formats import load_configuration
from discmc.topology import Topology


def test_build_places_requested_counts_without_clashes(disc_topology: Topology) -> None:
    config = build_configuration([3, 4], 20.0, 20.0, topology=disc_topology, rng=random.Random(1))
    assert config.n_objects() == 7
    assert [o.molecule_type for o in config.objects] == [0, 0, 0, 1, 1, 1, 1]
    assert not config.test_clash()
    assert config.check()
    assert config.topology is disc_topology


def test_default_topology_grows_per_type() -> None:
    config = build_configuration([2, 2, 1], 15.0, 15.0, rng=random.Random(2))
    assert config.topology.n_molecules == 3
    assert config.topology.n_atom_types == 3
    assert config.topology.molecule(2).name == "Molecule_2"


def test_build_rejects_missing_molecule_type(disc_topology: Topology) -> None:
    with pytest.raises(InvariantError):
        build_configuration([1, 1, 1], 20.0, 20.0, topology=disc_topology, rng=random.Random(3))


def test_build_rejects_empty_area() -> None:
    with pytest.raises(InvariantError):
        build_configuration([1], 0.0, 5.0)


def test_overfull_box_raises_placement_error() -> None:
    with pytest.raises(PlacementError) as info:
        build_configuration([10], 4.0, 4.0, max_try=50, rng=random.Random(4))
    assert info.value.remedy == PLACEMENT_REMEDY
    assert "shrinkconfig" in str(info.value)


def test_scale_places_in_smaller_box_then_expands() -> None:
    config = build_configuration([5], 30.0, 20.0, scale=2.0, rng=random.Random(5))
    assert (config.width(), config.height()) == (30.0, 20.0)
    assert all(2.0 <= o.x <= 28.0 and 2.0 <= o.y <= 18.0 for o in config.objects)


def test_periodic_build_allows_positions_near_walls() -> None:
    config = build_configuration([12], 12.0, 12.0, periodic=True, rng=random.Random(6))
    assert config.periodic
    assert not config.test_clash()


def test_shrink_configuration_scales_area(data_dir: pathlib.Path) -> None:
    config = load_configuration(data_dir / "square.conf")
    remaining = shrink_configuration(config, 0.8, rng=random.Random(7))
    assert not remaining
    assert config.area() == pytest.approx(64.0)
    assert config.topology is not None


def test_shrink_configuration_reports_remaining_clashes(caplog: pytest.LogCaptureFixture) -> None:
    config = Configuration(boundary=Boundary.rectangle(4.0, 4.0))
    for x in (1.5, 2.0, 2.5):
        config.add_object(PlacedObject(0, x, 2.0))
    assert shrink_configuration(config, 0.5, max_try=2, rng=random.Random(8))
    assert "Unable to remove clashes" in caplog.text


def test_shrink_rejects_non_positive_scale(data_dir: pathlib.Path) -> None:
    config = load_configuration(data_dir / "square.conf")
    with pytest.raises(InvariantError):
        shrink_configuration(config, 0.0)


def test_wrap_encloses_every_atom(data_dir: pathlib.Path, disc_topology: Topology) -> None:
    config = load_configuration(data_dir / "square.conf")
    config.add_topology(disc_topology)
    config.set_periodic(True)
    wrap_configuration(config)
    assert not config.periodic
    assert not config.boundary.is_rectangle
    assert config.check()
    for obj in config.objects:
        assert config.boundary.polygon.is_inside(obj.x, obj.y, 1.0 - 1e-9)


def test_wrap_needs_spread_out_objects() -> None:
    config = Configuration(boundary=Boundary.rectangle(10.0, 10.0))
    config.add_object(PlacedObject(0, 5.0, 5.0))
    with pytest.raises(InvariantError):
        wrap_configuration(config)
