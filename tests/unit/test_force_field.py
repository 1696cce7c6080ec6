"""Tests for the triangle-well force field and the topology registry."""

from __future__ import annotations

import pytest

from discmc.errors import InvariantError
from discmc.force_field import BIG_ENERGY, ForceField
from discmc.topology import AtomTemplate, AtomType, MoleculeTemplate, Topology


def make_force_field(radius: float = 0.5) -> ForceField:
    return ForceField([radius], [[-1.0]], cut_off=5.0, length=1.0, colours=["red"])


def make_two_type_force_field() -> ForceField:
    return ForceField(
        [0.5, 1.0],
        [[-1.0, -0.4], [-0.4, -2.0]],
        cut_off=6.0,
        length=1.5,
        colours=["red", "blue"],
    )


def test_attractive_well_is_linear() -> None:
    ff = make_force_field()
    assert ff.interaction(0, 0, 1.5) == pytest.approx(-0.5)
    assert ff.interaction(0, 0, 1.0) == pytest.approx(-1.0)
    assert ff.interaction(0, 0, 3.0) == 0.0


def test_hard_core_grows_linearly_with_overlap() -> None:
    ff = ForceField([1.0], [[-1.0]], cut_off=5.0, length=1.0)
    assert ff.interaction(0, 0, 1.5) == pytest.approx(1.25 * BIG_ENERGY)
    assert ff.interaction(0, 0, 0.0) == pytest.approx(2.0 * BIG_ENERGY)


def test_cut_off_wins_over_everything() -> None:
    ff = ForceField([1.0], [[-1.0]], cut_off=1.0, length=1.0)
    assert ff.interaction(0, 0, 1.0) == 0.0
    assert ff.interaction(0, 0, 0.5) > BIG_ENERGY


@pytest.mark.parametrize("r", [0.2, 1.0, 1.4, 1.9, 2.5, 5.9, 7.0])
def test_interaction_is_symmetric(r: float) -> None:
    ff = make_two_type_force_field()
    assert ff.is_symmetric()
    assert ff.interaction(0, 1, r) == ff.interaction(1, 0, r)


def test_hard_disc_defaults() -> None:
    ff = ForceField.hard_disc(1.0)
    assert ff.n_types == 1
    assert ff.cut_off == 2.0
    assert ff.colour(0) == "red"
    assert ff.size(0) == 1.0
    assert ff.interaction(0, 0, 2.5) == 0.0
    assert ff.interaction(0, 0, 1.9) > 0.0


def test_mismatched_matrix_is_rejected() -> None:
    with pytest.raises(ValueError):
        ForceField([1.0, 1.0], [[0.0, 0.0]], cut_off=2.0, length=1.0)


def test_summary_mentions_cut_off_and_types() -> None:
    text = make_two_type_force_field().summary()
    assert "Cut off is 6" in text
    assert "Number of atom types is 2" in text


def test_single_disc_topology() -> None:
    topology = Topology.single_disc(1.5)
    assert topology.n_atom_types == 1
    assert topology.atom_name(0) == "Simple"
    assert topology.atom_size(0) == 1.5
    assert topology.molecule(0).name == "Hard disk"
    assert topology.check()


def test_add_molecule_appends_type_and_single_atom_molecule() -> None:
    topology = Topology.single_disc(1.0)
    index = topology.add_molecule(0.5)
    assert index == 1
    assert topology.n_atom_types == 2
    assert topology.molecule(1).atoms == [AtomTemplate(1, 0.0, 0.0, "red")]
    assert topology.atom_size(1) == 0.5


def test_extent_and_atom_list(disc_topology: Topology) -> None:
    assert disc_topology.molecule(1).extent() == pytest.approx(1.0)
    assert disc_topology.max_extent() == pytest.approx(1.0)
    assert disc_topology.atom_list(1) == [(0, -1.0, 0.0, 1.0), (0, 1.0, 0.0, 1.0)]


def test_check_reports_bad_type_index() -> None:
    topology = Topology([AtomType("A", 1.0)], [MoleculeTemplate("Broken", [AtomTemplate(3, 0.0, 0.0)])])
    with pytest.raises(InvariantError):
        topology.check()


def test_check_reports_empty_molecule() -> None:
    topology = Topology([AtomType("A", 1.0)], [MoleculeTemplate("Empty")])
    with pytest.raises(InvariantError):
        topology.check()
