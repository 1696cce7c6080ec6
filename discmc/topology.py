"""
Atom types and rigid molecule templates.

Templates are shared prototypes: a placed object refers to its molecule by
index and never owns a copy of the atoms.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .errors import InvariantError


@dataclass(frozen=True)
class AtomType:
    name: str
    radius: float


@dataclass(frozen=True)
class AtomTemplate:
    """Atom position in the molecule's body frame."""

    atom_type: int
    x: float
    y: float
    colour: str = "red"


@dataclass
class MoleculeTemplate:
    name: str
    atoms: List[AtomTemplate] = field(default_factory=list)

    @property
    def n_atoms(self) -> int:
        return len(self.atoms)

    def add_atom(self, atom: AtomTemplate) -> None:
        self.atoms.append(atom)

    def extent(self) -> float:
        """Largest body-frame distance of an atom centre from the origin."""
        return max((math.hypot(a.x, a.y) for a in self.atoms), default=0.0)


class Topology:
    """Registry of atom types and molecule templates, both indexed from zero."""

    def __init__(
        self,
        atom_types: Optional[List[AtomType]] = None,
        molecules: Optional[List[MoleculeTemplate]] = None,
    ):
        self.atom_types: List[AtomType] = list(atom_types or [])
        self.molecules: List[MoleculeTemplate] = list(molecules or [])

    @classmethod
    def single_disc(cls, radius: float = 1.0) -> "Topology":
        topology = cls()
        topology.atom_types.append(AtomType("Simple", float(radius)))
        topology.molecules.append(MoleculeTemplate("Hard disk", [AtomTemplate(0, 0.0, 0.0, "red")]))
        return topology

    @property
    def n_atom_types(self) -> int:
        return len(self.atom_types)

    @property
    def n_molecules(self) -> int:
        return len(self.molecules)

    def atom_name(self, index: int) -> str:
        return self.atom_types[index].name

    def atom_size(self, index: int) -> float:
        return self.atom_types[index].radius

    def molecule(self, index: int) -> MoleculeTemplate:
        return self.molecules[index]

    def add_molecule(self, radius: float) -> int:
        """Append a new atom type and a one-atom molecule using it; return the molecule index."""
        type_index = len(self.atom_types)
        mol_index = len(self.molecules)
        self.atom_types.append(AtomType(f"Atom_{type_index}", float(radius)))
        self.molecules.append(MoleculeTemplate(f"Molecule_{mol_index}", [AtomTemplate(type_index, 0.0, 0.0, "red")]))
        return mol_index

    def max_extent(self) -> float:
        return max((m.extent() for m in self.molecules), default=0.0)

    def max_radius(self) -> float:
        return max((t.radius for t in self.atom_types), default=0.0)

    def atom_list(self, molecule_index: int) -> List[Tuple[int, float, float, float]]:
        """``(type, dx, dy, radius)`` for every atom of a molecule."""
        return [
            (atom.atom_type, atom.x, atom.y, self.atom_types[atom.atom_type].radius)
            for atom in self.molecules[molecule_index].atoms
        ]

    def check(self) -> bool:
        """Raise InvariantError unless radii are positive, molecules non-empty and types valid."""
        for index, atom_type in enumerate(self.atom_types):
            if not atom_type.radius > 0.0:
                raise InvariantError(f"Atom type {index} ({atom_type.name}) has non-positive radius {atom_type.radius}.")
        for index, molecule in enumerate(self.molecules):
            if not molecule.atoms:
                raise InvariantError(f"Molecule {index} ({molecule.name}) has no atoms.")
            for atom in molecule.atoms:
                if not 0 <= atom.atom_type < len(self.atom_types):
                    raise InvariantError(
                        f"Molecule {index} ({molecule.name}) uses atom type {atom.atom_type} "
                        f"but only {len(self.atom_types)} types exist."
                    )
        return True

    def summary(self) -> str:
        lines = [f"Topology with {self.n_atom_types} atom types and {self.n_molecules} molecules"]
        for index, atom_type in enumerate(self.atom_types):
            lines.append(f"  type {index}: {atom_type.name} r={atom_type.radius:g}")
        for index, molecule in enumerate(self.molecules):
            types = " ".join(str(a.atom_type) for a in molecule.atoms)
            lines.append(f"  molecule {index}: {molecule.name} atoms [{types}]")
        return "\n".join(lines)
