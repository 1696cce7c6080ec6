"""
Energy and overlap evaluation for configurations.

Positions are never moved to compute periodic images; separations are
reduced with ``minimum_image`` instead. An object's cached contribution is
its pair energy with every other object plus twice its boundary energy, so
that halving the sum of contributions counts each pair once and each
boundary term once.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, List, Tuple

from .errors import InvariantError
from .force_field import ForceField

if TYPE_CHECKING:
    from .configuration import Configuration, PlacedObject

# (atom type, world x, world y, hard radius)
WorldAtom = Tuple[int, float, float, float]


def minimum_image(dx: float, dy: float, width: float, height: float) -> Tuple[float, float]:
    """Reduce a separation to its nearest periodic image in a width x height cell."""
    if width > 0.0:
        dx -= width * round(dx / width)
    if height > 0.0:
        dy -= height * round(dy / height)
    return dx, dy


def world_atoms(config: "Configuration", obj: "PlacedObject") -> List[WorldAtom]:
    topology = config.topology
    if topology is None:
        raise InvariantError("Atom positions need a topology bound to the configuration.")
    if not 0 <= obj.molecule_type < topology.n_molecules:
        raise InvariantError(
            f"Object type {obj.molecule_type} is outside the topology ({topology.n_molecules} molecules)."
        )
    c = math.cos(obj.theta)
    s = math.sin(obj.theta)
    atoms: List[WorldAtom] = []
    for atom_type, dx, dy, radius in topology.atom_list(obj.molecule_type):
        atoms.append((atom_type, obj.x + dx * c - dy * s, obj.y + dx * s + dy * c, radius))
    return atoms


def separation(config: "Configuration", x1: float, y1: float, x2: float, y2: float) -> float:
    dx = x2 - x1
    dy = y2 - y1
    if config.periodic:
        dx, dy = minimum_image(dx, dy, config.boundary.width, config.boundary.height)
    return math.hypot(dx, dy)


def pair_energy(config: "Configuration", force_field: ForceField, obj1: "PlacedObject", obj2: "PlacedObject") -> float:
    total = 0.0
    atoms2 = world_atoms(config, obj2)
    for t1, x1, y1, _ in world_atoms(config, obj1):
        for t2, x2, y2, _ in atoms2:
            total += force_field.interaction(t1, t2, separation(config, x1, y1, x2, y2))
    return total


def atom_outside(config: "Configuration", x: float, y: float, radius: float) -> bool:
    boundary = config.boundary
    if boundary.is_rectangle:
        return x < radius or x > boundary.width - radius or y < radius or y > boundary.height - radius
    return not boundary.polygon.is_inside(x, y, radius)


def boundary_energy(config: "Configuration", force_field: ForceField, obj: "PlacedObject") -> float:
    """``big_energy`` for every atom closer to the wall than its hard radius."""
    if config.periodic:
        return 0.0
    total = 0.0
    for _, x, y, radius in world_atoms(config, obj):
        if atom_outside(config, x, y, radius):
            total += force_field.big_energy
    return total


def object_contribution(config: "Configuration", force_field: ForceField, index: int) -> float:
    obj = config.objects[index]
    value = 0.0
    for j, other in enumerate(config.objects):
        if j != index:
            value += pair_energy(config, force_field, obj, other)
    return value + 2.0 * boundary_energy(config, force_field, obj)


def cold_energy(config: "Configuration", force_field: ForceField) -> float:
    """Total energy from scratch, ignoring and leaving untouched every cache."""
    objects = config.objects
    total = 0.0
    for i, obj in enumerate(objects):
        for other in objects[:i]:
            total += pair_energy(config, force_field, obj, other)
        total += boundary_energy(config, force_field, obj)
    return total


def objects_clash(config: "Configuration", obj1: "PlacedObject", obj2: "PlacedObject") -> bool:
    """Any cross pair of atoms closer than the sum of their hard radii."""
    if config.topology is None:
        return obj1.x == obj2.x and obj1.y == obj2.y
    atoms2 = world_atoms(config, obj2)
    for _, x1, y1, r1 in world_atoms(config, obj1):
        for _, x2, y2, r2 in atoms2:
            if separation(config, x1, y1, x2, y2) < r1 + r2:
                return True
    return False


def boundary_clash(config: "Configuration", obj: "PlacedObject") -> bool:
    if config.periodic or config.topology is None:
        return False
    return any(atom_outside(config, x, y, r) for _, x, y, r in world_atoms(config, obj))
