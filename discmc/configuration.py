"""
Simulation state: a boundary, a list of placed objects and an energy cache.

The boundary is a tagged value, either a rectangle anchored at the origin or
a polygon. Periodicity is a runtime flag and is only allowed on rectangles;
an exact rectangular polygon can be canonicalised with ``poly_to_rect``.

Energy caching: every object keeps its last contribution and a ``dirty``
flag, and the configuration keeps ``unchanged``/``saved_energy``. Any
mutation clears ``unchanged``; ``energy`` recomputes dirty objects only.
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass, field, replace
from typing import List, Optional, Tuple

from . import energy as engine
from .errors import InvariantError
from .force_field import ForceField
from .geometry import Polygon, convex_hull
from .topology import Topology

logger = logging.getLogger(__name__)

TWO_PI = 2.0 * math.pi

RECTANGLE = "rectangle"
POLYGON = "polygon"


@dataclass
class Boundary:
    """Either ``kind == "rectangle"`` with width/height or ``kind == "polygon"``."""

    kind: str
    width: float = 0.0
    height: float = 0.0
    polygon: Optional[Polygon] = None

    @classmethod
    def rectangle(cls, width: float, height: float) -> "Boundary":
        return cls(RECTANGLE, float(width), float(height))

    @classmethod
    def from_polygon(cls, polygon: Polygon) -> "Boundary":
        poly = polygon.copy()
        poly.order_vertices()
        return cls(POLYGON, poly.width(), poly.height(), poly)

    @property
    def is_rectangle(self) -> bool:
        return self.kind == RECTANGLE

    def area(self) -> float:
        if self.is_rectangle:
            return self.width * self.height
        return self.polygon.area()

    def expand(self, scale: float) -> None:
        if self.is_rectangle:
            self.width *= scale
            self.height *= scale
        else:
            self.polygon.expand(scale)
            self._refresh_extent()

    def _refresh_extent(self) -> None:
        self.width = self.polygon.width()
        self.height = self.polygon.height()

    def copy(self) -> "Boundary":
        return Boundary(self.kind, self.width, self.height, self.polygon.copy() if self.polygon else None)


@dataclass
class PlacedObject:
    """A molecule instance at (x, y) with orientation ``theta`` in radians."""

    molecule_type: int
    x: float
    y: float
    theta: float = 0.0
    dirty: bool = True
    energy: float = 0.0


@dataclass
class Configuration:
    boundary: Boundary
    objects: List[PlacedObject] = field(default_factory=list)
    periodic: bool = False
    topology: Optional[Topology] = None
    unchanged: bool = False
    saved_energy: float = 0.0

    # ------------------------------------------------------------------
    # Basic access
    # ------------------------------------------------------------------
    def area(self) -> float:
        return self.boundary.area()

    def width(self) -> float:
        return self.boundary.width

    def height(self) -> float:
        return self.boundary.height

    def n_objects(self) -> int:
        return len(self.objects)

    def object(self, index: int) -> PlacedObject:
        return self.objects[index]

    def get_object(self, index: int) -> PlacedObject:
        """Independent copy of object ``index``."""
        return replace(self.objects[index])

    def add_object(self, obj: PlacedObject) -> None:
        self.objects.append(replace(obj, dirty=True))
        self.invalidate_all()

    def add_topology(self, topology: Topology) -> None:
        """Bind ``topology`` (shared, not copied), replacing any previous binding."""
        for index, obj in enumerate(self.objects):
            if not 0 <= obj.molecule_type < topology.n_molecules:
                raise InvariantError(
                    f"Object {index} has type {obj.molecule_type} but the topology defines "
                    f"{topology.n_molecules} molecules."
                )
        self.topology = topology
        self.invalidate_all()

    def clone(self) -> "Configuration":
        return Configuration(
            boundary=self.boundary.copy(),
            objects=[replace(obj) for obj in self.objects],
            periodic=self.periodic,
            topology=self.topology,
            unchanged=self.unchanged,
            saved_energy=self.saved_energy,
        )

    # ------------------------------------------------------------------
    # Energy
    # ------------------------------------------------------------------
    def energy(self, force_field: ForceField) -> float:
        if not self.unchanged:
            total = 0.0
            for index, obj in enumerate(self.objects):
                if obj.dirty:
                    obj.energy = engine.object_contribution(self, force_field, index)
                    obj.dirty = False
                total += obj.energy
            self.saved_energy = total
            self.unchanged = True
        return self.saved_energy / 2.0

    def invalidate_all(self) -> None:
        for obj in self.objects:
            obj.dirty = True
        self.unchanged = False

    def invalidate_within(self, distance: float, index: int) -> None:
        """Mark dirty every other object whose centre is closer than ``distance`` to object ``index``."""
        obj = self.objects[index]
        self.invalidate_around(obj.x, obj.y, distance, skip=index)

    def invalidate_around(self, x: float, y: float, distance: float, skip: Optional[int] = None) -> None:
        for j, other in enumerate(self.objects):
            if j != skip and engine.separation(self, x, y, other.x, other.y) < distance:
                other.dirty = True
        self.unchanged = False

    def interaction_range(self, force_field: ForceField) -> float:
        """Centre distance beyond which two objects cannot interact."""
        extent = self.topology.max_extent() if self.topology is not None else 0.0
        return force_field.cut_off + 2.0 * extent

    # ------------------------------------------------------------------
    # Moves
    # ------------------------------------------------------------------
    def move(
        self, index: int, d_max: float, rng: random.Random, reach: Optional[float] = None
    ) -> Tuple[float, float]:
        """
        Displace object ``index`` and give it a new orientation.

        The step length is exponential with scale ``d_max`` in a uniform
        direction, then the object turns by a uniform angle in [-2pi, 2pi].
        Periodic configurations wrap the position back into the cell; other
        boundaries are enforced by the boundary energy. Objects within
        ``reach`` of the old or the new position are marked dirty; without a
        reach every object is. Returns the previous position.
        """
        obj = self.objects[index]
        old = (obj.x, obj.y)
        step = rng.expovariate(1.0 / d_max) if d_max > 0.0 else 0.0
        angle = rng.uniform(0.0, TWO_PI)
        obj.x += step * math.cos(angle)
        obj.y += step * math.sin(angle)
        if self.periodic:
            obj.x %= self.boundary.width
            obj.y %= self.boundary.height
        obj.theta = (obj.theta + rng.uniform(-TWO_PI, TWO_PI)) % TWO_PI
        self._invalidate_move(index, old, reach)
        return old

    def rotate(self, index: int, theta_max: float, rng: random.Random, reach: Optional[float] = None) -> None:
        obj = self.objects[index]
        obj.theta = (obj.theta + rng.uniform(-theta_max, theta_max)) % TWO_PI
        self._invalidate_move(index, (obj.x, obj.y), reach)

    def _invalidate_move(self, index: int, old: Tuple[float, float], reach: Optional[float]) -> None:
        if reach is None:
            self.invalidate_all()
            return
        self.objects[index].dirty = True
        self.invalidate_around(old[0], old[1], reach, skip=index)
        self.invalidate_within(reach, index)

    def expand(self, scale: float, max_try: Optional[int] = None, rng: Optional[random.Random] = None) -> bool:
        """
        Scale the boundary and every position by ``scale``; orientations are kept.

        With ``max_try`` the clashing objects are jiggled up to that many
        times. Returns True when clashes remain.
        """
        self.boundary.expand(scale)
        for obj in self.objects:
            obj.x *= scale
            obj.y *= scale
        self.invalidate_all()
        if max_try:
            rng = rng or random.Random()
            for _ in range(max_try):
                if not self.test_clash():
                    break
                self.jiggle(rng)
        return self.test_clash()

    def jiggle(self, rng: random.Random, d_max: float = 1.0) -> None:
        """Shake every object involved in a pair clash, keeping it inside the walls."""
        for index in range(len(self.objects)):
            if not self.has_clash(index):
                continue
            obj = self.objects[index]
            saved = replace(obj)
            self.move(index, d_max, rng)
            self.rotate(index, math.pi, rng)
            if engine.boundary_clash(self, obj):
                self.objects[index] = saved
            self.objects[index].dirty = True
        self.unchanged = False

    # ------------------------------------------------------------------
    # Overlap predicates
    # ------------------------------------------------------------------
    def has_clash(self, index: int) -> bool:
        obj = self.objects[index]
        return any(
            engine.objects_clash(self, obj, other) for j, other in enumerate(self.objects) if j != index
        )

    def test_clash(self, new_object: Optional[PlacedObject] = None) -> bool:
        """
        Without an argument: does any pair of objects overlap?

        With ``new_object``: would inserting it overlap a wall or any
        existing object?
        """
        if new_object is None:
            for i, obj in enumerate(self.objects):
                for other in self.objects[:i]:
                    if engine.objects_clash(self, obj, other):
                        return True
            return False
        if engine.boundary_clash(self, new_object):
            return True
        return any(engine.objects_clash(self, other, new_object) for other in self.objects)

    # ------------------------------------------------------------------
    # Boundary handling
    # ------------------------------------------------------------------
    def set_periodic(self, periodic: bool) -> bool:
        """Enable or disable periodicity; polygons are canonicalised to rectangles first."""
        if not periodic:
            self.periodic = False
            self.invalidate_all()
            return True
        if not self.boundary.is_rectangle:
            if not self.boundary.polygon.is_parallelogram() or not self.poly_to_rect():
                logger.warning("Periodic conditions for non-rectangular configurations not supported - ignoring flag")
                return False
        self.periodic = True
        self.invalidate_all()
        return True

    def set_polygon(self, polygon: Polygon) -> None:
        self.boundary = Boundary.from_polygon(polygon)
        self.periodic = False
        self.invalidate_all()

    def rect_to_poly(self) -> bool:
        if not self.boundary.is_rectangle:
            return False
        w, h = self.boundary.width, self.boundary.height
        self.set_polygon(Polygon([(0.0, 0.0), (0.0, h), (w, h), (w, 0.0)]))
        return True

    def poly_to_rect(self) -> bool:
        """
        Turn a rectangular polygon into a rectangle anchored at the origin.

        The frame is translated and rotated so that the bottom edge lies on
        the x axis; objects follow. Sheared parallelograms are left untouched
        and False is returned.
        """
        if self.boundary.is_rectangle:
            return True
        poly = self.boundary.polygon.copy()
        if not poly.is_parallelogram():
            return False
        poly.order_vertices()
        x0, y0 = poly.vertex(0)
        x3, y3 = poly.vertex(3)
        angle = math.atan2(y3 - y0, x3 - x0)
        poly.translate(-x0, -y0)
        poly.rotate(angle)
        if not poly.is_axis_aligned_rectangle():
            logger.warning("Boundary is a sheared parallelogram; it cannot become a periodic rectangle.")
            return False
        self.translate(-x0, -y0)
        self.rotate_frame(angle)
        width = poly.width()
        height = poly.height()
        self.boundary = Boundary.rectangle(width, height)
        self.invalidate_all()
        return True

    def translate(self, dx: float, dy: float) -> None:
        """Shift objects and, for polygons, the boundary."""
        if not self.boundary.is_rectangle:
            self.boundary.polygon.translate(dx, dy)
        for obj in self.objects:
            obj.x += dx
            obj.y += dy
        self.invalidate_all()

    def rotate_frame(self, angle: float) -> None:
        """Rotate the whole frame clockwise about the origin; objects turn with it."""
        if self.boundary.is_rectangle:
            raise InvariantError("Only polygon boundaries can be rotated; convert with rect_to_poly first.")
        self.boundary.polygon.rotate(angle)
        self.boundary._refresh_extent()
        c = math.cos(angle)
        s = math.sin(angle)
        for obj in self.objects:
            obj.x, obj.y = obj.x * c + obj.y * s, -obj.x * s + obj.y * c
            obj.theta = (obj.theta - angle) % TWO_PI
        self.invalidate_all()

    def atom_centres(self) -> List[Tuple[float, float]]:
        if self.topology is None:
            return [(obj.x, obj.y) for obj in self.objects]
        return [(x, y) for obj in self.objects for _, x, y, _ in engine.world_atoms(self, obj)]

    def convex_hull(self, inflate: float = 0.0) -> Polygon:
        return convex_hull(self.atom_centres(), inflate)

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------
    def rms(self, ref: "Configuration") -> float:
        """Root mean square distance between corresponding atoms (or centres)."""
        if ref.n_objects() != self.n_objects():
            raise InvariantError(f"Cannot compare {self.n_objects()} objects with {ref.n_objects()}.")
        mine = self.atom_centres()
        theirs = ref.atom_centres()
        if len(mine) != len(theirs):
            raise InvariantError("Configurations hold different molecules.")
        if not mine:
            return 0.0
        total = sum((x1 - x2) ** 2 + (y1 - y2) ** 2 for (x1, y1), (x2, y2) in zip(mine, theirs))
        return math.sqrt(total / len(mine))

    def problems(self) -> List[str]:
        found: List[str] = []
        if not self.boundary.is_rectangle and self.boundary.polygon.n_vertices < 3:
            found.append(f"Boundary polygon has only {self.boundary.polygon.n_vertices} vertices.")
        if self.periodic and not self.boundary.is_rectangle:
            found.append("Periodic conditions are set on a polygon boundary.")
        for index, obj in enumerate(self.objects):
            if self.topology is not None and not 0 <= obj.molecule_type < self.topology.n_molecules:
                found.append(f"Object {index} has invalid type {obj.molecule_type}.")
            if not self.periodic and not self._centre_inside(obj):
                found.append(f"Object {index} at ({obj.x:g}, {obj.y:g}) lies outside the boundary.")
        return found

    def check(self) -> bool:
        return not self.problems()

    def _centre_inside(self, obj: PlacedObject) -> bool:
        if self.boundary.is_rectangle:
            return 0.0 <= obj.x <= self.boundary.width and 0.0 <= obj.y <= self.boundary.height
        return self.boundary.polygon.is_inside(obj.x, obj.y)

    def summary(self, force_field: Optional[ForceField] = None) -> str:
        if self.boundary.is_rectangle:
            shape = f"rectangle {self.boundary.width:g} x {self.boundary.height:g}"
        else:
            shape = f"polygon with {self.boundary.polygon.n_vertices} vertices"
        lines = [
            f"Configuration of {self.n_objects()} objects",
            f"Boundary is {shape}{' (periodic)' if self.periodic else ''}",
            f"Area {self.area():g}, density {self.n_objects() / self.area() if self.area() else 0.0:g}",
        ]
        if force_field is not None and self.topology is not None:
            lines.append(f"Energy {self.energy(force_field):g}")
        return "\n".join(lines)
