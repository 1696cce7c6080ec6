"""
Construction and reshaping of configurations outside of sampling:
random initial placement, isotropic rescaling with clash removal, and
wrapping a configuration in its inflated convex hull.
"""

from __future__ import annotations

import logging
import math
import random
from typing import Optional, Sequence

from .configuration import Boundary, Configuration, PlacedObject
from .errors import InvariantError, PlacementError
from .topology import Topology

logger = logging.getLogger(__name__)

MAX_TESTS = 1000
DEFAULT_RADIUS = 1.0
WRAP_MARGIN = 1e-6

PLACEMENT_REMEDY = (
    "You could try increasing the number of attempts with the -a option, "
    "or placing the objects in a larger area (-d) and then resizing the "
    "configuration with shrinkconfig."
)


def build_configuration(
    counts: Sequence[int],
    width: float,
    height: float,
    *,
    topology: Optional[Topology] = None,
    scale: float = 1.0,
    max_try: int = MAX_TESTS,
    periodic: bool = False,
    rng: Optional[random.Random] = None,
) -> Configuration:
    """
    Place ``counts[i]`` objects of molecule type i at random without overlaps.

    Objects are placed in a (width/scale) x (height/scale) rectangle which is
    expanded by ``scale`` afterwards. Without a topology a unit hard disc is
    used and one extra disc molecule is added for every further type.
    """
    if width <= 0.0 or height <= 0.0:
        raise InvariantError(f"Negative or zero surface area {width:g} x {height:g}.")
    if scale <= 0.0:
        raise InvariantError(f"Scale must be positive, got {scale:g}.")
    rng = rng or random.Random()
    default_topology = topology is None
    if default_topology:
        topology = Topology.single_disc(DEFAULT_RADIUS)

    config = Configuration(boundary=Boundary.rectangle(width / scale, height / scale), periodic=periodic)
    config.add_topology(topology)

    for molecule_type, count in enumerate(counts):
        if default_topology and molecule_type > 0:
            topology.add_molecule(DEFAULT_RADIUS)
        if molecule_type >= topology.n_molecules:
            raise InvariantError(
                f"The topology does not contain sufficient molecule types ({molecule_type + 1} required)."
            )
        logger.debug("Adding %d objects of type %d.", count, molecule_type)
        for _ in range(count):
            config.add_object(_place(config, molecule_type, max_try, rng))

    logger.debug("Finished placing objects.")
    if scale != 1.0:
        config.expand(scale)
    return config


def _place(config: Configuration, molecule_type: int, max_try: int, rng: random.Random) -> PlacedObject:
    for _ in range(max_try):
        candidate = PlacedObject(
            molecule_type,
            rng.uniform(0.0, config.width()),
            rng.uniform(0.0, config.height()),
            rng.uniform(0.0, 2.0 * math.pi),
        )
        if not config.test_clash(candidate):
            return candidate
    raise PlacementError(
        f"Unable to place object {config.n_objects()} of type {molecule_type} without collisions "
        f"after {max_try} attempts.",
        PLACEMENT_REMEDY,
    )


def shrink_configuration(
    config: Configuration,
    scale: float,
    *,
    max_try: int = 1,
    rng: Optional[random.Random] = None,
) -> bool:
    """Rescale ``config`` in place by ``scale``; return True when clashes remain."""
    if scale <= 0.0:
        raise InvariantError(f"Scale must be positive, got {scale:g}.")
    if config.topology is None:
        config.add_topology(Topology.single_disc(DEFAULT_RADIUS))
    remaining = config.expand(scale, max_try, rng)
    if remaining:
        logger.warning("Unable to remove clashes... try increasing attempts or scale")
    return remaining


def wrap_configuration(config: Configuration) -> Configuration:
    """
    Replace the boundary by the convex hull of all atom centres pushed out
    by the largest atom radius. The result is never periodic.
    """
    if config.topology is None:
        config.add_topology(Topology.single_disc(DEFAULT_RADIUS))
    try:
        hull = config.convex_hull(config.topology.max_radius() + WRAP_MARGIN)
    except ValueError as exc:
        raise InvariantError(f"Cannot wrap configuration: {exc}") from exc
    config.set_polygon(hull)
    logger.debug("Wrapped in a polygon of %d vertices, area %g", hull.n_vertices, hull.area())
    return config
