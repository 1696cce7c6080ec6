"""
Metropolis trial-move integrator for the NVT ensemble.

Each trial clones the current configuration, moves one randomly chosen
object, refreshes the cached energies of the objects that can feel the
move, and accepts the candidate with probability min(1, exp(-beta * dE)).
The maximum displacement is retuned every ``i_adjust`` trials to keep the
acceptance ratio inside the target band.
"""

from __future__ import annotations

import logging
import math
import random
from typing import Optional

from .configuration import Configuration
from .errors import PlacementError
from .force_field import ForceField
from .settings_loader import IntegratorSettings

logger = logging.getLogger(__name__)


class Integrator:
    """Trial-move engine bound to a shared, read-only force field."""

    def __init__(
        self,
        force_field: ForceField,
        *,
        d_max: float = 1.0,
        i_adjust: int = 1000,
        rng: Optional[random.Random] = None,
        low_acceptance: float = 0.3,
        high_acceptance: float = 0.7,
        shrink_factor: float = 3.9,
        grow_factor: float = 3.0,
    ):
        self.force_field = force_field
        self.d_max = float(d_max)
        self.i_adjust = int(i_adjust)
        self.random = rng if rng is not None else random.Random()
        self.low_acceptance = low_acceptance
        self.high_acceptance = high_acceptance
        self.shrink_factor = shrink_factor
        self.grow_factor = grow_factor
        self.n_good = 0
        self.n_bad = 0
        self.n_step = 0

    @classmethod
    def from_settings(
        cls,
        force_field: ForceField,
        settings: IntegratorSettings,
        *,
        d_max: float,
        rng: Optional[random.Random] = None,
    ) -> "Integrator":
        return cls(
            force_field,
            d_max=d_max,
            i_adjust=settings.i_adjust,
            rng=rng,
            low_acceptance=settings.low_acceptance,
            high_acceptance=settings.high_acceptance,
            shrink_factor=settings.shrink_factor,
            grow_factor=settings.grow_factor,
        )

    def acceptance_ratio(self) -> float:
        tried = self.n_good + self.n_bad
        return self.n_good / tried if tried else 0.0

    def _recalibrate(self, state: Configuration) -> None:
        if self.n_good + self.n_bad == 0:
            return
        ratio = self.acceptance_ratio()
        if ratio < self.low_acceptance:
            self.d_max /= self.shrink_factor
        elif ratio > self.high_acceptance:
            self.d_max *= self.grow_factor
        self.d_max = min(self.d_max, state.width(), state.height())
        logger.debug("Step %d: acceptance %.3f, d_max now %g", self.n_step, ratio, self.d_max)
        self.n_good = 0
        self.n_bad = 0

    def step(self, state: Configuration, beta: float) -> Configuration:
        """Perform one trial move and return the state that survives it."""
        if self.n_step > 0 and self.n_step % self.i_adjust == 0:
            self._recalibrate(state)

        candidate = state.clone()
        index = int(self.random.random() * candidate.n_objects())
        reach = candidate.interaction_range(self.force_field)
        candidate.move(index, self.d_max, self.random, reach)

        delta = candidate.energy(self.force_field) - state.energy(self.force_field)
        if delta <= 0.0:
            probability = 1.0
        else:
            probability = math.exp(-beta * delta)

        self.n_step += 1
        if self.random.random() <= probability:
            self.n_good += 1
            return candidate
        self.n_bad += 1
        return state

    def run(self, state: Configuration, beta: float, pressure: float, n_steps: int) -> Configuration:
        """
        Run exactly ``n_steps`` trials and return the final state.

        ``pressure`` is accepted for interface symmetry with constant-pressure
        ensembles and does not enter the NVT acceptance rule.
        """
        if state.n_objects() == 0:
            self.n_step += n_steps
            return state
        for _ in range(n_steps):
            state = self.step(state, beta)
        return state

    def report(self) -> str:
        return (
            f"Integrator: d_max = {self.d_max:g}, steps = {self.n_step}, "
            f"accepted = {self.n_good}, rejected = {self.n_bad}, "
            f"ratio = {self.acceptance_ratio():.3f}"
        )


def relax_overlaps(
    state: Configuration,
    force_field: ForceField,
    beta: float,
    pressure: float,
    *,
    d_max: float = 0.5,
    steps_per_object: int = 2000,
    rng: Optional[random.Random] = None,
) -> Configuration:
    """
    Remove hard-core overlaps left by a lossy save/load.

    Small-step Metropolis rounds of 2N trials run until the energy drops
    below ``big_energy``. PlacementError is raised once more than
    ``steps_per_object * N`` trials have been spent.
    """
    n_objects = state.n_objects()
    energy = state.energy(force_field)
    if energy < force_field.big_energy:
        logger.info("No jiggle is necessary.")
        return state
    logger.info("Jiggle is necessary (energy %g).", energy)

    integrator = Integrator(force_field, d_max=d_max, rng=rng)
    steps = 0
    while energy >= force_field.big_energy:
        if steps > steps_per_object * n_objects:
            raise PlacementError(
                f"Unable to adjust initial configuration in {steps} steps.",
                "Expand the configuration (shrinkconfig with a factor above 1) or rebuild it with more space.",
            )
        state = integrator.run(state, beta, pressure, 2 * n_objects)
        steps += 2 * n_objects
        energy = state.energy(force_field)
        logger.debug("After %d jiggle steps energy is %g", steps, energy)
    logger.info("After initial adjustments:\n%s", state.summary(force_field))
    return state
