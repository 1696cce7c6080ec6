"""
Replica-exchange (parallel tempering) driver.

R chains run at inverse temperatures beta_0 < ... < beta_{R-1} = beta_max;
``order[r]`` is the replica currently holding ladder position r, so the
hottest chain sits at position 0. Every round advances all chains by the
same number of trials, joins them, and then (on schedule) attempts swaps
between neighbouring ladder positions and retunes the ladder. With a
single replica this is a plain NVT run.
"""

from __future__ import annotations

import logging
import math
import random
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, TextIO

from .configuration import Configuration
from .errors import InvariantError
from .file_formats import write_frame
from .force_field import ForceField
from .integrator import Integrator
from .settings_loader import SamplerSettings

logger = logging.getLogger(__name__)

MAX_REPLICAS = 1000
SPRING_OFFSET = 0.2

# Chain i draws from seed + i; the auxiliary streams sit below the master seed.
COORDINATOR_SEED_OFFSET = -1
JIGGLE_SEED_OFFSET = -2


def replica_file_name(root: str, index: int) -> str:
    """Insert a three-digit replica index before the extension: ``run.log`` -> ``run007.log``."""
    if not 0 <= index < MAX_REPLICAS:
        raise InvariantError(f"Replica index {index} does not fit in three digits.")
    path = Path(root)
    return str(path.with_name(f"{path.stem}{index:03d}{path.suffix}"))


def jiggle_random(seed: int) -> random.Random:
    """Stream for the overlap relaxation that precedes sampling, distinct from every chain."""
    return random.Random(seed + JIGGLE_SEED_OFFSET)


def replica_logger(index: int) -> logging.Logger:
    return logging.getLogger(f"{__name__}.{index:03d}")


@dataclass
class Replica:
    """One chain: its temperature, its own state and integrator, and its output sinks."""

    index: int
    beta: float
    pressure: float
    state: Configuration
    integrator: Integrator
    energy: float = 0.0
    trajectory: Optional[TextIO] = None

    @property
    def log(self) -> logging.Logger:
        return replica_logger(self.index)


class ReplicaExchange:
    """Coordinator for R chains sharing a read-only force field and topology."""

    def __init__(
        self,
        initial: Configuration,
        force_field: ForceField,
        beta: float,
        pressure: float,
        n_replicas: int = 1,
        *,
        settings: Optional[SamplerSettings] = None,
        seed: Optional[int] = None,
        trajectories: Optional[Sequence[Optional[TextIO]]] = None,
    ):
        if not 1 <= n_replicas < MAX_REPLICAS:
            raise InvariantError(f"Replica count must be between 1 and {MAX_REPLICAS - 1}, got {n_replicas}.")
        self.settings = settings or SamplerSettings()
        if seed is None:
            seed = self.settings.seed if self.settings.seed is not None else random.SystemRandom().randrange(2**31)
        self.seed = seed
        self.force_field = force_field
        self.beta_max = float(beta)
        self.pressure = float(pressure)
        self.random = random.Random(seed + COORDINATOR_SEED_OFFSET)

        d_max = self.settings.integrator.initial_d_max
        if d_max is None:
            d_max = min(initial.width(), initial.height()) / 2.0

        self.replicas: List[Replica] = []
        for index in range(n_replicas):
            integrator = Integrator.from_settings(
                force_field, self.settings.integrator, d_max=d_max, rng=random.Random(seed + index)
            )
            replica = Replica(
                index=index,
                beta=self.beta_max * (index + 1) / n_replicas,
                pressure=self.pressure,
                state=initial.clone(),
                integrator=integrator,
                trajectory=trajectories[index] if trajectories else None,
            )
            replica.energy = replica.state.energy(force_field)
            self.replicas.append(replica)
            logger.debug("Copied configuration %d, beta = %g", index, replica.beta)

        self.order: List[int] = list(range(n_replicas))
        self.swaps: List[int] = [0] * n_replicas
        self.exchange_count = 0
        self.exchange_attempts = 0

        n_objects = max(initial.n_objects(), 1)
        self.exchange_interval = self.settings.replica.exchange_factor * n_objects
        self.adjust_interval = self.settings.replica.adjust_every * self.exchange_interval

    @property
    def n_replicas(self) -> int:
        return len(self.replicas)

    def ladder(self) -> List[float]:
        """Inverse temperatures by ladder position, hottest first."""
        return [self.replicas[i].beta for i in self.order]

    def coldest(self) -> Replica:
        return self.replicas[self.order[-1]]

    # ------------------------------------------------------------------
    # Chains
    # ------------------------------------------------------------------
    def advance(self, replica: Replica, start: int, n_steps: int, print_freq: int, frame_freq: int) -> None:
        replica.state = replica.integrator.run(replica.state, replica.beta, replica.pressure, n_steps)
        done = start + n_steps
        if print_freq > 0 and done % print_freq == 0:
            replica.log.info(
                "After %d steps, P = %g, beta = %g\n%s\n%s",
                done,
                replica.pressure,
                replica.beta,
                replica.state.summary(self.force_field),
                replica.integrator.report(),
            )
        if replica.trajectory is not None and frame_freq > 0 and done % frame_freq == 0:
            write_frame(replica.state, replica.trajectory, done)
        replica.energy = replica.state.energy(self.force_field)

    def advance_all(self, start: int, n_steps: int, print_freq: int = 0, frame_freq: int = 0) -> None:
        """Advance every chain by ``n_steps`` and return only when all have finished."""
        workers = min(self.settings.replica.workers, self.n_replicas)
        if workers <= 1:
            for replica in self.replicas:
                self.advance(replica, start, n_steps, print_freq, frame_freq)
            return
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [
                pool.submit(self.advance, replica, start, n_steps, print_freq, frame_freq)
                for replica in self.replicas
            ]
            for future in futures:
                future.result()

    # ------------------------------------------------------------------
    # Exchange and ladder
    # ------------------------------------------------------------------
    def attempt_exchange(self) -> int:
        """Try to swap every neighbouring pair of ladder positions; return the number of swaps."""
        made = 0
        for r in range(self.n_replicas - 1):
            low = self.replicas[self.order[r]]
            high = self.replicas[self.order[r + 1]]
            delta = low.energy - high.energy
            beta_avg = (low.beta + high.beta) / 2.0
            exponent = -delta * beta_avg
            probability = 1.0 if exponent >= 0.0 else math.exp(exponent)
            if probability > self.random.random():
                logger.debug(
                    "Swapping %d and %d with energies %g and %g (delta = %g, betas %g and %g)",
                    r, r + 1, low.energy, high.energy, delta, low.beta, high.beta,
                )
                self.swaps[r] += 1
                self.exchange_count += 1
                low.beta, high.beta = high.beta, low.beta
                self.order[r], self.order[r + 1] = self.order[r + 1], self.order[r]
                made += 1
            self.exchange_attempts += 1
        return made

    def adjust_ladder(self) -> List[float]:
        """
        Respace the ladder as a chain of springs whose compliances grow with
        the observed swap counts, keeping the top at ``beta_max``.
        """
        n = self.n_replicas
        factor = (n - 1.0) / max(self.exchange_count, 1)
        compliances = [1.0]
        for r in range(1, n):
            compliances.append(compliances[r - 1] + (self.swaps[r - 1] + SPRING_OFFSET) * factor)
        for r in range(n):
            self.replicas[self.order[r]].beta = compliances[r] * self.beta_max / compliances[-1]
        logger.info(
            "Made %d out of %d swaps; swaps per edge %s",
            self.exchange_count,
            self.exchange_attempts,
            self.swaps[: n - 1],
        )
        self.exchange_count = 0
        self.exchange_attempts = 0
        self.swaps = [0] * n
        ladder = self.ladder()
        logger.info("Betas adjusted to: %s", ", ".join(f"{b:g}" for b in ladder))
        return ladder

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------
    def run(self, n_steps: int, print_freq: int, frame_freq: int = 0) -> Configuration:
        """Run ``n_steps`` trials per chain and return the coldest chain's final state."""
        if n_steps <= 0 or print_freq <= 0:
            raise InvariantError("Step count and print frequency must be positive.")
        done = 0
        while done < n_steps:
            step = min(n_steps - done, print_freq - done % print_freq)
            if frame_freq > 0:
                step = min(step, frame_freq - done % frame_freq)
            if self.n_replicas > 1:
                step = min(step, self.exchange_interval - done % self.exchange_interval)

            self.advance_all(done, step, print_freq, frame_freq)
            done += step

            if self.n_replicas > 1:
                if done % self.exchange_interval == 0:
                    self.attempt_exchange()
                if done % self.adjust_interval == 0:
                    self.adjust_ladder()
        coldest = self.coldest()
        logger.info("Final coldest configuration from replica %d", coldest.index)
        return coldest.state
