"""
Triangle well potential with a steep linear hard core.

For atom types t1, t2 with hard radii R1, R2 and separation r:

    d = r - (R1 + R2)
    u = big_energy * (1 - d / (R1 + R2))     if d < 0
      = epsilon[t1][t2] * (1 - d / length)   if 0 <= d < length
      = 0                                    otherwise, and always for r >= cut_off
"""

from __future__ import annotations

from typing import List, Optional, Sequence

BIG_ENERGY = 1.0e7
DEFAULT_COLOUR = "red"


class ForceField:
    """
    Radial pair potential parameters indexed by atom type.

    Radii here duplicate the topology radii; they are used by the hard core
    and by plotting tools. Symmetry of the well-depth matrix is expected but
    not enforced.
    """

    def __init__(
        self,
        radii: Sequence[float],
        energies: Sequence[Sequence[float]],
        *,
        cut_off: float,
        length: float,
        colours: Optional[Sequence[str]] = None,
        big_energy: float = BIG_ENERGY,
    ):
        n_types = len(radii)
        if len(energies) != n_types or any(len(row) != n_types for row in energies):
            raise ValueError(f"Energy matrix must be {n_types}x{n_types}.")
        if colours is not None and len(colours) != n_types:
            raise ValueError(f"Expected {n_types} colours, got {len(colours)}.")
        self.radii: List[float] = [float(r) for r in radii]
        self.energies: List[List[float]] = [[float(e) for e in row] for row in energies]
        self.colours: List[str] = list(colours) if colours is not None else [DEFAULT_COLOUR] * n_types
        self.cut_off = float(cut_off)
        self.length = float(length)
        self.big_energy = float(big_energy)

    @classmethod
    def hard_disc(cls, radius: float) -> "ForceField":
        """Single atom type with no attraction and a cutoff of two radii."""
        return cls([radius], [[0.0]], cut_off=2.0 * radius, length=radius, colours=[DEFAULT_COLOUR])

    @property
    def n_types(self) -> int:
        return len(self.radii)

    def size(self, atom_type: int) -> float:
        return self.radii[atom_type]

    def colour(self, atom_type: int) -> str:
        return self.colours[atom_type]

    def epsilon(self, t1: int, t2: int) -> float:
        return self.energies[t1][t2]

    def max_radius(self) -> float:
        return max(self.radii, default=0.0)

    def is_symmetric(self) -> bool:
        n = self.n_types
        return all(self.energies[i][j] == self.energies[j][i] for i in range(n) for j in range(i + 1, n))

    def interaction(self, t1: int, t2: int, r: float) -> float:
        if r >= self.cut_off:
            return 0.0
        assert t1 < self.n_types and t2 < self.n_types, "atom type outside the force field"
        hard = self.radii[t1] + self.radii[t2]
        d = r - hard
        if d < 0.0:
            return self.big_energy * (1.0 - d / hard)
        if d < self.length:
            return self.energies[t1][t2] * (1.0 - d / self.length)
        return 0.0

    def summary(self) -> str:
        lines = [
            f"Cut off is {self.cut_off:g}",
            f"Length scale is {self.length:g}",
            f"Number of atom types is {self.n_types}",
            "Colours are [" + ", ".join(self.colours) + "]",
            "Radius array is [" + ", ".join(f"{r:7.3g}" for r in self.radii) + "]",
            "Energy array is",
        ]
        for row in self.energies:
            lines.append("    [" + ", ".join(f"{e:7.3g}" for e in row) + "]")
        return "\n".join(lines)
