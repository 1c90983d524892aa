"""
Gravity solvers.

Two interchangeable strategies fill the lattice acceleration field:

``SolverMode.NAIVE_NBODY``
    Softened inverse-square attraction over every unordered cell pair,
    applying equal and opposite contributions per pair. O(N^2) time;
    pairs are visited in row blocks, so memory is O(BLOCK_SIZE * N).

``SolverMode.RELATIONAL_LATTICE``
    Each cell sums the precomputed ``RelationalKernel`` weights of its
    six axis neighbours, scaled by neighbour mass. O(N * 6). Reaction
    forces are not applied, so momentum and energy are not conserved
    exactly; edge cells simply see fewer neighbours.

Both strategies start by zeroing every acceleration, so the integrator
can run without knowing which one produced the field.
"""

from __future__ import annotations

import numpy as np

from .config import GravityParams, SolverMode
from .kernel import RelationalKernel
from .lattice import LatticeState
from .types import pair_blocks


class GravitySolver:
    """Dispatch between the pairwise and relational strategies."""

    def __init__(self, params: GravityParams, kernel: RelationalKernel):
        self.params = params
        self.kernel = kernel

    def compute(self, lattice: LatticeState) -> None:
        """Zero and repopulate ``lattice.acceleration`` for one step."""
        lattice.reset_accelerations()
        if not self.params.enabled:
            return
        mode = self.params.mode
        if mode is SolverMode.NAIVE_NBODY:
            self.naive_nbody(lattice)
        elif mode is SolverMode.RELATIONAL_LATTICE:
            self.relational_lattice(lattice)
        else:
            raise ValueError(f"unsupported solver mode: {mode!r}")

    # ------------------------------------------------------------------
    # Strategies

    def naive_nbody(self, lattice: LatticeState) -> None:
        n = len(lattice)
        if n < 2:
            return
        for idx_i, idx_j in pair_blocks(n):
            self._apply_pairs(lattice, idx_i, idx_j)

    def _apply_pairs(self, lattice: LatticeState, idx_i: np.ndarray, idx_j: np.ndarray) -> None:
        g = self.params.g_effective
        softening2 = self.params.softening_length * self.params.softening_length
        m_i = lattice.mass[idx_i]
        m_j = lattice.mass[idx_j]
        displacement = lattice.positions[idx_j] - lattice.positions[idx_i]
        dist2 = np.einsum("ij,ij->i", displacement, displacement) + softening2
        valid = (dist2 > 0.0) & (m_i > 0.0) & (m_j > 0.0)
        if not np.any(valid):
            return
        idx_i, idx_j = idx_i[valid], idx_j[valid]
        m_i, m_j = m_i[valid], m_j[valid]
        inv_dist3 = dist2[valid] ** -1.5
        # force on i from j; j receives the negation
        force = displacement[valid] * (g * m_i * m_j * inv_dist3)[:, None]
        np.add.at(lattice.acceleration, idx_i, force / m_i[:, None])
        np.add.at(lattice.acceleration, idx_j, -force / m_j[:, None])

    def relational_lattice(self, lattice: LatticeState) -> None:
        if len(lattice) == 0:
            return
        g = self.params.g_effective
        # scalar gain damping the kernel, not a distance softening
        softened_gain = 1.0 / (1.0 + max(self.params.softening_length, 0.0))
        mass_field = lattice.mass_field()
        coords = lattice.grid_coords
        accel = lattice.acceleration
        for offset, weight in zip(self.kernel.offsets, self.kernel.weights):
            neighbour = coords + offset
            inside = lattice.in_bounds(neighbour)
            if not np.any(inside):
                continue
            neighbour_mass = mass_field[lattice.flat_index(neighbour[inside])]
            accel[inside] += weight[None, :] * (g * neighbour_mass * softened_gain)[:, None]
