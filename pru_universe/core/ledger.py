"""
Ledger subsystem responsible for energy bookkeeping.

This module recomputes kinetic, potential and total mechanical energy
from the lattice once per frame and tracks the relative drift of the
total against the first non-trivial value it observed. The drift is a
conservation self-check: with zero damping and the pairwise solver it
should stay near zero, while the relational solver drops reaction
forces and drifts by construction. Drift is surfaced as a value and a
log line, never as an error.

The potential is always the pairwise softened form regardless of the
active solver, so this pass stays O(N^2) in time. Pairs are visited in
row blocks to keep memory linear in N.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

from .config import GravityParams
from .lattice import LatticeState
from .types import pair_blocks

logger = logging.getLogger(__name__)

#: Totals at or below this magnitude are not used as a drift baseline
ENERGY_EPSILON = 1e-9


@dataclass
class SimulationEnergy:
    """Energy diagnostics for the latest frame."""

    kinetic: float = 0.0
    potential: float = 0.0
    total: float = 0.0
    initial_total: Optional[float] = None
    relative_drift: Optional[float] = None


class EnergyLedger:
    """Recompute energy totals and track drift."""

    def __init__(self, params: GravityParams, drift_warning: float = 0.05):
        self.params = params
        self.drift_warning = drift_warning
        self.energy = SimulationEnergy()
        self._warned = False

    @staticmethod
    def kinetic_energy(mass: np.ndarray, velocity: np.ndarray) -> float:
        """Return ``sum(0.5 * m * |v|^2)`` over all cells."""
        speed_sq = np.einsum("ij,ij->i", velocity, velocity)
        total = float(0.5 * np.dot(mass, speed_sq))
        if not math.isfinite(total):
            return float("inf")
        return total

    def potential_energy(self, lattice: LatticeState) -> float:
        n = len(lattice)
        if n < 2:
            return 0.0
        softening2 = self.params.softening_length * self.params.softening_length
        total = 0.0
        for idx_i, idx_j in pair_blocks(n):
            displacement = lattice.positions[idx_j] - lattice.positions[idx_i]
            distance = np.sqrt(np.einsum("ij,ij->i", displacement, displacement) + softening2)
            nonzero = distance > 0.0
            total += float(
                np.sum(
                    lattice.mass[idx_i[nonzero]]
                    * lattice.mass[idx_j[nonzero]]
                    / distance[nonzero]
                )
            )
        return -self.params.g_effective * total

    def update(self, lattice: LatticeState) -> SimulationEnergy:
        """Recompute all totals from scratch and refresh the drift."""
        e = self.energy
        e.kinetic = self.kinetic_energy(lattice.mass, lattice.velocity)
        e.potential = self.potential_energy(lattice)
        e.total = e.kinetic + e.potential

        if e.initial_total is None and abs(e.total) > ENERGY_EPSILON:
            e.initial_total = e.total
            logger.info("energy baseline captured: %.6f", e.total)

        if e.initial_total is not None and abs(e.initial_total) > ENERGY_EPSILON:
            e.relative_drift = (e.total - e.initial_total) / e.initial_total
            self._check_drift(e.relative_drift)
        return e

    def reset_baseline(self) -> None:
        """Forget the captured initial total; the next update recaptures it."""
        self.energy.initial_total = None
        self.energy.relative_drift = None
        self._warned = False

    def _check_drift(self, drift: float) -> None:
        exceeded = abs(drift) > self.drift_warning
        if exceeded and not self._warned:
            logger.warning("energy drift %.3e exceeds %.3e", drift, self.drift_warning)
        self._warned = exceeded
