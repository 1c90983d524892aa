"""
Derived scalar fields computed from the lattice locks.

The field computer turns per-cell lock values into two smoothed
scalars: a Gaussian-weighted ``local_density`` and a
``curvature_proxy`` measuring how far a cell's geometry lock departs
from its neighbourhood average. Both are recomputed from scratch each
frame over all cell pairs, a block of rows at a time, so the pass is a
pure function of the lattice state.

Rolling summary statistics are kept in ``FieldMetrics`` for display.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Optional

import numpy as np

from .config import DENSITY_HISTORY_CAPACITY
from .lattice import LatticeState
from .types import row_blocks

#: Smoothing radius expressed in lattice spacings
SMOOTHING_RADIUS_FACTOR = 2.5


@dataclass
class FieldMetrics:
    """Rolling metrics over the derived fields.

    Attributes:
        avg_density: Mean local density over all cells.
        min_density: Smallest local density.
        max_density: Largest local density.
        avg_curvature: Mean absolute curvature proxy.
        density_history: Bounded FIFO of ``avg_density`` samples.
    """

    avg_density: float = 0.0
    min_density: float = 0.0
    max_density: float = 0.0
    avg_curvature: float = 0.0
    density_history: Deque[float] = field(
        default_factory=lambda: deque(maxlen=DENSITY_HISTORY_CAPACITY)
    )


class FieldComputer:
    """Compute ``local_density`` and ``curvature_proxy`` for every cell."""

    def __init__(self, spacing: float, history_capacity: int = DENSITY_HISTORY_CAPACITY):
        self.smoothing_radius = SMOOTHING_RADIUS_FACTOR * spacing
        self.sigma = self.smoothing_radius * 0.5
        self.metrics = FieldMetrics(density_history=deque(maxlen=max(1, history_capacity)))

    def weights(self, positions: np.ndarray, others: Optional[np.ndarray] = None) -> np.ndarray:
        """Return Gaussian weights between ``positions`` rows and ``others``.

        With ``others`` omitted this is the (N, N) matrix of the set
        against itself, self weights included.
        """
        if others is None:
            others = positions
        diff = others[None, :, :] - positions[:, None, :]
        r2 = np.einsum("ijk,ijk->ij", diff, diff)
        return np.exp(-0.5 * r2 / (self.sigma * self.sigma))

    def compute(self, lattice: LatticeState) -> None:
        """Refresh the derived fields on ``lattice`` and update metrics."""
        n = len(lattice)
        if n == 0:
            return
        positions = lattice.positions
        density = np.empty(n, dtype=np.float64)
        wsum = np.empty(n, dtype=np.float64)
        neighbour_geom = np.empty(n, dtype=np.float64)
        for rows in row_blocks(n):
            w = self.weights(positions[rows], positions)
            density[rows] = w @ lattice.mass
            # curvature excludes the cell itself
            w[np.arange(w.shape[0]), np.arange(rows.start, rows.stop)] = 0.0
            wsum[rows] = w.sum(axis=1)
            neighbour_geom[rows] = w @ lattice.geom_lock
        np.maximum(density, 0.0, out=density)

        curvature = np.zeros(n, dtype=np.float64)
        has_neighbours = wsum > 0.0
        curvature[has_neighbours] = (
            lattice.geom_lock[has_neighbours]
            - neighbour_geom[has_neighbours] / wsum[has_neighbours]
        )

        lattice.local_density[:] = density
        lattice.curvature_proxy[:] = curvature
        self._update_metrics(density, curvature)

    def _update_metrics(self, density: np.ndarray, curvature: np.ndarray) -> None:
        m = self.metrics
        m.avg_density = float(density.mean())
        m.min_density = float(density.min())
        m.max_density = float(density.max())
        m.avg_curvature = float(np.abs(curvature).mean())
        m.density_history.append(m.avg_density)
