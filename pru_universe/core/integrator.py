"""
Fixed-step semi-implicit Euler integrator.
"""

from __future__ import annotations

import numpy as np

from .config import GravityParams
from .lattice import LatticeState
from .types import clamp_length


class Integrator:
    """Advance velocity then position from the current acceleration field.

    Must run after the gravity solver has populated accelerations and
    before the next step resets them. Runaway accelerations are clamped
    to ``max_acceleration`` silently, preserving direction.
    """

    def __init__(self, params: GravityParams):
        self.params = params

    def step(self, lattice: LatticeState, dt: float) -> None:
        p = self.params
        accel = lattice.acceleration
        norms_sq = np.einsum("ij,ij->i", accel, accel)
        if np.any(norms_sq > p.max_acceleration * p.max_acceleration):
            accel[:] = clamp_length(accel, p.max_acceleration)
        lattice.velocity += accel * dt
        lattice.velocity *= 1.0 - p.damping * dt
        lattice.positions += lattice.velocity * dt
