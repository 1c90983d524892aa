"""
Precomputed relational interaction kernel.

The kernel encodes the "relational" gravity idea: interactions are
limited to a small, local stencil that is reused each tick instead of
recomputing pairwise forces. The offsets are discrete lattice jumps
and the weights are derived once from the lattice spacing, so a
gravity step only performs table reads and multiplications.
"""

from __future__ import annotations

import numpy as np

#: Fixed axis-aligned neighbour stencil (+x, -x, +y, -y, +z, -z)
NEIGHBOR_OFFSETS = np.array(
    [
        [1, 0, 0],
        [-1, 0, 0],
        [0, 1, 0],
        [0, -1, 0],
        [0, 0, 1],
        [0, 0, -1],
    ],
    dtype=np.int64,
)

#: Lower bound on the squared offset length used in the weight falloff
MIN_DISTANCE_SQ = 1e-6


class RelationalKernel:
    """Neighbour offsets and their directional weights.

    Each weight approximates ``r_hat / r**3`` for the offset measured in
    world units. Both arrays are read-only once built.
    """

    def __init__(self, spacing: float):
        self.spacing = float(spacing)
        offsets = NEIGHBOR_OFFSETS.copy()
        world = offsets.astype(np.float64) * self.spacing
        dist_sq = np.maximum(np.einsum("ij,ij->i", world, world), MIN_DISTANCE_SQ)
        inv_r3 = dist_sq ** -1.5
        norms = np.sqrt(np.einsum("ij,ij->i", world, world))
        direction = np.zeros_like(world)
        nonzero = norms > 0.0
        direction[nonzero] = world[nonzero] / norms[nonzero, None]
        weights = direction * inv_r3[:, None]

        offsets.flags.writeable = False
        weights.flags.writeable = False
        self.offsets = offsets
        self.weights = weights

    def __len__(self) -> int:
        return len(self.offsets)
