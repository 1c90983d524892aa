"""
Common value types and small numeric helpers shared by the core.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Tuple

import numpy as np

#: Rows per block in the all-pairs passes
BLOCK_SIZE = 128


def clamp(value: float, lo: float, hi: float) -> float:
    """Clamp ``value`` to the closed interval ``[lo, hi]``."""
    return max(lo, min(value, hi))


def clamp_length(vectors: np.ndarray, max_length: float) -> np.ndarray:
    """Scale rows of ``vectors`` whose norm exceeds ``max_length``.

    Direction is preserved; rows at or below the limit are returned
    unchanged. Operates on an (N, 3) array and returns a new array.
    """
    norms = np.linalg.norm(vectors, axis=1)
    over = norms > max_length
    if not np.any(over):
        return vectors.copy()
    out = vectors.copy()
    out[over] *= (max_length / norms[over])[:, None]
    return out


def row_blocks(n: int, size: int = BLOCK_SIZE) -> Iterator[slice]:
    """Yield consecutive row slices of at most ``size`` rows covering ``range(n)``."""
    size = max(1, int(size))
    for start in range(0, n, size):
        yield slice(start, min(start + size, n))


def pair_blocks(n: int, size: int = BLOCK_SIZE) -> Iterator[Tuple[np.ndarray, np.ndarray]]:
    """Yield the ``i < j`` index pairs of ``n`` items in row blocks.

    Concatenating the yielded ``(idx_i, idx_j)`` arrays gives the same
    pairs, in the same order, as ``np.triu_indices(n, k=1)``.
    """
    columns = np.arange(n)
    for rows in row_blocks(n, size):
        block = np.arange(rows.start, rows.stop)
        local_i, idx_j = np.nonzero(block[:, None] < columns[None, :])
        if idx_j.size:
            yield local_i + rows.start, idx_j


@dataclass(frozen=True)
class Cell:
    """Identity and lock values of a single lattice cell.

    ``position`` is the world-space cell centre at the time the record
    was taken; ``grid_coords`` never changes over a run. ``mass_lock``
    carries inertial information and ``geom_lock`` (in -1..1) carries
    geometric adjacency information.
    """

    position: Tuple[float, float, float]
    grid_coords: Tuple[int, int, int]
    mass_lock: float
    geom_lock: float
