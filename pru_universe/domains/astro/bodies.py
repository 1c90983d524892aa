"""
Emergent astrophysical entities.

Stars, black holes and galaxies are created only by the
``EmergenceDetector``; everything else holds them for display.
Positions are world-space coordinates at the moment of formation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np

Vec3 = Tuple[float, float, float]


@dataclass
class Star:
    """A luminous star, emerging from a high-density cell."""

    position: Vec3
    mass: float
    radius: float
    temperature: float
    luminosity: float


@dataclass
class BlackHole:
    """A black hole, created when density and curvature are both extreme."""

    position: Vec3
    mass: float
    radius: float
    spin: float


@dataclass
class Galaxy:
    """A galaxy linked to a bucketed region of the lattice.

    ``region_key`` is the lattice coordinate divided by the region size
    and is used to match the galaxy to its cluster on every refresh.
    """

    id: int
    total_mass: float
    radius: float
    num_stars: int
    center: Vec3
    region_key: Tuple[int, int, int]


class GalaxyIdCounter:
    """Monotonic galaxy id source."""

    def __init__(self, next_id: int = 0):
        self.next_id = next_id

    def next(self) -> int:
        gid = self.next_id
        self.next_id += 1
        return gid


def star_color_from_temperature(temperature: float) -> Tuple[float, float, float]:
    """Map a temperature to a blue-white-yellow-red RGB ramp."""
    normalized = min(max(temperature / 8000.0, 0.0), 1.0)
    if normalized > 0.75:
        return (0.8, 0.9, 1.0)
    if normalized > 0.5:
        return (0.95, 0.95, 0.8)
    if normalized > 0.25:
        return (1.0, 0.85, 0.55)
    return (0.9, 0.45, 0.35)


def count_within(bodies: Sequence, center, radius: float) -> int:
    """Count ``bodies`` whose position lies strictly inside ``radius`` of ``center``."""
    if not bodies:
        return 0
    d = np.asarray([b.position for b in bodies], dtype=np.float64) - np.asarray(center)
    return int(np.count_nonzero(np.sqrt(np.einsum("ij,ij->i", d, d)) < radius))
