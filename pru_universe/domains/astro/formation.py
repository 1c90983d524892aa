"""
Threshold rules that turn derived fields into emergent structures.

Three independently scheduled rules run over the lattice's derived
fields:

  * star formation, for cells whose local density exceeds a threshold;
  * black hole formation, for cells that are both dense and strongly
    curved;
  * galaxy identification, which buckets dense cells into cubic regions
    and keeps one galaxy per surviving region.

Each rule runs only when ``tick - last_run_tick >= interval`` for its
own ``last_run_tick`` in ``FormationSchedule``. Spawn sites are
protected by an avoidance radius so repeated passes over an unchanged
field never stack entities on the same site. No rule removes an
entity: galaxies whose region disappears decay by ``GALAXY_DECAY`` per
refresh instead.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Tuple

import numpy as np

from ...core.config import FormationSettings
from ...core.lattice import LatticeState
from ...core.types import clamp
from .bodies import BlackHole, Galaxy, GalaxyIdCounter, Star, count_within

logger = logging.getLogger(__name__)

#: Avoidance radii in lattice spacings
STAR_AVOIDANCE_FACTOR = 0.8
BLACK_HOLE_AVOIDANCE_FACTOR = 0.9

#: Per-refresh shrink factor for galaxies that lost their region
GALAXY_DECAY = 0.9

#: New galaxies need this multiple of the galaxy density threshold
GALAXY_SPAWN_FACTOR = 3.0


@dataclass
class FormationSchedule:
    """Tick at which each rule last ran."""

    last_star_tick: int = 0
    last_black_hole_tick: int = 0
    last_galaxy_tick: int = 0


def _too_close(point: np.ndarray, sites: List[Tuple[float, float, float]], radius: float) -> bool:
    if not sites:
        return False
    d = np.asarray(sites, dtype=np.float64) - point
    return bool(np.any(np.einsum("ij,ij->i", d, d) < radius * radius))


class EmergenceDetector:
    """Create, update and decay stars, black holes and galaxies.

    The detector owns the entity collections; other components should
    treat ``stars``, ``black_holes`` and ``galaxies`` as read-only.
    """

    def __init__(self, settings: FormationSettings, spacing: float):
        self.settings = settings
        self.spacing = float(spacing)
        self.schedule = FormationSchedule()
        self.galaxy_ids = GalaxyIdCounter()
        self.stars: List[Star] = []
        self.black_holes: List[BlackHole] = []
        self.galaxies: List[Galaxy] = []

    @staticmethod
    def _due(tick: int, last_run: int, interval: int) -> bool:
        return tick - last_run >= interval

    def update(self, tick: int, lattice: LatticeState) -> None:
        """Run every rule whose cadence has elapsed at ``tick``."""
        s = self.settings
        sched = self.schedule
        if self._due(tick, sched.last_star_tick, s.formation_interval):
            sched.last_star_tick = tick
            self.form_stars(lattice)
        if self._due(tick, sched.last_black_hole_tick, s.black_hole_interval):
            sched.last_black_hole_tick = tick
            self.form_black_holes(lattice)
        if self._due(tick, sched.last_galaxy_tick, s.galaxy_refresh_interval):
            sched.last_galaxy_tick = tick
            self.refresh_galaxies(lattice)

    # ------------------------------------------------------------------
    # Rules

    def form_stars(self, lattice: LatticeState) -> List[Star]:
        threshold = self.settings.star_density_threshold
        avoidance = self.spacing * STAR_AVOIDANCE_FACTOR
        sites = [star.position for star in self.stars]
        created: List[Star] = []
        for i in np.flatnonzero(lattice.local_density > threshold):
            pos = lattice.positions[i]
            if _too_close(pos, sites, avoidance):
                continue
            density = float(lattice.local_density[i])
            star = Star(
                position=tuple(float(v) for v in pos),
                mass=density,
                radius=clamp(density * 0.08, 0.05, 0.6),
                temperature=4000.0 + density * 3000.0,
                luminosity=density * 2.0,
            )
            sites.append(star.position)
            created.append(star)
        self.stars.extend(created)
        return created

    def form_black_holes(self, lattice: LatticeState) -> List[BlackHole]:
        s = self.settings
        avoidance = self.spacing * BLACK_HOLE_AVOIDANCE_FACTOR
        candidates = (lattice.local_density > s.black_hole_density_threshold) & (
            np.abs(lattice.curvature_proxy) > s.black_hole_curvature_threshold
        )
        sites = [bh.position for bh in self.black_holes]
        created: List[BlackHole] = []
        for i in np.flatnonzero(candidates):
            pos = lattice.positions[i]
            if _too_close(pos, sites, avoidance):
                continue
            mass = float(lattice.local_density[i]) * 4.0
            bh = BlackHole(
                position=tuple(float(v) for v in pos),
                mass=mass,
                radius=clamp(mass * 0.05, 0.2, 1.5),
                spin=abs(float(lattice.curvature_proxy[i])),
            )
            sites.append(bh.position)
            created.append(bh)
        self.black_holes.extend(created)
        return created

    def refresh_galaxies(self, lattice: LatticeState) -> List[Galaxy]:
        """Update, decay and spawn galaxies; return the newly spawned ones."""
        regions = self._bucket_regions(lattice)

        for galaxy in self.galaxies:
            region = regions.pop(galaxy.region_key, None)
            if region is None:
                # fade out instead of removing
                galaxy.total_mass *= GALAXY_DECAY
                galaxy.radius *= GALAXY_DECAY
                continue
            mass, weighted = region
            center = weighted / max(mass, 1e-3)
            galaxy.total_mass = mass
            galaxy.center = tuple(float(v) for v in center)
            galaxy.radius = self.galaxy_radius(mass)
            galaxy.num_stars = self.count_stars_within(center, galaxy.radius)

        spawn_mass = self.settings.galaxy_density_threshold * GALAXY_SPAWN_FACTOR
        created: List[Galaxy] = []
        for key in sorted(regions):
            mass, weighted = regions[key]
            if mass <= spawn_mass:
                continue
            center = weighted / max(mass, 1e-3)
            radius = self.galaxy_radius(mass)
            galaxy = Galaxy(
                id=self.galaxy_ids.next(),
                total_mass=mass,
                radius=radius,
                num_stars=self.count_stars_within(center, radius),
                center=tuple(float(v) for v in center),
                region_key=key,
            )
            logger.debug("galaxy %d formed in region %s (mass %.2f)", galaxy.id, key, mass)
            created.append(galaxy)
        self.galaxies.extend(created)
        return created

    # ------------------------------------------------------------------
    # Helpers

    def _bucket_regions(self, lattice: LatticeState) -> Dict[Tuple[int, int, int], Tuple[float, np.ndarray]]:
        region_size = max(int(self.settings.region_size), 1)
        dense = np.flatnonzero(lattice.local_density > self.settings.galaxy_density_threshold)
        regions: Dict[Tuple[int, int, int], Tuple[float, np.ndarray]] = {}
        for i in dense:
            key = tuple(int(v) for v in lattice.grid_coords[i] // region_size)
            density = float(lattice.local_density[i])
            mass, weighted = regions.get(key, (0.0, np.zeros(3)))
            regions[key] = (mass + density, weighted + lattice.positions[i] * density)
        return regions

    def galaxy_radius(self, mass: float) -> float:
        return clamp(mass * 0.05, self.spacing, self.spacing * 8.0)

    def count_stars_within(self, center, radius: float) -> int:
        return count_within(self.stars, center, radius)
