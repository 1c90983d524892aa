"""
Tests for the domains.astro.formation module.

This module tests star and black hole formation with avoidance radii,
rule cadences, and galaxy identification, update and decay.
"""

import unittest
import sys
import os

import numpy as np

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from pru_universe.core.config import FormationSettings
from pru_universe.core.lattice import LatticeState
from pru_universe.domains.astro.bodies import (
    GalaxyIdCounter,
    Star,
    count_within,
    star_color_from_temperature,
)
from pru_universe.domains.astro.formation import EmergenceDetector


def line_lattice(n, spacing=1.4, positions=None):
    coords = [[i, 0, 0] for i in range(n)]
    if positions is None:
        positions = [[i * spacing, 0.0, 0.0] for i in range(n)]
    return LatticeState.from_arrays(positions, coords, [1.0] * n, [0.0] * n, spacing=spacing)


class TestStarFormation(unittest.TestCase):
    """Tests for the star rule."""

    def setUp(self):
        self.detector = EmergenceDetector(FormationSettings(), spacing=1.4)

    def test_single_dense_cell(self):
        """Test a cell above threshold forms one star with derived properties."""
        lat = line_lattice(2)
        lat.local_density[:] = [2.0, 0.5]
        created = self.detector.form_stars(lat)
        self.assertEqual(len(created), 1)
        star = created[0]
        self.assertEqual(star.position, (0.0, 0.0, 0.0))
        self.assertAlmostEqual(star.mass, 2.0)
        self.assertAlmostEqual(star.radius, 0.16)
        self.assertAlmostEqual(star.temperature, 10000.0)
        self.assertAlmostEqual(star.luminosity, 4.0)

    def test_nearby_twin_suppressed(self):
        """Test a second dense cell inside the avoidance radius forms nothing."""
        lat = line_lattice(2, positions=[[0.0, 0.0, 0.0], [0.1, 0.0, 0.0]])
        lat.local_density[:] = [2.0, 2.0]
        created = self.detector.form_stars(lat)
        self.assertEqual(len(created), 1)

    def test_separated_cells_both_form(self):
        """Test dense cells a full spacing apart each form a star."""
        lat = line_lattice(2)
        lat.local_density[:] = [2.0, 2.0]
        self.assertEqual(len(self.detector.form_stars(lat)), 2)

    def test_repeat_pass_adds_nothing(self):
        """Test re-running on an unchanged field never stacks stars."""
        lat = line_lattice(4)
        lat.local_density[:] = 2.5
        self.detector.form_stars(lat)
        self.assertEqual(self.detector.form_stars(lat), [])
        pos = np.asarray([s.position for s in self.detector.stars])
        d = np.linalg.norm(pos[:, None, :] - pos[None, :, :], axis=-1)
        np.fill_diagonal(d, np.inf)
        self.assertTrue(np.all(d >= 0.8 * 1.4))

    def test_threshold_is_strict(self):
        """Test density equal to the threshold does not form a star."""
        lat = line_lattice(1)
        lat.local_density[:] = 1.8
        self.assertEqual(self.detector.form_stars(lat), [])

    def test_radius_clamped(self):
        """Test very dense cells cap the star radius."""
        lat = line_lattice(1)
        lat.local_density[:] = 100.0
        star = self.detector.form_stars(lat)[0]
        self.assertEqual(star.radius, 0.6)


class TestBlackHoleFormation(unittest.TestCase):
    """Tests for the black hole rule."""

    def setUp(self):
        self.detector = EmergenceDetector(FormationSettings(), spacing=1.4)

    def test_dense_and_curved(self):
        """Test dense, curved cells form black holes with derived properties."""
        lat = line_lattice(1)
        lat.local_density[:] = 3.5
        lat.curvature_proxy[:] = -0.5
        created = self.detector.form_black_holes(lat)
        self.assertEqual(len(created), 1)
        bh = created[0]
        self.assertAlmostEqual(bh.mass, 14.0)
        self.assertAlmostEqual(bh.radius, 0.7)
        self.assertAlmostEqual(bh.spin, 0.5)

    def test_flat_cell_skipped(self):
        """Test dense but flat cells do not form black holes."""
        lat = line_lattice(1)
        lat.local_density[:] = 10.0
        lat.curvature_proxy[:] = 0.1
        self.assertEqual(self.detector.form_black_holes(lat), [])

    def test_avoidance(self):
        """Test black holes keep 0.9 spacing apart."""
        lat = line_lattice(2, positions=[[0.0, 0.0, 0.0], [1.0, 0.0, 0.0]])
        lat.local_density[:] = 5.0
        lat.curvature_proxy[:] = 1.0
        self.assertEqual(len(self.detector.form_black_holes(lat)), 1)
        self.assertEqual(self.detector.form_black_holes(lat), [])


class TestCadence(unittest.TestCase):
    """Tests for per-rule scheduling."""

    def setUp(self):
        self.settings = FormationSettings(formation_interval=8, black_hole_interval=5, galaxy_refresh_interval=24)
        self.detector = EmergenceDetector(self.settings, spacing=1.4)
        self.lat = line_lattice(1)
        self.lat.local_density[:] = 4.0
        self.lat.curvature_proxy[:] = 1.0

    def test_not_due(self):
        """Test nothing runs before the first interval elapses."""
        self.detector.update(4, self.lat)
        self.assertEqual(self.detector.stars, [])
        self.assertEqual(self.detector.black_holes, [])

    def test_rules_independent(self):
        """Test each rule follows its own interval."""
        self.detector.update(5, self.lat)
        self.assertEqual(len(self.detector.black_holes), 1)
        self.assertEqual(self.detector.stars, [])
        self.detector.update(8, self.lat)
        self.assertEqual(len(self.detector.stars), 1)
        self.assertEqual(self.detector.schedule.last_star_tick, 8)
        self.assertEqual(self.detector.schedule.last_black_hole_tick, 5)
        self.assertEqual(self.detector.schedule.last_galaxy_tick, 0)

    def test_gated_between_runs(self):
        """Test a rule does not run again until its interval passes."""
        self.detector.update(8, self.lat)
        self.lat.positions[0] = [50.0, 0.0, 0.0]
        self.detector.update(12, self.lat)
        self.assertEqual(len(self.detector.stars), 1)
        self.detector.update(16, self.lat)
        self.assertEqual(len(self.detector.stars), 2)


class TestGalaxies(unittest.TestCase):
    """Tests for galaxy identification."""

    def setUp(self):
        self.settings = FormationSettings(region_size=3, galaxy_density_threshold=1.2)
        self.detector = EmergenceDetector(self.settings, spacing=1.4)
        # two regions along x: cells 0-2 and 3-5
        self.lat = line_lattice(6)

    def test_spawn(self):
        """Test a dense region spawns a galaxy at its weighted centre."""
        self.lat.local_density[:] = [2.0, 2.0, 2.0, 0.0, 0.0, 0.0]
        created = self.detector.refresh_galaxies(self.lat)
        self.assertEqual(len(created), 1)
        g = created[0]
        self.assertEqual(g.id, 0)
        self.assertEqual(g.region_key, (0, 0, 0))
        self.assertAlmostEqual(g.total_mass, 6.0)
        np.testing.assert_allclose(g.center, [1.4, 0.0, 0.0])
        # 6.0 * 0.05 is below one spacing
        self.assertAlmostEqual(g.radius, 1.4)

    def test_light_region_ignored(self):
        """Test regions at or below three times the threshold do not spawn."""
        self.lat.local_density[:] = [1.25, 1.25, 1.0, 0.0, 0.0, 0.0]
        self.assertEqual(self.detector.refresh_galaxies(self.lat), [])

    def test_monotonic_ids(self):
        """Test ids increase across regions and refreshes."""
        self.lat.local_density[:] = [2.0, 2.0, 2.0, 0.0, 0.0, 0.0]
        self.detector.refresh_galaxies(self.lat)
        self.lat.local_density[:] = [0.0, 0.0, 0.0, 2.0, 2.0, 2.0]
        created = self.detector.refresh_galaxies(self.lat)
        self.assertEqual([g.id for g in created], [1])
        self.assertEqual([g.region_key for g in self.detector.galaxies], [(0, 0, 0), (1, 0, 0)])

    def test_update_in_place(self):
        """Test a surviving region updates its galaxy rather than spawning."""
        self.lat.local_density[:] = [2.0, 2.0, 2.0, 0.0, 0.0, 0.0]
        self.detector.refresh_galaxies(self.lat)
        self.lat.local_density[:] = [3.0, 3.0, 0.0, 0.0, 0.0, 0.0]
        self.assertEqual(self.detector.refresh_galaxies(self.lat), [])
        g = self.detector.galaxies[0]
        self.assertAlmostEqual(g.total_mass, 6.0)
        np.testing.assert_allclose(g.center, [0.7, 0.0, 0.0])

    def test_decay_never_removes(self):
        """Test a galaxy losing its region decays by 0.9 and stays listed."""
        self.lat.local_density[:] = [2.0, 2.0, 2.0, 0.0, 0.0, 0.0]
        self.detector.refresh_galaxies(self.lat)
        g = self.detector.galaxies[0]
        self.lat.local_density[:] = 0.0
        for _ in range(3):
            mass, radius = g.total_mass, g.radius
            self.detector.refresh_galaxies(self.lat)
            self.assertAlmostEqual(g.total_mass, mass * 0.9)
            self.assertAlmostEqual(g.radius, radius * 0.9)
        self.assertEqual(len(self.detector.galaxies), 1)

    def test_star_count(self):
        """Test galaxies count the stars inside their radius."""
        self.lat.local_density[:] = [2.0, 2.0, 0.0, 0.0, 0.0, 2.0]
        self.assertEqual(len(self.detector.form_stars(self.lat)), 3)
        g = self.detector.refresh_galaxies(self.lat)[0]
        # centre 0.7, radius 1.4: the star at x = 7.0 lies outside
        self.assertEqual(g.num_stars, 2)


class TestBodiesHelpers(unittest.TestCase):
    """Tests for entity helpers."""

    def test_id_counter(self):
        """Test the id counter hands out consecutive ids."""
        counter = GalaxyIdCounter()
        self.assertEqual([counter.next() for _ in range(3)], [0, 1, 2])

    def test_count_within_strict_radius(self):
        """Test bodies on the radius boundary are not counted."""
        stars = [
            Star(position=(0.0, 0.0, 0.0), mass=1.0, radius=0.1, temperature=5000.0, luminosity=1.0),
            Star(position=(1.0, 0.0, 0.0), mass=1.0, radius=0.1, temperature=5000.0, luminosity=1.0),
            Star(position=(2.0, 0.0, 0.0), mass=1.0, radius=0.1, temperature=5000.0, luminosity=1.0),
        ]
        self.assertEqual(count_within(stars, (0.0, 0.0, 0.0), 1.0), 1)
        self.assertEqual(count_within(stars, (0.0, 0.0, 0.0), 1.5), 2)
        self.assertEqual(count_within([], (0.0, 0.0, 0.0), 10.0), 0)

    def test_star_colour_ramp(self):
        """Test hot stars are blue-white and cool stars red."""
        self.assertEqual(star_color_from_temperature(10000.0), (0.8, 0.9, 1.0))
        self.assertEqual(star_color_from_temperature(1000.0), (0.9, 0.45, 0.35))


if __name__ == "__main__":
    unittest.main()
