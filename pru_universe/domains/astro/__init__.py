"""
Astrophysical archetypes, formation rules and astro agents.
"""

from .bodies import BlackHole, Galaxy, GalaxyIdCounter, Star

__all__ = ["BlackHole", "Galaxy", "GalaxyIdCounter", "Star"]
