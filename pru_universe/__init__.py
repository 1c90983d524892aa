"""
PRU universe simulation engine package.

This package simulates a discrete 3-D lattice of information-carrying
cells ("locks") whose derived density and curvature fields, driven by a
gravity solver, give rise to stars, black holes and galaxies.

The major subpackages are:

``pru_universe.core``       Core engine components: configuration, the
                            lattice store, derived fields, the relational
                            kernel, gravity solvers, integrator, energy
                            ledger, tick scheduler and the frame engine.
``pru_universe.domains``    Emergent-structure rules and the astro agent
                            reporting layer.
``pru_universe.scenarios``  Entry points running the engine headless.

Please see the individual modules for further documentation.
"""

__version__ = "0.1.0"

__all__ = [
    "core",
    "domains",
    "scenarios",
]
