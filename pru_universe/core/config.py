"""
Simulation configuration definitions.

This module defines configuration dataclasses used to parameterise the
simulation. Configurations are defined with explicit defaults so that
test runs can be created easily without requiring the user to supply
values for every field. See ``EngineConfig`` for the top-level
configuration consumed by the engine.

External collaborators (renderers, control panels) may only write plain
values into these objects; the physics pipeline reads them once per
step and never mutates them.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Tuple

from .types import clamp

#: Default number of average-density samples kept for display
DENSITY_HISTORY_CAPACITY = 40


class SolverMode(Enum):
    """Gravity strategy selector."""

    NAIVE_NBODY = "naive"
    RELATIONAL_LATTICE = "relational"

    @classmethod
    def parse(cls, value: "str | SolverMode") -> "SolverMode":
        if isinstance(value, cls):
            return value
        for mode in cls:
            if mode.value == value or mode.name.lower() == str(value).lower():
                return mode
        raise ValueError(f"unknown solver mode: {value!r}")


@dataclass
class GravityParams:
    """Tunable parameters controlling the effective gravity model."""

    g_effective: float = 0.6
    softening_length: float = 0.25
    # velocity damping keeps the naive integrator visually stable
    damping: float = 0.01
    max_acceleration: float = 120.0
    # integration still runs (inertial drift) when disabled
    enabled: bool = True
    mode: SolverMode = SolverMode.RELATIONAL_LATTICE

    def adjust_g_effective(self, delta: float) -> None:
        self.g_effective = clamp(self.g_effective + delta, 0.0, 5.0)

    def adjust_damping(self, delta: float) -> None:
        self.damping = clamp(self.damping + delta, 0.0, 1.0)

    def adjust_softening(self, delta: float) -> None:
        self.softening_length = clamp(self.softening_length + delta, 0.01, 2.0)

    def toggle_enabled(self) -> None:
        self.enabled = not self.enabled

    def toggle_mode(self) -> None:
        if self.mode is SolverMode.NAIVE_NBODY:
            self.mode = SolverMode.RELATIONAL_LATTICE
        else:
            self.mode = SolverMode.NAIVE_NBODY


@dataclass
class FormationSettings:
    """Thresholds and cadences controlling when structures emerge.

    Intervals are expressed in simulation ticks. ``region_size`` is the
    edge length (in lattice cells) of the cubic buckets used to cluster
    dense cells into galaxy candidates.
    """

    star_density_threshold: float = 1.8
    black_hole_density_threshold: float = 3.0
    black_hole_curvature_threshold: float = 0.25
    galaxy_density_threshold: float = 1.2
    formation_interval: int = 8
    black_hole_interval: int = 8
    galaxy_refresh_interval: int = 24
    region_size: int = 3


@dataclass
class VisualModeSettings:
    """Visualization toggles for scalar overlays.

    Density and curvature colouring are mutually exclusive; turning one
    on switches the other off.
    """

    show_density_coloring: bool = True
    show_curvature_coloring: bool = False

    def toggle_density(self) -> None:
        self.show_density_coloring = not self.show_density_coloring
        if self.show_density_coloring:
            self.show_curvature_coloring = False

    def toggle_curvature(self) -> None:
        self.show_curvature_coloring = not self.show_curvature_coloring
        if self.show_curvature_coloring:
            self.show_density_coloring = False


@dataclass
class EngineConfig:
    """Top level configuration for engine runs.

    Where appropriate, fields include defaults that work reasonably for
    small demonstrations (a 10x10x10 lattice at 60 steps per second).
    Users are encouraged to override these as needed when constructing a
    scenario.
    """

    # Lattice geometry
    grid_dims: Tuple[int, int, int] = (10, 10, 10)
    spacing: float = 1.4

    # Fixed step size (seconds per tick)
    base_dt: float = 1.0 / 60.0

    # Random seed and initial lock ranges
    base_seed: int = 42
    mass_lock_range: Tuple[float, float] = (0.4, 1.6)
    geom_lock_range: Tuple[float, float] = (-1.0, 1.0)

    # Nested parameter groups
    gravity: GravityParams = field(default_factory=GravityParams)
    formation: FormationSettings = field(default_factory=FormationSettings)
    visuals: VisualModeSettings = field(default_factory=VisualModeSettings)

    # Diagnostics and reporting
    history_capacity: int = DENSITY_HISTORY_CAPACITY
    max_reports: int = 128
    agent_interval: int = 0  # 0 means derive from galaxy_refresh_interval
    drift_warning: float = 0.05

    def __post_init__(self) -> None:
        if self.spacing <= 0:
            raise ValueError("spacing must be positive")
        if self.base_dt <= 0:
            raise ValueError("base_dt must be positive")
        if any(int(d) <= 0 for d in self.grid_dims):
            raise ValueError("grid_dims must be positive")
        self.grid_dims = tuple(int(d) for d in self.grid_dims)

    def to_dict(self) -> dict:
        """Return a dict representation of the configuration.

        Useful for logging a run's parameters or interfacing with
        dynamic configuration loaders.
        """
        out = asdict(self)
        out["gravity"]["mode"] = self.gravity.mode.value
        return out
