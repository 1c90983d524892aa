"""
Engine: the per-frame simulation pipeline.

The engine owns every core component and runs them in a fixed order
once per rendered frame:

    scheduler -> {gravity solver -> integrator} x pending steps
              -> field computer -> energy ledger
              -> emergence detector -> agent analyzer

Everything is single threaded and synchronous. All components are
built from an explicit ``EngineConfig`` so the engine runs headless
and is driven by tests or the scenario entry point. Collaborators
read state through :meth:`Engine.snapshot` and may only write plain
configuration values (``engine.config.gravity``, ``engine.scheduler``
flags).
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from .config import EngineConfig, SolverMode
from .fields import FieldComputer, FieldMetrics
from .gravity import GravitySolver
from .integrator import Integrator
from .kernel import RelationalKernel
from .lattice import LatticeState
from .ledger import EnergyLedger, SimulationEnergy
from .scheduler import TickScheduler
from ..domains.astro.agents import AgentAnalyzer, AstroReport, AstroReportLog
from ..domains.astro.bodies import BlackHole, Galaxy, Star
from ..domains.astro.formation import EmergenceDetector

logger = logging.getLogger(__name__)


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """Attach a console handler to the package logger.

    Library code never calls this; entry points do.
    """
    root = logging.getLogger("pru_universe")
    root.setLevel(level)
    root.handlers.clear()
    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter("%(asctime)s | %(levelname)s | %(message)s", datefmt="%H:%M:%S")
    )
    root.addHandler(handler)
    return root


@dataclass(frozen=True)
class SimulationSnapshot:
    """Read-only copy of the state a renderer or panel needs."""

    tick: int
    simulation_time: float
    running: bool
    time_scale: float
    positions: np.ndarray
    local_density: np.ndarray
    curvature_proxy: np.ndarray
    metrics: FieldMetrics
    energy: SimulationEnergy
    stars: Tuple[Star, ...]
    black_holes: Tuple[BlackHole, ...]
    galaxies: Tuple[Galaxy, ...]
    reports: Tuple[AstroReport, ...]


class Engine:
    """Top level simulation driver."""

    def __init__(self, config: Optional[EngineConfig] = None, lattice: Optional[LatticeState] = None):
        self.config = config if config is not None else EngineConfig()
        cfg = self.config
        self.lattice = lattice if lattice is not None else LatticeState.generate(cfg)
        spacing = self.lattice.spacing
        self.kernel = RelationalKernel(spacing)
        self.solver = GravitySolver(cfg.gravity, self.kernel)
        self.integrator = Integrator(cfg.gravity)
        self.fields = FieldComputer(spacing, cfg.history_capacity)
        self.ledger = EnergyLedger(cfg.gravity, cfg.drift_warning)
        self.scheduler = TickScheduler(dt=cfg.base_dt)
        self.emergence = EmergenceDetector(cfg.formation, spacing)
        interval = cfg.agent_interval or max(cfg.formation.galaxy_refresh_interval, 4)
        self.agents = AgentAnalyzer(interval, AstroReportLog(cfg.max_reports))
        self._energy_params = self._energy_signature()
        logger.info(
            "engine ready: %d cells, dims=%s, solver=%s",
            len(self.lattice),
            self.lattice.dims,
            cfg.gravity.mode.value,
        )

    def frame(self, wall_delta: float) -> int:
        """Run one frame of the pipeline; return the steps executed."""
        self.scheduler.advance(wall_delta)
        steps = self.scheduler.take_pending_steps()
        for _ in range(steps):
            self.solver.compute(self.lattice)
            self.integrator.step(self.lattice, self.scheduler.dt)
            self.scheduler.complete_step()

        self.fields.compute(self.lattice)
        self._sync_energy_baseline()
        self.ledger.update(self.lattice)
        tick = self.scheduler.tick
        self.emergence.update(tick, self.lattice)
        self.agents.analyze(
            tick, self.emergence.galaxies, self.emergence.stars, self.emergence.black_holes
        )
        return steps

    def _energy_signature(self) -> Tuple[SolverMode, float, float]:
        g = self.config.gravity
        return (g.mode, g.g_effective, g.softening_length)

    def _sync_energy_baseline(self) -> None:
        """Drop the drift baseline once the potential it was measured under changes."""
        signature = self._energy_signature()
        if signature == self._energy_params:
            return
        self._energy_params = signature
        self.ledger.reset_baseline()
        logger.info(
            "gravity changed (solver=%s, g=%.3f, softening=%.3f); energy baseline reset",
            signature[0].value,
            signature[1],
            signature[2],
        )

    def step_once(self) -> int:
        """Advance exactly one step, even while paused."""
        self.scheduler.step_once()
        return self.frame(0.0)

    def run(self, frames: int, wall_delta: Optional[float] = None) -> int:
        """Run ``frames`` frames at a fixed wall delta; return total steps."""
        delta = self.scheduler.dt if wall_delta is None else wall_delta
        total = 0
        for _ in range(frames):
            total += self.frame(delta)
        return total

    def snapshot(self) -> SimulationSnapshot:
        lat = self.lattice
        m = self.fields.metrics
        e = self.ledger.energy
        metrics = FieldMetrics(
            avg_density=m.avg_density,
            min_density=m.min_density,
            max_density=m.max_density,
            avg_curvature=m.avg_curvature,
            density_history=deque(m.density_history, maxlen=m.density_history.maxlen),
        )
        return SimulationSnapshot(
            tick=self.scheduler.tick,
            simulation_time=self.scheduler.simulation_time,
            running=self.scheduler.running,
            time_scale=self.scheduler.time_scale,
            positions=lat.positions.copy(),
            local_density=lat.local_density.copy(),
            curvature_proxy=lat.curvature_proxy.copy(),
            metrics=metrics,
            energy=SimulationEnergy(**vars(e)),
            stars=tuple(Star(**vars(s)) for s in self.emergence.stars),
            black_holes=tuple(BlackHole(**vars(b)) for b in self.emergence.black_holes),
            galaxies=tuple(Galaxy(**vars(g)) for g in self.emergence.galaxies),
            reports=tuple(self.agents.log.reports),
        )
