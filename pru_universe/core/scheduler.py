"""
Fixed-timestep tick scheduling.

The scheduler converts wall-clock time, scaled by ``time_scale``, into a
count of pending fixed-size steps. The physics stage consumes that
count with :meth:`TickScheduler.take_pending_steps` and reports every
executed step back with :meth:`TickScheduler.complete_step`, which is
the only place the authoritative tick counter advances. Render frame
rate and simulation step rate are thereby decoupled.
"""

from __future__ import annotations

from .types import clamp

MIN_TIME_SCALE = 0.1
MAX_TIME_SCALE = 10.0


class TickScheduler:
    """Producer of pending simulation steps.

    Attributes:
        running: Whether wall time produces steps.
        time_scale: Multiplier applied to wall time.
        tick: Number of steps executed so far.
        dt: Fixed simulation step (seconds per tick).
        accumulated_time: Scaled time not yet converted into steps.
        simulation_time: Total simulated seconds.
        pending_steps: Steps produced but not yet consumed.
    """

    def __init__(self, dt: float = 1.0 / 60.0, time_scale: float = 1.0, running: bool = True):
        if dt <= 0:
            raise ValueError("dt must be positive")
        self.running = running
        self.time_scale = time_scale
        self.tick = 0
        self.dt = dt
        self.accumulated_time = 0.0
        self.simulation_time = 0.0
        self.pending_steps = 0

    def advance(self, wall_delta: float) -> int:
        """Accumulate scaled wall time and return the pending step count."""
        if not self.running:
            return self.pending_steps
        self.accumulated_time += wall_delta * self.time_scale
        while self.accumulated_time >= self.dt:
            self.accumulated_time -= self.dt
            self.pending_steps += 1
        return self.pending_steps

    def take_pending_steps(self) -> int:
        steps = self.pending_steps
        self.pending_steps = 0
        return steps

    def complete_step(self) -> None:
        self.tick += 1
        self.simulation_time += self.dt

    def step_once(self) -> None:
        """Queue exactly one step, even while paused."""
        self.pending_steps += 1

    def toggle(self) -> None:
        self.running = not self.running

    def adjust_speed(self, delta: float) -> None:
        self.time_scale = clamp(self.time_scale + delta, MIN_TIME_SCALE, MAX_TIME_SCALE)
