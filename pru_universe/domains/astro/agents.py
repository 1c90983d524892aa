"""
Astro agents: periodic, human-readable summaries of galaxy activity.

An agent is attached to every galaxy the analyzer sees. On its own
cadence the analyzer samples each galaxy's mass and the stars and
black holes inside its radius, compares against the previous sample
and appends a report to a bounded log when something changed. Agents
only read entity state; they never feed back into the simulation.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Deque, Dict, Iterable, List, Optional, Sequence

from .bodies import BlackHole, Galaxy, Star, count_within

#: Relative mass change that triggers a report
MASS_CHANGE_FRACTION = 0.05


class AstroAgentKind(Enum):
    GALAXY = "galaxy"
    CLUSTER = "cluster"
    BLACK_HOLE = "black_hole"


@dataclass
class AgentTelemetry:
    """Previous sample used to detect changes."""

    last_mass: float = 0.0
    last_star_count: int = 0
    last_black_holes: int = 0


@dataclass
class AstroAgent:
    id: int
    kind: AstroAgentKind
    name: Optional[str] = None
    telemetry: Optional[AgentTelemetry] = None

    def __post_init__(self) -> None:
        if self.telemetry is None:
            self.telemetry = AgentTelemetry()


@dataclass
class AstroReport:
    tick: int
    agent_id: int
    agent_kind: AstroAgentKind
    summary: str


class AstroReportLog:
    """Append-only log keeping at most ``max_reports`` entries.

    Once full, the oldest report is dropped for every new one.
    """

    def __init__(self, max_reports: int = 128):
        self.max_reports = max(1, max_reports)
        self.reports: Deque[AstroReport] = deque(maxlen=self.max_reports)

    def push(self, report: AstroReport) -> None:
        self.reports.append(report)

    def recent(self, count: int = 5) -> List[AstroReport]:
        """Return up to ``count`` most recent reports, newest first."""
        return list(reversed(self.reports))[:count]

    def __len__(self) -> int:
        return len(self.reports)


class AgentAnalyzer:
    """Cadence-gated reviewer that turns galaxy changes into reports."""

    def __init__(self, agent_interval: int, log: Optional[AstroReportLog] = None):
        self.agent_interval = max(1, agent_interval)
        self.log = log if log is not None else AstroReportLog()
        self.agents: Dict[int, AstroAgent] = {}
        self.last_agent_tick = 0

    def attach(self, galaxies: Iterable[Galaxy]) -> None:
        for galaxy in galaxies:
            if galaxy.id not in self.agents:
                self.agents[galaxy.id] = AstroAgent(
                    id=galaxy.id,
                    kind=AstroAgentKind.GALAXY,
                    name=f"Galaxy Agent {galaxy.id}",
                )

    def analyze(
        self,
        tick: int,
        galaxies: Sequence[Galaxy],
        stars: Sequence[Star],
        black_holes: Sequence[BlackHole],
    ) -> List[AstroReport]:
        """Sample every galaxy if the cadence elapsed; return new reports."""
        self.attach(galaxies)
        if tick - self.last_agent_tick < self.agent_interval:
            return []
        self.last_agent_tick = tick

        new_reports: List[AstroReport] = []
        for galaxy in galaxies:
            agent = self.agents[galaxy.id]
            tel = agent.telemetry
            radius = max(galaxy.radius, 0.1)
            star_count = count_within(stars, galaxy.center, radius)
            bh_count = count_within(black_holes, galaxy.center, radius)

            mass_change = abs(galaxy.total_mass - tel.last_mass)
            changed = (
                mass_change > galaxy.total_mass * MASS_CHANGE_FRACTION
                or star_count != tel.last_star_count
                or bh_count != tel.last_black_holes
            )
            if changed:
                report = AstroReport(
                    tick=tick,
                    agent_id=agent.id,
                    agent_kind=agent.kind,
                    summary=(
                        f"Galaxy {galaxy.id} mass {galaxy.total_mass:.2f} "
                        f"(Δ{mass_change:.2f}), stars {star_count}, black holes {bh_count}"
                    ),
                )
                self.log.push(report)
                new_reports.append(report)

            tel.last_mass = galaxy.total_mass
            tel.last_star_count = star_count
            tel.last_black_holes = bh_count
        return new_reports
