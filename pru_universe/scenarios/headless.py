"""
Headless run of the lattice simulation.

Drives the engine at a fixed wall-clock delta per frame and prints a
status line every ``--report-every`` frames. Example::

    pru-universe --grid 8 --frames 600 --solver naive
"""

from __future__ import annotations

import argparse
import logging
from typing import List, Optional

from ..core.config import EngineConfig, GravityParams, SolverMode
from ..core.engine import Engine, setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run the PRU lattice simulation headless.")
    parser.add_argument("--grid", type=int, nargs="+", default=[10], help="lattice size (one or three values)")
    parser.add_argument("--spacing", type=float, default=1.4)
    parser.add_argument("--frames", type=int, default=600)
    parser.add_argument("--frame-delta", type=float, default=1.0 / 60.0, help="wall seconds per frame")
    parser.add_argument("--time-scale", type=float, default=1.0)
    parser.add_argument("--solver", choices=[m.value for m in SolverMode], default=SolverMode.RELATIONAL_LATTICE.value)
    parser.add_argument("--g", type=float, default=GravityParams.g_effective, dest="g_effective")
    parser.add_argument("--damping", type=float, default=GravityParams.damping)
    parser.add_argument("--softening", type=float, default=GravityParams.softening_length)
    parser.add_argument("--no-gravity", action="store_true")
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("--report-every", type=int, default=60)
    parser.add_argument("--log-level", default="INFO")
    return parser


def config_from_args(args: argparse.Namespace) -> EngineConfig:
    if len(args.grid) == 1:
        dims = (args.grid[0],) * 3
    elif len(args.grid) == 3:
        dims = tuple(args.grid)
    else:
        raise ValueError("--grid takes one or three values")
    gravity = GravityParams(
        g_effective=args.g_effective,
        softening_length=args.softening,
        damping=args.damping,
        enabled=not args.no_gravity,
        mode=SolverMode.parse(args.solver),
    )
    return EngineConfig(grid_dims=dims, spacing=args.spacing, base_seed=args.seed, gravity=gravity)


def format_status(engine: Engine) -> str:
    snap = engine.snapshot()
    drift = snap.energy.relative_drift
    drift_str = "n/a" if drift is None else f"{drift:.2e}"
    return (
        f"tick {snap.tick:6d}  t={snap.simulation_time:7.2f}s  "
        f"E={snap.energy.total:10.4f}  dE/E0={drift_str}  "
        f"rho avg={snap.metrics.avg_density:.3f} max={snap.metrics.max_density:.3f}  "
        f"stars={len(snap.stars)} bh={len(snap.black_holes)} galaxies={len(snap.galaxies)}"
    )


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        config = config_from_args(args)
    except ValueError as exc:
        parser.error(str(exc))
    setup_logging(getattr(logging, str(args.log_level).upper(), logging.INFO))
    engine = Engine(config)
    engine.scheduler.time_scale = args.time_scale

    for frame in range(1, args.frames + 1):
        engine.frame(args.frame_delta)
        if args.report_every > 0 and frame % args.report_every == 0:
            print(format_status(engine))

    for report in engine.agents.log.recent(5):
        print(f"[{report.tick}] {report.summary}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
