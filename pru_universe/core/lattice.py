"""
Lattice state: the spatial substrate and per-cell storage.

``LatticeState`` is responsible for allocating numpy arrays of
appropriate size and type for the cell identity (position, grid
coordinates), the two information locks, the dynamical state (mass,
velocity, acceleration) and the derived scalar fields (local density,
curvature proxy). All arrays are parallel and indexed by cell. The
lattice does not implement dynamics by itself; solvers and the
integrator operate on its arrays in place.
"""

from __future__ import annotations

from typing import Optional, Sequence, Tuple

import numpy as np

from .config import EngineConfig
from .types import Cell

#: Lower bound on derived cell mass so that divisions by mass stay finite
MASS_FLOOR = 1e-3


class LatticeState:
    """Dense rectangular lattice of cells with their dynamics.

    Construct with :meth:`generate` for a seeded random lattice, or
    :meth:`from_arrays` for explicit configurations.
    """

    def __init__(
        self,
        positions: np.ndarray,
        grid_coords: np.ndarray,
        mass_lock: np.ndarray,
        geom_lock: np.ndarray,
        dims: Sequence[int],
        spacing: float,
    ):
        self.dims: Tuple[int, int, int] = tuple(int(d) for d in dims)
        self.spacing = float(spacing)
        self.positions = np.asarray(positions, dtype=np.float64).reshape(-1, 3).copy()
        self.grid_coords = np.asarray(grid_coords, dtype=np.int64).reshape(-1, 3).copy()
        self.mass_lock = np.asarray(mass_lock, dtype=np.float64).ravel().copy()
        self.geom_lock = np.asarray(geom_lock, dtype=np.float64).ravel().copy()
        n = len(self.positions)
        # dynamics
        self.mass = np.maximum(self.mass_lock, MASS_FLOOR)
        self.velocity = np.zeros((n, 3), dtype=np.float64)
        self.acceleration = np.zeros((n, 3), dtype=np.float64)
        # derived fields, refreshed by FieldComputer
        self.local_density = np.zeros(n, dtype=np.float64)
        self.curvature_proxy = np.zeros(n, dtype=np.float64)

    # ------------------------------------------------------------------
    # Construction

    @classmethod
    def generate(cls, config: EngineConfig) -> "LatticeState":
        """Build the full ``dims.x * dims.y * dims.z`` lattice.

        Cell centres are laid out on a cubic grid of ``config.spacing``
        centred on the origin. Lock values are drawn from a generator
        seeded with ``config.base_seed`` so runs are reproducible.
        """
        dims = np.array(config.grid_dims, dtype=np.int64)
        xs, ys, zs = np.meshgrid(
            np.arange(dims[0]), np.arange(dims[1]), np.arange(dims[2]), indexing="ij"
        )
        coords = np.stack([xs.ravel(), ys.ravel(), zs.ravel()], axis=1)
        center_offset = (dims - 1) * 0.5 * config.spacing
        positions = coords * config.spacing - center_offset
        rng = np.random.default_rng(config.base_seed)
        lo, hi = config.mass_lock_range
        mass_lock = rng.uniform(lo, hi, size=len(coords))
        lo, hi = config.geom_lock_range
        geom_lock = rng.uniform(lo, hi, size=len(coords))
        return cls(positions, coords, mass_lock, geom_lock, config.grid_dims, config.spacing)

    @classmethod
    def from_arrays(
        cls,
        positions,
        grid_coords,
        mass_lock,
        geom_lock,
        dims: Optional[Sequence[int]] = None,
        spacing: float = 1.0,
    ) -> "LatticeState":
        """Build a lattice from explicit per-cell arrays.

        ``dims`` defaults to the bounding box of ``grid_coords``. Raises
        ``ValueError`` if array lengths disagree, coordinates fall outside
        ``dims`` or two cells share a grid coordinate.
        """
        positions = np.asarray(positions, dtype=np.float64).reshape(-1, 3)
        grid_coords = np.asarray(grid_coords, dtype=np.int64).reshape(-1, 3)
        mass_lock = np.asarray(mass_lock, dtype=np.float64).ravel()
        geom_lock = np.asarray(geom_lock, dtype=np.float64).ravel()
        n = len(positions)
        if not (len(grid_coords) == len(mass_lock) == len(geom_lock) == n):
            raise ValueError("per-cell arrays must have the same length")
        if spacing <= 0:
            raise ValueError("spacing must be positive")
        if dims is None:
            dims = tuple(int(v) for v in grid_coords.max(axis=0) + 1) if n else (1, 1, 1)
        if n and (np.any(grid_coords < 0) or np.any(grid_coords >= np.asarray(dims))):
            raise ValueError("grid coordinates outside lattice dimensions")
        if len(np.unique(grid_coords, axis=0)) != n:
            raise ValueError("grid coordinates must be unique per cell")
        return cls(positions, grid_coords, mass_lock, geom_lock, dims, spacing)

    # ------------------------------------------------------------------
    # Accessors

    def __len__(self) -> int:
        return len(self.positions)

    @property
    def volume(self) -> int:
        return self.dims[0] * self.dims[1] * self.dims[2]

    def cell(self, i: int) -> Cell:
        return Cell(
            position=tuple(float(v) for v in self.positions[i]),
            grid_coords=tuple(int(v) for v in self.grid_coords[i]),
            mass_lock=float(self.mass_lock[i]),
            geom_lock=float(self.geom_lock[i]),
        )

    def flat_index(self, coords: np.ndarray) -> np.ndarray:
        """Map lattice coordinates (..., 3) to dense lookup indices."""
        coords = np.asarray(coords, dtype=np.int64)
        _, dy, dz = self.dims
        return coords[..., 0] * dy * dz + coords[..., 1] * dz + coords[..., 2]

    def in_bounds(self, coords: np.ndarray) -> np.ndarray:
        """Return a boolean mask of coordinates lying inside the lattice."""
        coords = np.asarray(coords)
        return np.all((coords >= 0) & (coords < np.asarray(self.dims)), axis=-1)

    def mass_field(self) -> np.ndarray:
        """Dense mass lookup table indexed by :meth:`flat_index`.

        Lattice sites without a cell hold zero mass.
        """
        field = np.zeros(self.volume, dtype=np.float64)
        field[self.flat_index(self.grid_coords)] = self.mass
        return field

    def set_mass_lock(self, i: int, value: float) -> None:
        """Overwrite a cell's mass lock and re-derive its mass."""
        self.mass_lock[i] = value
        self.mass[i] = max(value, MASS_FLOOR)

    def reset_accelerations(self) -> None:
        self.acceleration.fill(0.0)
