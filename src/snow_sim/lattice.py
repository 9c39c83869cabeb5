from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
from numba import njit

from .params import ParameterSet

###############################################################################
# Geometry constants
###############################################################################

PERIODIC = 0
REFLECTING = 1
OPEN = 2

BOUNDARY_MODES = {
    "periodic": PERIODIC,
    "reflecting": REFLECTING,
    "open": OPEN,
}

VAPOR = 0
BOUNDARY = 1
ICE = 2

# Axial hexagonal directions, in the order neighbors() reports them.
HEX_DI = np.array([1, -1, 0, 0, -1, 1], dtype=np.int64)
HEX_DJ = np.array([0, 0, 1, -1, 1, -1], dtype=np.int64)

Coord = Tuple[int, int]


class CellState(enum.IntEnum):
    VAPOR = VAPOR
    BOUNDARY = BOUNDARY
    ICE = ICE


@njit(cache=True, nogil=True)
def neighbor_index(i: int, j: int, k: int, n: int, mode: int) -> int:
    """
    Flat index of the k-th hexagonal neighbor of (i, j), or -1 when the
    neighbor falls outside a non-periodic lattice.
    """
    ni = i + HEX_DI[k]
    nj = j + HEX_DJ[k]
    if mode == PERIODIC:
        ni = (ni + n) % n
        nj = (nj + n) % n
    elif ni < 0 or ni >= n or nj < 0 or nj >= n:
        return -1
    return ni * n + nj


@dataclass(frozen=True)
class Cell:
    """Read-only view of one lattice site."""

    coord: Coord
    diffusive_mass: float
    boundary_mass: float
    ice_mass: float
    state: CellState

    @property
    def total_mass(self) -> float:
        return self.diffusive_mass + self.boundary_mass + self.ice_mass


@dataclass
class LatticeBuffer:
    """One full copy of the per-cell fields, stored flat (row-major)."""

    diffusive: np.ndarray
    boundary: np.ndarray
    ice: np.ndarray
    frozen: np.ndarray
    state: np.ndarray

    @classmethod
    def empty(cls, num_cells: int) -> "LatticeBuffer":
        return cls(
            diffusive=np.zeros(num_cells, dtype=np.float64),
            boundary=np.zeros(num_cells, dtype=np.float64),
            ice=np.zeros(num_cells, dtype=np.float64),
            frozen=np.zeros(num_cells, dtype=np.bool_),
            state=np.zeros(num_cells, dtype=np.int8),
        )

    def copy(self) -> "LatticeBuffer":
        return LatticeBuffer(
            diffusive=self.diffusive.copy(),
            boundary=self.boundary.copy(),
            ice=self.ice.copy(),
            frozen=self.frozen.copy(),
            state=self.state.copy(),
        )

    def total_mass(self) -> float:
        return float(self.diffusive.sum() + self.boundary.sum() + self.ice.sum())


class HexLattice:
    """
    Square array of hexagonal cells addressed by axial coordinates (i, j),
    with two buffers: ``current`` is what the last completed tick produced,
    ``next`` is what the running tick writes.
    """

    def __init__(self, size: int, boundary: str = "periodic") -> None:
        if size < 3:
            raise ValueError(f"Lattice size must be at least 3, got {size}")
        if boundary not in BOUNDARY_MODES:
            raise ValueError(
                f"Unknown boundary {boundary!r}; expected one of {sorted(BOUNDARY_MODES)}"
            )
        self.size = int(size)
        self.boundary = boundary
        self.mode = BOUNDARY_MODES[boundary]
        self.num_cells = self.size * self.size
        self._buffers = [LatticeBuffer.empty(self.num_cells), LatticeBuffer.empty(self.num_cells)]
        self._current = 0
        self.seed: Coord = self.center

    @property
    def center(self) -> Coord:
        return self.size // 2, self.size // 2

    @property
    def current(self) -> LatticeBuffer:
        return self._buffers[self._current]

    @property
    def next(self) -> LatticeBuffer:
        return self._buffers[1 - self._current]

    def swap(self) -> None:
        self._current = 1 - self._current

    # ------------------------------------------------------------------ geometry
    def contains(self, coord: Coord) -> bool:
        i, j = coord
        return 0 <= i < self.size and 0 <= j < self.size

    def index(self, coord: Coord) -> int:
        if not self.contains(coord):
            raise IndexError(f"Coordinate {coord} outside {self.size}x{self.size} lattice")
        return coord[0] * self.size + coord[1]

    def coord(self, index: int) -> Coord:
        return divmod(int(index), self.size)

    def neighbors(self, coord: Coord) -> Tuple[Optional[Coord], ...]:
        """The six hexagonal neighbors of ``coord``; None where the edge cuts one off."""
        i, j = coord
        self.index(coord)
        out = []
        for k in range(6):
            idx = neighbor_index(i, j, k, self.size, self.mode)
            out.append(None if idx < 0 else self.coord(idx))
        return tuple(out)

    def edge_mass(self, parameters: ParameterSet) -> float:
        """Diffusive mass seen beyond the edge by an open lattice."""
        return parameters.ambient_density if self.mode == OPEN else 0.0

    # ------------------------------------------------------------------ cells
    def get(self, coord: Coord) -> Cell:
        idx = self.index(coord)
        buf = self.current
        return Cell(
            coord=(int(coord[0]), int(coord[1])),
            diffusive_mass=float(buf.diffusive[idx]),
            boundary_mass=float(buf.boundary[idx]),
            ice_mass=float(buf.ice[idx]),
            state=CellState(int(buf.state[idx])),
        )

    def reset(self, seed: Optional[Coord], parameters: ParameterSet) -> None:
        """
        Fill the current buffer with ambient vapor and freeze the seed.

        Boundary cells are not marked here; the growth rule's classify pass
        does that so that each model can place the seed neighbors' mass in
        the pool it expects.
        """
        seed = self.center if seed is None else (int(seed[0]), int(seed[1]))
        idx = self.index(seed)
        self.seed = seed
        self._current = 0
        for buf in self._buffers:
            buf.diffusive.fill(parameters.ambient_density)
            buf.boundary.fill(0.0)
            buf.ice.fill(0.0)
            buf.frozen.fill(False)
            buf.state.fill(VAPOR)
            buf.diffusive[idx] = 0.0
            buf.ice[idx] = 1.0
            buf.frozen[idx] = True
            buf.state[idx] = ICE

    # ------------------------------------------------------------------ observables
    def grid(self, field: str) -> np.ndarray:
        """2-D view of one field of the current buffer."""
        return getattr(self.current, field).reshape(self.size, self.size)

    def ice_count(self) -> int:
        return int(np.count_nonzero(self.current.frozen))

    def total_mass(self) -> float:
        return self.current.total_mass()


__all__ = [
    "PERIODIC",
    "REFLECTING",
    "OPEN",
    "BOUNDARY_MODES",
    "VAPOR",
    "BOUNDARY",
    "ICE",
    "CellState",
    "Cell",
    "LatticeBuffer",
    "HexLattice",
    "neighbor_index",
]
