"""
Attachment, freezing and melting rules.

A growth rule contributes two passes to every tick, both run after the
diffusion pass:

``grow_range``
    Reads the current buffer (plus the freshly diffused vapor in
    ``next.diffusive``) and decides which boundary cells freeze. Writes
    ``next.boundary``, ``next.ice``, ``next.frozen`` and the cell's own
    ``next.diffusive``.

``classify_range``
    Runs on the next buffer once every cell knows whether it is ice.
    Labels each non-ice cell Vapor or Boundary from its neighbors' ice
    flags and applies the model's per-cell bookkeeping for boundary cells.

Both passes only write the cell being updated, so disjoint index ranges can
run on different threads without locks. The ``classify``/``apply`` methods
are the same rules for a single cell in plain Python, useful for
inspecting a lattice site and for checking the kernels.
"""

from __future__ import annotations

import abc
from typing import ClassVar, Dict, Optional, Sequence, Type

import numpy as np
from numba import njit

from .diffusion import REFLECT, SINK
from .lattice import (
    BOUNDARY,
    ICE,
    OPEN,
    VAPOR,
    Cell,
    CellState,
    HexLattice,
    LatticeBuffer,
    neighbor_index,
)
from .params import GravnerGriffeathParameters, ParameterSet, ReiterParameters

_NO_NOISE = np.zeros(0, dtype=np.bool_)

###############################################################################
# Shared kernel helpers
###############################################################################


@njit(cache=True, nogil=True)
def _count_ice_neighbors(idx: int, n: int, mode: int, frozen: np.ndarray) -> int:
    i = idx // n
    j = idx - i * n
    count = 0
    for k in range(6):
        nb = neighbor_index(i, j, k, n, mode)
        if nb >= 0 and frozen[nb]:
            count += 1
    return count


###############################################################################
# Reiter kernels
###############################################################################


@njit(cache=True, nogil=True)
def _reiter_grow(
    start: int,
    stop: int,
    gamma: float,
    state_cur: np.ndarray,
    boundary_cur: np.ndarray,
    ice_cur: np.ndarray,
    d_next: np.ndarray,
    b_next: np.ndarray,
    c_next: np.ndarray,
    frozen_next: np.ndarray,
) -> None:
    for idx in range(start, stop):
        st = state_cur[idx]
        u1 = d_next[idx]
        if st == ICE:
            c_next[idx] = ice_cur[idx] + gamma + u1
            b_next[idx] = 0.0
            d_next[idx] = 0.0
            frozen_next[idx] = True
        elif st == BOUNDARY:
            s = boundary_cur[idx] + gamma + u1
            d_next[idx] = 0.0
            if s >= 1.0:
                c_next[idx] = s
                b_next[idx] = 0.0
                frozen_next[idx] = True
            else:
                c_next[idx] = 0.0
                b_next[idx] = max(s, 0.0)
                frozen_next[idx] = False
        else:
            b_next[idx] = 0.0
            c_next[idx] = 0.0
            frozen_next[idx] = False


@njit(cache=True, nogil=True)
def _reiter_classify(
    start: int,
    stop: int,
    n: int,
    mode: int,
    frozen: np.ndarray,
    state: np.ndarray,
    diffusive: np.ndarray,
    boundary: np.ndarray,
) -> None:
    for idx in range(start, stop):
        if frozen[idx]:
            state[idx] = ICE
        elif _count_ice_neighbors(idx, n, mode, frozen) > 0:
            # receptive cells stop diffusing: all their mass is held in place
            state[idx] = BOUNDARY
            boundary[idx] += diffusive[idx]
            diffusive[idx] = 0.0
        else:
            state[idx] = VAPOR


###############################################################################
# Gravner-Griffeath kernels
###############################################################################


@njit(cache=True, nogil=True)
def _free_vapor_around(
    idx: int,
    n: int,
    mode: int,
    edge: float,
    frozen_cur: np.ndarray,
    state_cur: np.ndarray,
    d_next: np.ndarray,
) -> float:
    # boundary neighbors have just frozen their vapor in, so they count as 0
    i = idx // n
    j = idx - i * n
    total = 0.0
    for k in range(6):
        nb = neighbor_index(i, j, k, n, mode)
        if nb < 0:
            total += edge
        elif not frozen_cur[nb] and state_cur[nb] != BOUNDARY:
            total += d_next[nb]
    return total


@njit(cache=True, nogil=True)
def _gg_grow(
    start: int,
    stop: int,
    n: int,
    mode: int,
    edge: float,
    beta: float,
    alpha: float,
    theta: float,
    kappa: float,
    frozen_cur: np.ndarray,
    state_cur: np.ndarray,
    b_cur: np.ndarray,
    c_cur: np.ndarray,
    d_next: np.ndarray,
    b_next: np.ndarray,
    c_next: np.ndarray,
    frozen_next: np.ndarray,
) -> None:
    for idx in range(start, stop):
        if frozen_cur[idx]:
            b_next[idx] = b_cur[idx]
            c_next[idx] = c_cur[idx]
            frozen_next[idx] = True
            continue
        count = _count_ice_neighbors(idx, n, mode, frozen_cur)
        if count == 0:
            b_next[idx] = b_cur[idx]
            c_next[idx] = c_cur[idx]
            frozen_next[idx] = False
            continue

        # freezing
        d = d_next[idx]
        b = b_cur[idx] + (1.0 - kappa) * d
        c = c_cur[idx] + kappa * d
        d_next[idx] = 0.0

        # attachment
        if count <= 2:
            attach = b >= beta
        elif count == 3:
            attach = b >= 1.0
            if not attach and b >= alpha:
                attach = _free_vapor_around(idx, n, mode, edge, frozen_cur, state_cur, d_next) < theta
        else:
            attach = True

        if attach:
            c += b
            b = 0.0
        b_next[idx] = max(b, 0.0)
        c_next[idx] = max(c, 0.0)
        frozen_next[idx] = attach


@njit(cache=True, nogil=True)
def _gg_classify(
    start: int,
    stop: int,
    n: int,
    mode: int,
    mu: float,
    gamma: float,
    sigma: float,
    noise: np.ndarray,
    use_noise: bool,
    frozen: np.ndarray,
    state: np.ndarray,
    diffusive: np.ndarray,
    boundary: np.ndarray,
    ice: np.ndarray,
) -> None:
    for idx in range(start, stop):
        if frozen[idx]:
            state[idx] = ICE
            continue
        if _count_ice_neighbors(idx, n, mode, frozen) > 0:
            state[idx] = BOUNDARY
            # melting
            mu_b = mu * boundary[idx]
            gamma_c = gamma * ice[idx]
            boundary[idx] = max(boundary[idx] - mu_b, 0.0)
            ice[idx] = max(ice[idx] - gamma_c, 0.0)
            diffusive[idx] += mu_b + gamma_c
        else:
            state[idx] = VAPOR
        if use_noise:
            if noise[idx]:
                diffusive[idx] *= 1.0 + sigma
            else:
                diffusive[idx] = max(diffusive[idx] * (1.0 - sigma), 0.0)


###############################################################################
# Rules
###############################################################################


class GrowthRule(abc.ABC):
    """Strategy for one growth model, fixed for the lifetime of a controller."""

    name: ClassVar[str] = ""
    parameters_type: ClassVar[Type[ParameterSet]] = ParameterSet
    diffusion_scheme: ClassVar[str] = ""

    def default_parameters(self) -> ParameterSet:
        return self.parameters_type()

    def check_parameters(self, parameters: ParameterSet) -> ParameterSet:
        if not isinstance(parameters, self.parameters_type):
            raise TypeError(
                f"{type(self).__name__} needs {self.parameters_type.__name__}, "
                f"got {type(parameters).__name__}"
            )
        return parameters

    def draw_noise(self, rng: np.random.Generator, num_cells: int, parameters: ParameterSet) -> Optional[np.ndarray]:
        """Per-tick random signs, drawn once on the controlling thread."""
        return None

    # ------------------------------------------------------------------ per cell
    def classify(self, cell: Cell, neighbors: Sequence[Optional[Cell]]) -> CellState:
        if cell.state == CellState.ICE:
            return CellState.ICE
        if any(nb is not None and nb.state == CellState.ICE for nb in neighbors):
            return CellState.BOUNDARY
        return CellState.VAPOR

    @abc.abstractmethod
    def apply(
        self,
        cell: Cell,
        neighbors: Sequence[Optional[Cell]],
        parameters: ParameterSet,
        *,
        edge_mass: float = 0.0,
    ) -> Cell:
        """
        Freezing/attachment for one cell. ``cell`` and ``neighbors`` carry
        the diffused vapor of this tick with last tick's boundary mass, ice
        mass and state. Returns the cell before re-classification: its state
        is ICE if it froze, otherwise unchanged.
        """

    # ------------------------------------------------------------------ ranges
    @abc.abstractmethod
    def grow_range(self, start: int, stop: int, lattice: HexLattice, parameters: ParameterSet) -> None:
        ...

    @abc.abstractmethod
    def classify_range(
        self,
        start: int,
        stop: int,
        lattice: HexLattice,
        buffer: LatticeBuffer,
        parameters: ParameterSet,
        noise: Optional[np.ndarray] = None,
    ) -> None:
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class ReiterRule(GrowthRule):
    """
    Reiter's local automaton: a cell is ice once its total mass reaches 1;
    receptive cells (ice or touching ice) gain ``gamma`` per tick and keep
    whatever vapor diffuses into them.
    """

    name = "reiter"
    parameters_type = ReiterParameters
    diffusion_scheme = SINK

    def apply(self, cell, neighbors, parameters, *, edge_mass=0.0):
        gamma = parameters.gamma
        if cell.state == CellState.ICE:
            return Cell(cell.coord, 0.0, 0.0, cell.ice_mass + gamma + cell.diffusive_mass, CellState.ICE)
        if cell.state == CellState.BOUNDARY:
            s = cell.boundary_mass + gamma + cell.diffusive_mass
            if s >= 1.0:
                return Cell(cell.coord, 0.0, 0.0, s, CellState.ICE)
            return Cell(cell.coord, 0.0, max(s, 0.0), 0.0, CellState.BOUNDARY)
        return Cell(cell.coord, cell.diffusive_mass, 0.0, 0.0, CellState.VAPOR)

    def grow_range(self, start, stop, lattice, parameters):
        cur = lattice.current
        nxt = lattice.next
        _reiter_grow(
            start, stop, float(parameters.gamma),
            cur.state, cur.boundary, cur.ice,
            nxt.diffusive, nxt.boundary, nxt.ice, nxt.frozen,
        )

    def classify_range(self, start, stop, lattice, buffer, parameters, noise=None):
        _reiter_classify(
            start, stop, lattice.size, lattice.mode,
            buffer.frozen, buffer.state, buffer.diffusive, buffer.boundary,
        )


class GravnerGriffeathRule(GrowthRule):
    """
    Gravner-Griffeath mesoscopic model with separate diffusive (d),
    boundary (b) and crystal (c) mass. Attachment depends on how many ice
    neighbors a boundary cell has; melting returns part of b and c to the
    vapor; optional noise perturbs d.
    """

    name = "gravner_griffeath"
    parameters_type = GravnerGriffeathParameters
    diffusion_scheme = REFLECT

    def draw_noise(self, rng, num_cells, parameters):
        if parameters.sigma <= 0.0:
            return None
        return rng.random(num_cells) < 0.5

    def apply(self, cell, neighbors, parameters, *, edge_mass=0.0):
        if cell.state == CellState.ICE:
            return Cell(cell.coord, 0.0, cell.boundary_mass, cell.ice_mass, CellState.ICE)
        count = sum(1 for nb in neighbors if nb is not None and nb.state == CellState.ICE)
        if count == 0:
            return cell

        d = cell.diffusive_mass
        b = cell.boundary_mass + (1.0 - parameters.kappa) * d
        c = cell.ice_mass + parameters.kappa * d

        if count <= 2:
            attach = b >= parameters.beta
        elif count == 3:
            attach = b >= 1.0
            if not attach and b >= parameters.alpha:
                free = 0.0
                for nb in neighbors:
                    if nb is None:
                        free += edge_mass
                    elif nb.state == CellState.VAPOR:
                        free += nb.diffusive_mass
                attach = free < parameters.theta
        else:
            attach = True

        if attach:
            return Cell(cell.coord, 0.0, 0.0, max(c + b, 0.0), CellState.ICE)
        return Cell(cell.coord, 0.0, max(b, 0.0), max(c, 0.0), cell.state)

    def grow_range(self, start, stop, lattice, parameters):
        cur = lattice.current
        nxt = lattice.next
        _gg_grow(
            start, stop, lattice.size, lattice.mode, float(lattice.edge_mass(parameters)),
            float(parameters.beta), float(parameters.alpha),
            float(parameters.theta), float(parameters.kappa),
            cur.frozen, cur.state, cur.boundary, cur.ice,
            nxt.diffusive, nxt.boundary, nxt.ice, nxt.frozen,
        )

    def classify_range(self, start, stop, lattice, buffer, parameters, noise=None):
        use_noise = noise is not None
        _gg_classify(
            start, stop, lattice.size, lattice.mode,
            float(parameters.mu), float(parameters.gamma), float(parameters.sigma),
            noise if use_noise else _NO_NOISE, use_noise,
            buffer.frozen, buffer.state, buffer.diffusive, buffer.boundary, buffer.ice,
        )


RULES: Dict[str, Type[GrowthRule]] = {
    ReiterRule.name: ReiterRule,
    GravnerGriffeathRule.name: GravnerGriffeathRule,
}


def make_rule(model: str) -> GrowthRule:
    try:
        return RULES[model]()
    except KeyError:
        raise ValueError(f"Unknown model {model!r}; expected one of {sorted(RULES)}") from None


__all__ = [
    "GrowthRule",
    "ReiterRule",
    "GravnerGriffeathRule",
    "RULES",
    "make_rule",
]
