"""
Discrete vapor diffusion on the hexagonal lattice.

Two averaging schemes are provided, one per growth model:

- ``sink`` (Reiter): every cell relaxes towards the mean of its six
  neighbors, ``u' = u + alpha/2 * (mean(u_nbrs) - u)``. Receptive cells
  carry zero diffusive mass, so they soak up whatever flows in.
- ``reflect`` (Gravner-Griffeath): non-ice cells take the seven-point
  average of themselves and their neighbors, and an ice neighbor is
  replaced by the cell's own value, i.e. the crystal is a reflecting wall.

Both schemes conserve the summed diffusive mass over the lattice under
periodic or reflecting edges. An open edge acts as a reservoir held at the
ambient density.
"""

from __future__ import annotations

import numpy as np
from numba import njit

from .lattice import OPEN, HexLattice, neighbor_index
from .params import ParameterSet

SINK = "sink"
REFLECT = "reflect"
SCHEMES = (SINK, REFLECT)


@njit(cache=True, nogil=True)
def _diffuse_sink(
    start: int,
    stop: int,
    n: int,
    mode: int,
    edge: float,
    alpha: float,
    d_cur: np.ndarray,
    d_next: np.ndarray,
) -> None:
    half_alpha = 0.5 * alpha
    for idx in range(start, stop):
        i = idx // n
        j = idx - i * n
        u0 = d_cur[idx]
        total = 0.0
        for k in range(6):
            nb = neighbor_index(i, j, k, n, mode)
            if nb >= 0:
                total += d_cur[nb]
            elif mode == OPEN:
                total += edge
            else:
                total += u0
        value = u0 + half_alpha * (total / 6.0 - u0)
        d_next[idx] = max(value, 0.0)


@njit(cache=True, nogil=True)
def _diffuse_reflect(
    start: int,
    stop: int,
    n: int,
    mode: int,
    edge: float,
    frozen: np.ndarray,
    d_cur: np.ndarray,
    d_next: np.ndarray,
) -> None:
    for idx in range(start, stop):
        if frozen[idx]:
            d_next[idx] = 0.0
            continue
        i = idx // n
        j = idx - i * n
        own = d_cur[idx]
        total = own
        for k in range(6):
            nb = neighbor_index(i, j, k, n, mode)
            if nb < 0:
                if mode == OPEN:
                    total += edge
                else:
                    total += own
            elif frozen[nb]:
                total += own
            else:
                total += d_cur[nb]
        d_next[idx] = max(total / 7.0, 0.0)


class DiffusionSolver:
    """Computes ``next.diffusive`` from ``current`` over a range of cells."""

    def __init__(self, scheme: str) -> None:
        if scheme not in SCHEMES:
            raise ValueError(f"Unknown diffusion scheme {scheme!r}; expected one of {SCHEMES}")
        self.scheme = scheme

    def solve(self, start: int, stop: int, lattice: HexLattice, parameters: ParameterSet) -> None:
        cur = lattice.current
        nxt = lattice.next
        edge = lattice.edge_mass(parameters)
        if self.scheme == SINK:
            _diffuse_sink(
                start, stop, lattice.size, lattice.mode, edge,
                float(parameters.alpha), cur.diffusive, nxt.diffusive,
            )
        else:
            _diffuse_reflect(
                start, stop, lattice.size, lattice.mode, edge,
                cur.frozen, cur.diffusive, nxt.diffusive,
            )

    def __repr__(self) -> str:
        return f"DiffusionSolver(scheme={self.scheme!r})"


__all__ = ["DiffusionSolver", "SCHEMES", "SINK", "REFLECT"]
