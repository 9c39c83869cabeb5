# src/snow_sim/utils.py
from __future__ import annotations

import json
import os
import time
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Tuple

import numpy as np

from .lattice import ICE, Cell, CellState, HexLattice

FIELDS = ("diffusive", "boundary", "ice", "state")


def _frozen_array(values: np.ndarray, size: int) -> np.ndarray:
    out = np.array(values, copy=True).reshape(size, size)
    out.setflags(write=False)
    return out


@dataclass(frozen=True, eq=False)
class SimulationSnapshot:
    """Read-only copy of the lattice handed out to renderers and writers."""

    tick: int
    model: str
    boundary: str
    diffusive: np.ndarray
    boundary_mass: np.ndarray
    ice: np.ndarray
    state: np.ndarray
    parameters: Dict[str, float] = field(default_factory=dict)
    seed: Tuple[int, int] = (0, 0)

    @classmethod
    def capture(
        cls,
        lattice: HexLattice,
        *,
        tick: int,
        model: str,
        parameters: Dict[str, float],
    ) -> "SimulationSnapshot":
        buf = lattice.current
        n = lattice.size
        return cls(
            tick=int(tick),
            model=model,
            boundary=lattice.boundary,
            diffusive=_frozen_array(buf.diffusive, n),
            boundary_mass=_frozen_array(buf.boundary, n),
            ice=_frozen_array(buf.ice, n),
            state=_frozen_array(buf.state, n),
            parameters=dict(parameters),
            seed=lattice.seed,
        )

    @property
    def size(self) -> int:
        return int(self.state.shape[0])

    @property
    def frozen(self) -> np.ndarray:
        return self.state == ICE

    def cell(self, coord: Tuple[int, int]) -> Cell:
        i, j = coord
        return Cell(
            coord=(int(i), int(j)),
            diffusive_mass=float(self.diffusive[i, j]),
            boundary_mass=float(self.boundary_mass[i, j]),
            ice_mass=float(self.ice[i, j]),
            state=CellState(int(self.state[i, j])),
        )

    def ice_count(self) -> int:
        return int(np.count_nonzero(self.frozen))

    def total_mass(self) -> float:
        return float(self.diffusive.sum() + self.boundary_mass.sum() + self.ice.sum())

    def meta(self) -> Dict[str, Any]:
        return {
            "tick": self.tick,
            "model": self.model,
            "boundary": self.boundary,
            "size": self.size,
            "seed": list(self.seed),
            "parameters": dict(self.parameters),
        }


def now_str() -> str:
    return time.strftime("%Y%m%d-%H%M%S")


def save_snapshot(
    path: str | os.PathLike[str], snapshot: SimulationSnapshot, *, overwrite: bool = True
) -> None:
    """Serialize a SimulationSnapshot to a compressed .npz file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    if not overwrite and path.exists():
        raise FileExistsError(f"{path} already exists")
    np.savez_compressed(
        path,
        diffusive=snapshot.diffusive,
        boundary=snapshot.boundary_mass,
        ice=snapshot.ice,
        state=snapshot.state,
        meta=json.dumps(snapshot.meta()),
    )


def load_snapshot(path: str | os.PathLike[str]) -> SimulationSnapshot:
    """Load a snapshot written by :func:`save_snapshot`."""
    with np.load(path, allow_pickle=False) as data:
        missing = [name for name in FIELDS if name not in data]
        if missing:
            raise ValueError(f"{path} is not a snapshot file (missing {missing})")
        meta = json.loads(str(data["meta"])) if "meta" in data else {}
        size = int(data["state"].shape[0])
        return SimulationSnapshot(
            tick=int(meta.get("tick", 0)),
            model=str(meta.get("model", "?")),
            boundary=str(meta.get("boundary", "?")),
            diffusive=_frozen_array(data["diffusive"], size),
            boundary_mass=_frozen_array(data["boundary"], size),
            ice=_frozen_array(data["ice"], size),
            state=_frozen_array(data["state"], size),
            parameters=dict(meta.get("parameters", {})),
            seed=tuple(meta.get("seed", (size // 2, size // 2))),
        )


def load_params(path: str | os.PathLike[str]) -> Dict[str, Any]:
    """
    Load simulation parameters from JSON or TOML.
    """
    path = str(path)
    with open(path, "rb") as fh:
        data = fh.read()
    suffix = Path(path).suffix.lower()
    if suffix in {".json", ""}:
        return json.loads(data.decode("utf-8"))
    if suffix in {".toml", ".tml"}:
        return tomllib.loads(data.decode("utf-8"))
    raise ValueError(f"Unsupported parameter file format: {suffix}")
