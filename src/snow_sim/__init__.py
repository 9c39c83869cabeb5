"""
Snow Crystal Simulation Library

Grows a two-dimensional snow crystal on a hexagonal lattice using one of
two published models:
- ReiterRule: Reiter's local cellular automaton
- GravnerGriffeathRule: Gravner & Griffeath's mesoscopic lattice map

SimulationController runs either model on a pool of worker threads and
hands out read-only snapshots for display.
"""

from .controller import RunState, SimulationController
from .diffusion import DiffusionSolver
from .errors import ExecutionError, LifecycleError, ParameterError, SnowSimError
from .growth import GravnerGriffeathRule, GrowthRule, ReiterRule, make_rule
from .lattice import Cell, CellState, HexLattice
from .parallel import ParallelExecutor
from .params import (
    GravnerGriffeathParameters,
    ParameterSet,
    ReiterParameters,
    parameters_from_dict,
)
from .utils import SimulationSnapshot
from . import contours, utils

__all__ = [
    # Controller
    "SimulationController",
    "RunState",
    "SimulationSnapshot",
    # Models
    "GrowthRule",
    "ReiterRule",
    "GravnerGriffeathRule",
    "make_rule",
    # Configuration classes
    "ParameterSet",
    "ReiterParameters",
    "GravnerGriffeathParameters",
    "parameters_from_dict",
    # Engine pieces
    "HexLattice",
    "Cell",
    "CellState",
    "DiffusionSolver",
    "ParallelExecutor",
    # Errors
    "SnowSimError",
    "ParameterError",
    "LifecycleError",
    "ExecutionError",
    # Utilities
    "contours",
    "utils",
]
