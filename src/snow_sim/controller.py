"""
Simulation controller: owns the lattice, the growth rule and the worker
pool, and is the only object the rendering/UI layer talks to.

Lifecycle::

    IDLE --start--> RUNNING <--pause/resume--> PAUSED
      ^                 |                         |
      +------reset------+-----------reset---------+

A tick is ``diffuse -> grow -> classify -> swap``. Each pass is a barrier,
and the swap is published under a lock shared with :meth:`snapshot`, so a
snapshot always sees a fully written buffer.
"""

from __future__ import annotations

import enum
import logging
import threading
from typing import Any, Dict, Optional, Tuple, Union

import numpy as np

from .diffusion import DiffusionSolver
from .errors import ExecutionError, LifecycleError
from .growth import GrowthRule, make_rule
from .lattice import HexLattice
from .parallel import ParallelExecutor
from .params import ParameterSet
from .utils import SimulationSnapshot

logger = logging.getLogger(__name__)


class RunState(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"


class SimulationController:
    """
    Drives one snow crystal simulation.

    The growth model is chosen here and cannot be changed afterwards; build
    a new controller to switch models.
    """

    def __init__(
        self,
        model: Union[str, GrowthRule] = "reiter",
        size: int = 201,
        *,
        parameters: Optional[ParameterSet] = None,
        boundary: str = "periodic",
        seed: Optional[Tuple[int, int]] = None,
        workers: Optional[int] = None,
        random_seed: Optional[int] = None,
        log_interval: int = 100,
    ) -> None:
        self.rule = make_rule(model) if isinstance(model, str) else model
        self._parameters = self.rule.check_parameters(
            parameters if parameters is not None else self.rule.default_parameters()
        )
        self.lattice = HexLattice(size, boundary)
        self.diffusion = DiffusionSolver(self.rule.diffusion_scheme)
        self.executor = ParallelExecutor(self.lattice.size, workers)
        self.log_interval = int(log_interval)

        self._seed = seed
        self._random_seed = random_seed
        self._rng = np.random.default_rng(random_seed)
        self._pending: Dict[str, float] = {}
        self._state = RunState.IDLE
        self._tick = 0
        # parameters that produced the published buffer
        self._tick_parameters = self._parameters

        # _tick_lock: held for a whole tick and for reset
        # _state_lock: lifecycle state, active parameters, pending slot
        # _publish_lock: buffer swap vs. snapshot copy
        self._tick_lock = threading.RLock()
        self._state_lock = threading.Lock()
        self._publish_lock = threading.Lock()

        self._initialize()
        logger.info(
            "controller ready: model=%s size=%d boundary=%s workers=%d",
            self.model, self.lattice.size, boundary, self.executor.workers,
        )

    # ------------------------------------------------------------------ properties
    @property
    def model(self) -> str:
        return self.rule.name

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def tick(self) -> int:
        return self._tick

    @property
    def parameters(self) -> ParameterSet:
        return self._parameters

    @property
    def pending_parameters(self) -> Dict[str, float]:
        with self._state_lock:
            return dict(self._pending)

    # ------------------------------------------------------------------ lifecycle
    def _transition(self, command: str, expected: RunState, target: RunState) -> None:
        with self._state_lock:
            if self._state is not expected:
                raise LifecycleError(
                    f"{command}() needs state {expected.value}, current state is {self._state.value}"
                )
            self._state = target
        logger.info("%s: %s -> %s (tick %d)", command, expected.value, target.value, self._tick)

    def start(self) -> None:
        self._transition("start", RunState.IDLE, RunState.RUNNING)

    def pause(self) -> None:
        self._transition("pause", RunState.RUNNING, RunState.PAUSED)

    def resume(self) -> None:
        self._transition("resume", RunState.PAUSED, RunState.RUNNING)

    def step(self) -> int:
        """Advance exactly one tick while paused. Returns the new tick count."""
        with self._tick_lock:
            if self._state is not RunState.PAUSED:
                raise LifecycleError(
                    f"step() needs state {RunState.PAUSED.value}, current state is {self._state.value}"
                )
            self._advance()
            return self._tick

    def update(self) -> bool:
        """Frame-loop entry point: run one tick if RUNNING, otherwise do nothing."""
        if self._state is not RunState.RUNNING:
            return False
        with self._tick_lock:
            if self._state is not RunState.RUNNING:
                return False
            self._advance()
        return True

    def run(self, ticks: int) -> int:
        """
        Run up to ``ticks`` ticks on the calling thread. Stops early when
        another thread pauses or resets the simulation. Returns the number of
        ticks actually run.
        """
        if self._state is not RunState.RUNNING:
            raise LifecycleError(f"run() needs state running, current state is {self._state.value}")
        done = 0
        while done < ticks and self.update():
            done += 1
        return done

    def reset(self) -> None:
        """Stop, apply deferred parameter changes and reinitialize the lattice."""
        with self._tick_lock:
            with self._state_lock:
                previous = self._state
                self._state = RunState.IDLE
                if self._pending:
                    logger.info("applying deferred parameters: %s", self._pending)
                    self._parameters = self._parameters.replace(**self._pending)
                    self._pending.clear()
            self._initialize()
        logger.info("reset: %s -> idle", previous.value)

    def close(self) -> None:
        self.executor.shutdown()

    def __enter__(self) -> "SimulationController":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ------------------------------------------------------------------ parameters
    def set_parameter(self, name: str, value: float) -> bool:
        """
        Change one parameter. Live parameters apply from the next tick and the
        call returns True; reset-only parameters are queued until ``reset()``
        and the call returns False. Invalid names or values raise
        ParameterError and leave everything unchanged.
        """
        cls = type(self._parameters)
        value = cls.validate(name, value)
        with self._state_lock:
            if cls.is_reset_only(name):
                self._pending[name] = value
                logger.info("queued %s=%g until next reset", name, value)
                return False
            self._parameters = self._parameters.replace(**{name: value})
        logger.info("set %s=%g at tick %d", name, value, self._tick)
        return True

    def update_parameters(self, **values: float) -> None:
        """Apply several changes at once; nothing changes if any value is invalid."""
        cls = type(self._parameters)
        for name, value in values.items():
            cls.validate(name, value)
        for name, value in values.items():
            self.set_parameter(name, value)

    # ------------------------------------------------------------------ snapshot
    def snapshot(self) -> SimulationSnapshot:
        with self._publish_lock:
            return SimulationSnapshot.capture(
                self.lattice,
                tick=self._tick,
                model=self.model,
                parameters=self._tick_parameters.as_dict(),
            )

    # ------------------------------------------------------------------ internals
    def _initialize(self) -> None:
        params = self._parameters
        with self._publish_lock:
            self.lattice.reset(self._seed, params)
            self.executor.run(self.rule.classify_range, self.lattice, self.lattice.current, params, None)
            self._tick = 0
            self._tick_parameters = params
        self._rng = np.random.default_rng(self._random_seed)

    def _advance(self) -> None:
        lattice = self.lattice
        with self._state_lock:
            params = self._parameters
        noise = self.rule.draw_noise(self._rng, lattice.num_cells, params)
        try:
            self.executor.run(self.diffusion.solve, lattice, params)
            self.executor.run(self.rule.grow_range, lattice, params)
            self.executor.run(self.rule.classify_range, lattice, lattice.next, params, noise)
        except ExecutionError:
            with self._state_lock:
                self._state = RunState.IDLE
            logger.error("tick %d failed; simulation stopped", self._tick + 1)
            raise

        with self._publish_lock:
            lattice.swap()
            self._tick += 1
            self._tick_parameters = params

        if self.log_interval > 0 and self._tick % self.log_interval == 0:
            logger.debug(
                "tick %d: total_mass=%.6f ice=%d",
                self._tick, lattice.total_mass(), lattice.ice_count(),
            )


__all__ = ["RunState", "SimulationController"]
