"""
Physical parameter sets for the two growth models.

Each model gets a frozen dataclass so that a tick can hold on to one
instance for its whole duration; changing a value always produces a new
object. The ambient vapor field of each model (``beta`` for Reiter,
``rho`` for Gravner-Griffeath) only takes effect at the next reset.
"""

from __future__ import annotations

import dataclasses
import math
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, FrozenSet, Mapping, Tuple, Type

from .errors import ParameterError


@dataclass(frozen=True)
class ParameterSet:
    """Shared behaviour for model parameter sets."""

    # name -> (low, high), inclusive unless listed in OPEN_ABOVE
    BOUNDS: ClassVar[Dict[str, Tuple[float, float]]] = {}
    # fields whose upper bound is excluded
    OPEN_ABOVE: ClassVar[FrozenSet[str]] = frozenset()
    RESET_ONLY: ClassVar[FrozenSet[str]] = frozenset()
    AMBIENT_FIELD: ClassVar[str] = ""

    def __post_init__(self) -> None:
        for f in dataclasses.fields(self):
            object.__setattr__(self, f.name, self.validate(f.name, getattr(self, f.name)))

    @classmethod
    def names(cls) -> Tuple[str, ...]:
        return tuple(f.name for f in dataclasses.fields(cls))

    @classmethod
    def validate(cls, name: str, value: Any) -> float:
        """Return ``value`` as a float or raise ParameterError."""
        if name not in cls.BOUNDS:
            raise ParameterError(f"Unknown parameter for {cls.__name__}: {name!r}")
        try:
            value = float(value)
        except (TypeError, ValueError) as exc:
            raise ParameterError(f"{name} must be a number, got {value!r}") from exc
        if not math.isfinite(value):
            raise ParameterError(f"{name} must be finite, got {value}")
        low, high = cls.BOUNDS[name]
        if name in cls.OPEN_ABOVE:
            if value < low or value >= high:
                raise ParameterError(f"{name}={value} outside valid range [{low}, {high})")
        elif value < low or value > high:
            raise ParameterError(f"{name}={value} outside valid range [{low}, {high}]")
        return value

    @classmethod
    def is_reset_only(cls, name: str) -> bool:
        return name in cls.RESET_ONLY

    @property
    def ambient_density(self) -> float:
        """Initial diffusive mass of every vapor cell."""
        return getattr(self, self.AMBIENT_FIELD)

    def replace(self, **changes: float) -> "ParameterSet":
        for name in changes:
            self.validate(name, changes[name])
        return dataclasses.replace(self, **changes)

    def as_dict(self) -> Dict[str, float]:
        return dataclasses.asdict(self)


@dataclass(frozen=True)
class ReiterParameters(ParameterSet):
    """Reiter (2005) local cellular automaton."""

    alpha: float = 0.502  # diffusion coefficient
    beta: float = 0.4  # background vapor level
    gamma: float = 0.0001  # vapor added to receptive cells each tick

    BOUNDS: ClassVar[Dict[str, Tuple[float, float]]] = {
        "alpha": (0.0, 2.0),
        "beta": (0.0, 1.0),
        "gamma": (0.0, 1.0),
    }
    # a background of 1 or more is already ice everywhere
    OPEN_ABOVE: ClassVar[FrozenSet[str]] = frozenset({"beta"})
    RESET_ONLY: ClassVar[FrozenSet[str]] = frozenset({"beta"})
    AMBIENT_FIELD: ClassVar[str] = "beta"


@dataclass(frozen=True)
class GravnerGriffeathParameters(ParameterSet):
    """Gravner & Griffeath (2009) mesoscopic lattice map."""

    rho: float = 0.5  # vapor density
    beta: float = 1.4  # tip attachment threshold for b
    alpha: float = 0.1  # concave attachment threshold for b
    theta: float = 0.005  # concave attachment threshold for d
    kappa: float = 0.001  # crystallization rate
    mu: float = 0.06  # melting rate
    gamma: float = 0.001  # sublimation rate
    sigma: float = 0.0  # noise strength

    BOUNDS: ClassVar[Dict[str, Tuple[float, float]]] = {
        "rho": (0.0, 10.0),
        "beta": (0.0, 10.0),
        "alpha": (0.0, 10.0),
        "theta": (0.0, 10.0),
        "kappa": (0.0, 1.0),
        "mu": (0.0, 1.0),
        "gamma": (0.0, 1.0),
        "sigma": (0.0, 1.0),
    }
    RESET_ONLY: ClassVar[FrozenSet[str]] = frozenset({"rho"})
    AMBIENT_FIELD: ClassVar[str] = "rho"


PARAMETER_TYPES: Dict[str, Type[ParameterSet]] = {
    "reiter": ReiterParameters,
    "gravner_griffeath": GravnerGriffeathParameters,
}


def parameters_from_dict(model: str, config: Mapping[str, Any] | None = None) -> ParameterSet:
    """
    Build the parameter set for ``model`` from a plain mapping, e.g. the
    output of :func:`snow_sim.utils.load_params`. Missing keys keep their
    defaults; unknown keys are rejected.
    """
    try:
        cls = PARAMETER_TYPES[model]
    except KeyError:
        raise ParameterError(
            f"Unknown model {model!r}; expected one of {sorted(PARAMETER_TYPES)}"
        ) from None
    config = dict(config or {})
    unknown = set(config) - set(cls.names())
    if unknown:
        raise ParameterError(f"Unknown parameters for {model}: {sorted(unknown)}")
    return cls(**{name: cls.validate(name, value) for name, value in config.items()})


__all__ = [
    "ParameterSet",
    "ReiterParameters",
    "GravnerGriffeathParameters",
    "PARAMETER_TYPES",
    "parameters_from_dict",
]
